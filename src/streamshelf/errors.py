"""Error taxonomy and structured outcomes shared across the engine.

Exceptions cover the failures a caller can meet on an I/O path. Degraded but
successful paths (stale metadata served from cache, a progress update that
was discarded) are reported as outcome values instead of exceptions.
"""

from __future__ import annotations

from enum import Enum


class StreamshelfError(Exception):
    """Base exception for all engine errors."""


class NetworkFailure(StreamshelfError):
    """A remote service was unreachable or answered with a non-2xx status."""


class MalformedResponse(StreamshelfError):
    """A remote response could not be parsed or lacked required fields."""


class NotFound(StreamshelfError):
    """A requested detail or category does not exist."""


class CacheWriteFailure(StreamshelfError):
    """The persistence layer rejected a write."""


class Outcome(str, Enum):
    """Result classification handed to the consumer layer."""

    SUCCESS = "success"
    EMPTY = "empty"
    DEGRADED = "degraded"
    ERROR = "error"
