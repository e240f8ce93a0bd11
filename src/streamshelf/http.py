"""Shared retrying HTTP request helper for the remote collaborators."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .errors import MalformedResponse, NetworkFailure, NotFound

LOGGER = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_BACKOFF = 1.0
MAX_BACKOFF = 30.0


def _retry_after_seconds(response: httpx.Response, default: float) -> float:
    """Seconds to wait from a ``Retry-After`` header; dates and garbage use ``default``."""
    value = response.headers.get("Retry-After")
    if value is None:
        return default
    try:
        seconds = float(value)
    except ValueError:
        return default
    return min(max(seconds, 0.0), MAX_BACKOFF)


def request_with_retry(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    label: str,
    **kwargs: Any,
) -> httpx.Response:
    """Make an HTTP request with bounded retries.

    Args:
        client: httpx client used for the request
        method: HTTP method
        url: Absolute URL
        label: Short description for logs and errors (must not contain secrets)
        **kwargs: Additional arguments passed to httpx

    Returns:
        The successful response

    Raises:
        NotFound: If the resource does not exist (404), never retried
        NetworkFailure: When every attempt failed
    """
    last_exception: Exception | None = None
    backoff = RETRY_BACKOFF

    for attempt in range(MAX_RETRIES):
        final_attempt = attempt == MAX_RETRIES - 1
        try:
            response = client.request(method, url, **kwargs)

            if response.status_code == 404:
                raise NotFound(f"Resource not found: {label}")
            if response.status_code == 429:
                last_exception = NetworkFailure(f"Rate limited: {label}")
                if not final_attempt:
                    retry_after = _retry_after_seconds(response, backoff)
                    LOGGER.warning("Rate limited on %s, waiting %.1f seconds", label, retry_after)
                    time.sleep(retry_after)
                    backoff = min(backoff * 2, MAX_BACKOFF)
                continue
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                raise NotFound(f"Resource not found: {label}") from exc
            last_exception = exc
            if not final_attempt:
                LOGGER.debug("Request failed (attempt %d/%d): %s", attempt + 1, MAX_RETRIES, exc)
                time.sleep(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF)
        except httpx.RequestError as exc:
            last_exception = exc
            if not final_attempt:
                LOGGER.debug("Request error (attempt %d/%d): %s", attempt + 1, MAX_RETRIES, exc)
                time.sleep(backoff)
                backoff = min(backoff * 2, MAX_BACKOFF)

    raise NetworkFailure(f"Failed to fetch {label} after {MAX_RETRIES} attempts") from last_exception


def decode_json(response: httpx.Response, *, label: str) -> Any:
    """Parse a JSON body, raising MalformedResponse when it is not JSON."""
    try:
        return response.json()
    except ValueError as exc:
        raise MalformedResponse(f"Unparsable response for {label}") from exc
