"""Playback progress tracking.

The tracker keeps a summary map (one record per movie or series, series keyed
by series id) and lazily loaded per-series episode buckets. Accepted updates
are written through to the sink's granular record right away; the summary is
written once a debounce deadline passes, or on flush.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import re
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from .errors import CacheWriteFailure, MalformedResponse, StreamshelfError
from .models import WatchProgressRecord
from .session import Session
from .utils import ensure_directory

LOGGER = logging.getLogger(__name__)

SUMMARY_FILENAME = "watch-progress.json"


class ProgressOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED_REGRESSION = "rejected_regression"
    UNCHANGED = "unchanged"


@dataclass
class PendingWrite:
    """A scheduled summary write; later updates push the deadline back."""

    deadline: float

    def extend(self, deadline: float) -> None:
        self.deadline = max(self.deadline, deadline)

    def is_due(self, now: float) -> bool:
        return now >= self.deadline


class ProgressSink(Protocol):
    """Durable destination for progress records."""

    def load_summary(self) -> dict[str, Any]: ...

    def save_summary(self, summary: dict[str, Any]) -> None: ...

    def load_granular(self, content_type: str, content_id: str) -> dict[str, Any]: ...

    def save_granular(self, record: WatchProgressRecord) -> None: ...


def _safe_component(value: str) -> str:
    return re.sub(r"[^\w.-]", "_", value)


class JsonProgressSink:
    """Stores progress as JSON files under ``state_dir``.

    ``watch-progress.json`` holds the summary map. Each title also gets a
    ``{type}-{id}.json`` file: the record itself for movies, a map of episode
    id to record for series.
    """

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)

    @property
    def summary_path(self) -> Path:
        return self.state_dir / SUMMARY_FILENAME

    def granular_path(self, content_type: str, content_id: str) -> Path:
        return self.state_dir / f"{_safe_component(content_type)}-{_safe_component(content_id)}.json"

    def _read(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise MalformedResponse(f"Could not read {path.name}: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedResponse(f"{path.name} does not contain a JSON object")
        return data

    def _write(self, path: Path, data: dict[str, Any]) -> None:
        try:
            ensure_directory(path.parent)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            raise CacheWriteFailure(f"Could not write {path.name}: {exc}") from exc

    def load_summary(self) -> dict[str, Any]:
        return self._read(self.summary_path)

    def save_summary(self, summary: dict[str, Any]) -> None:
        self._write(self.summary_path, summary)

    def load_granular(self, content_type: str, content_id: str) -> dict[str, Any]:
        return self._read(self.granular_path(content_type, content_id))

    def save_granular(self, record: WatchProgressRecord) -> None:
        path = self.granular_path(record.type, record.content_id)
        if record.is_series:
            try:
                data = self._read(path)
            except MalformedResponse as exc:
                LOGGER.warning("Replacing unreadable progress file %s: %s", path.name, exc)
                data = {}
            data[record.episode_key] = record.to_dict()
        else:
            data = record.to_dict()
        self._write(path, data)


def _with_known_duration(
    incoming: WatchProgressRecord, existing: Optional[WatchProgressRecord]
) -> WatchProgressRecord:
    if incoming.duration or existing is None or existing.episode_key != incoming.episode_key:
        return incoming
    return dataclasses.replace(incoming, duration=existing.duration)


def _is_regression(incoming: WatchProgressRecord, existing: Optional[WatchProgressRecord]) -> bool:
    return (
        existing is not None
        and existing.episode_key == incoming.episode_key
        and existing.position > 0
        and incoming.position == 0
    )


class ProgressTracker:
    """Reconcile playback positions and persist them through a sink."""

    def __init__(
        self,
        session: Session,
        sink: ProgressSink,
        *,
        debounce_seconds: Optional[float] = None,
        min_delta_seconds: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        settings = session.settings.progress
        self.session = session
        self.sink = sink
        self.debounce_seconds = settings.debounce_seconds if debounce_seconds is None else debounce_seconds
        self.min_delta_seconds = settings.min_delta_seconds if min_delta_seconds is None else min_delta_seconds
        self.clock = clock or session.clock
        self._summary: dict[str, WatchProgressRecord] = {}
        self._detail: dict[str, dict[str, WatchProgressRecord]] = {}
        self._pending: Optional[PendingWrite] = None
        self._lock = threading.RLock()
        session.on_close(self.flush)

    @property
    def pending(self) -> Optional[PendingWrite]:
        return self._pending

    def load(self) -> int:
        """Load the summary map from the sink.

        Returns:
            Number of records loaded; 0 when the sink could not be read
        """
        try:
            raw = self.sink.load_summary()
        except StreamshelfError as exc:
            LOGGER.warning("Could not load watch progress: %s", exc)
            return 0

        summary: dict[str, WatchProgressRecord] = {}
        for key, data in raw.items():
            if isinstance(data, dict):
                summary[str(key)] = WatchProgressRecord.from_dict(data)
        with self._lock:
            self._summary = summary
        LOGGER.debug("Loaded %d watch progress record(s)", len(summary))
        return len(summary)

    def load_series_detail(self, series_id: str) -> dict[str, WatchProgressRecord]:
        """Return the episode bucket of a series, reading it from the sink once."""
        series_id = str(series_id)
        with self._lock:
            if series_id in self._detail:
                return dict(self._detail[series_id])
        try:
            raw = self.sink.load_granular("series", series_id)
        except StreamshelfError as exc:
            LOGGER.warning("Could not load episode progress for series %s: %s", series_id, exc)
            return {}

        bucket = {
            str(key): WatchProgressRecord.from_dict(data) for key, data in raw.items() if isinstance(data, dict)
        }
        with self._lock:
            self._detail.setdefault(series_id, bucket)
            return dict(self._detail[series_id])

    def update_progress(self, record: WatchProgressRecord) -> ProgressOutcome:
        with self._lock:
            content_id = record.content_id
            existing = self._summary.get(content_id)

            if _is_regression(record, existing):
                LOGGER.debug("Ignoring progress regression for %s/%s", record.type, record.episode_key)
                return ProgressOutcome.REJECTED_REGRESSION

            record = _with_known_duration(record, existing)
            if not self._passes_gate(record, existing):
                return ProgressOutcome.UNCHANGED

            if not record.updated_at:
                record = dataclasses.replace(record, updated_at=self.session.now_ms())
            self._summary[content_id] = record

            if record.is_series and content_id in self._detail:
                bucket = self._detail[content_id]
                previous = bucket.get(record.episode_key)
                if not _is_regression(record, previous):
                    bucket[record.episode_key] = _with_known_duration(record, previous)

            self._write_granular(record)
            self._schedule_summary_write()
        return ProgressOutcome.ACCEPTED

    def _passes_gate(self, record: WatchProgressRecord, existing: Optional[WatchProgressRecord]) -> bool:
        if existing is None:
            return True
        if existing.episode_key != record.episode_key:
            return True
        if abs(existing.position - record.position) > self.min_delta_seconds:
            return True
        return not existing.duration and bool(record.duration)

    def get_progress(self, item_id: str) -> Optional[WatchProgressRecord]:
        """Find a record by content id, episode id or stream id."""
        item_id = str(item_id)
        with self._lock:
            if item_id in self._summary:
                return self._summary[item_id]
            for record in self._summary.values():
                if record.is_series and item_id in (record.episode_id, record.stream_id):
                    return record
            for bucket in self._detail.values():
                if item_id in bucket:
                    return bucket[item_id]
                for record in bucket.values():
                    if item_id in (record.episode_id, record.stream_id):
                        return record
        return None

    def recent(self, limit: int = 20) -> list[WatchProgressRecord]:
        """Most recently updated summary records first."""
        with self._lock:
            records = sorted(self._summary.values(), key=lambda record: record.updated_at, reverse=True)
        return records[:limit]

    def _write_granular(self, record: WatchProgressRecord) -> None:
        try:
            self.sink.save_granular(record)
        except StreamshelfError as exc:
            LOGGER.warning("Could not save progress for %s/%s: %s", record.type, record.content_id, exc)

    def _schedule_summary_write(self) -> None:
        deadline = self.clock() + self.debounce_seconds
        if self._pending is None:
            self._pending = PendingWrite(deadline=deadline)
        else:
            self._pending.extend(deadline)

    def poll(self, now: Optional[float] = None) -> bool:
        """Write the summary if its debounce deadline has passed.

        Returns:
            True when a write was attempted
        """
        with self._lock:
            if self._pending is None:
                return False
            if not self._pending.is_due(self.clock() if now is None else now):
                return False
        return self.flush()

    def flush(self) -> bool:
        """Write the summary immediately if a write is pending."""
        with self._lock:
            if self._pending is None:
                return False
            self._pending = None
            snapshot = {key: record.to_dict() for key, record in self._summary.items()}
            try:
                self.sink.save_summary(snapshot)
            except StreamshelfError as exc:
                LOGGER.warning("Could not save watch progress summary: %s", exc)
            else:
                LOGGER.debug("Saved %d watch progress record(s)", len(snapshot))
        return True
