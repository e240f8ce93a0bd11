"""Full catalog synchronization into the local store.

A run walks three phases in a fixed order (live, movie, series). Each phase
upserts the categories of its content type, then writes every item in fixed
size batches. A failing phase is logged and counted as empty; the run always
reaches 100% and records the sync timestamp.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .catalog import RemoteCatalogClient
from .errors import MalformedResponse, Outcome, StreamshelfError
from .logging_utils import render_fields_block
from .models import CATALOG_ACTIONS, SYNC_META_KEY, Category, ContentType, StreamEntry, SyncMetadata
from .session import Session

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000
DAY_MS = 24 * 60 * 60 * 1000

# (content type, progress start, progress weight)
SYNC_PHASES: tuple[tuple[ContentType, int, int], ...] = (
    (ContentType.LIVE, 0, 33),
    (ContentType.MOVIE, 33, 33),
    (ContentType.SERIES, 66, 34),
)

ProgressCallback = Callable[[int], None]


def needs_sync(meta: Optional[SyncMetadata], now_ms: int, max_age_ms: int = DAY_MS) -> bool:
    """Return True when the catalog was never synced or the last sync is too old."""
    if meta is None:
        return True
    return now_ms - meta.last_sync > max_age_ms


@dataclass
class PhaseReport:
    content_type: ContentType
    categories: int = 0
    items: int = 0
    skipped: int = 0
    outcome: Outcome = Outcome.SUCCESS
    error: Optional[str] = None


@dataclass
class SyncReport:
    started_at: int
    finished_at: int = 0
    phases: list[PhaseReport] = field(default_factory=list)

    @property
    def total_items(self) -> int:
        return sum(phase.items for phase in self.phases)

    @property
    def outcome(self) -> Outcome:
        failed = [phase for phase in self.phases if phase.outcome is Outcome.ERROR]
        if failed and len(failed) == len(self.phases):
            return Outcome.ERROR
        if failed:
            return Outcome.DEGRADED
        if self.total_items == 0:
            return Outcome.EMPTY
        return Outcome.SUCCESS


def _expect_list(payload: Any, action: str) -> list[Any]:
    if not isinstance(payload, list):
        raise MalformedResponse(f"'{action}' returned {type(payload).__name__}, expected a list")
    return payload


class SyncEngine:
    """Mirror the remote catalog into the session's store.

    Only one run executes at a time; calling ``sync_all`` while a run is in
    flight returns None without queuing anything.
    """

    def __init__(
        self,
        session: Session,
        client: RemoteCatalogClient,
        *,
        batch_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.session = session
        self.client = client
        self.batch_size = batch_size or session.settings.sync.batch_size or DEFAULT_BATCH_SIZE
        self.on_progress = on_progress
        self._run_lock = threading.Lock()
        self._progress = 0

    @property
    def is_syncing(self) -> bool:
        return self._run_lock.locked()

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def last_sync(self) -> Optional[int]:
        meta = self.session.store.get_sync_meta(SYNC_META_KEY)
        return meta.last_sync if meta else None

    def should_auto_sync(self) -> bool:
        """Return True when automatic sync is enabled and the catalog is missing or too old."""
        if not self.session.settings.sync.auto:
            return False
        max_age_ms = self.session.settings.sync.max_age_hours * 60 * 60 * 1000
        meta = self.session.store.get_sync_meta(SYNC_META_KEY)
        return needs_sync(meta, self.session.now_ms(), max_age_ms)

    def sync_all(self) -> Optional[SyncReport]:
        """Run a full sync.

        Returns:
            SyncReport for the completed run, or None when a run was already active
        """
        if not self._run_lock.acquire(blocking=False):
            LOGGER.info("Sync already in progress; ignoring new request")
            return None

        try:
            self._progress = 0
            self._emit(0)
            report = SyncReport(started_at=self.session.now_ms())

            for content_type, start, weight in SYNC_PHASES:
                phase = self._run_phase(content_type, start, weight)
                report.phases.append(phase)
                self._report(start + weight)

            report.finished_at = self.session.now_ms()
            try:
                self.session.store.put_sync_meta(SyncMetadata(type=SYNC_META_KEY, last_sync=report.finished_at))
            except StreamshelfError as exc:
                LOGGER.error("Failed to record sync timestamp: %s", exc)
            self._report(100)
            self._log_report(report)
            return report
        finally:
            self._run_lock.release()

    def _run_phase(self, content_type: ContentType, start: int, weight: int) -> PhaseReport:
        category_action, items_action, _ = CATALOG_ACTIONS[content_type]
        phase = PhaseReport(content_type=content_type)
        store = self.session.store

        try:
            raw_categories = _expect_list(self.client.request(category_action), category_action)
            categories = [
                Category.from_payload(item, content_type)
                for item in raw_categories
                if isinstance(item, dict) and item.get("category_id") not in (None, "")
            ]
            phase.categories = store.put_categories(categories)

            raw_items = _expect_list(self.client.request(items_action), items_action)
            total = len(raw_items)
            if total == 0:
                phase.outcome = Outcome.EMPTY
                return phase

            for offset in range(0, total, self.batch_size):
                batch: list[StreamEntry] = []
                for item in raw_items[offset : offset + self.batch_size]:
                    entry = StreamEntry.from_payload(item, content_type) if isinstance(item, dict) else None
                    if entry is None:
                        phase.skipped += 1
                        continue
                    batch.append(entry)
                phase.items += store.put_streams(batch)

                processed = min(offset + self.batch_size, total)
                self._report(start + processed / total * weight)
        except StreamshelfError as exc:
            LOGGER.error("Sync phase '%s' failed: %s", content_type.value, exc)
            phase.outcome = Outcome.ERROR
            phase.error = str(exc)

        return phase

    def _report(self, value: float) -> None:
        rounded = min(100, int(round(value)))
        if rounded <= self._progress:
            return
        self._progress = rounded
        self._emit(rounded)

    def _emit(self, value: int) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(value)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("Sync progress callback failed: %s", exc)

    def _log_report(self, report: SyncReport) -> None:
        fields: dict[str, object] = {"Outcome": report.outcome.value}
        for phase in report.phases:
            summary = f"{phase.categories} categories, {phase.items} items"
            if phase.skipped:
                summary += f", {phase.skipped} skipped"
            if phase.error:
                summary += f" (failed: {phase.error})"
            fields[phase.content_type.value.title()] = summary
        fields["Duration"] = f"{(report.finished_at - report.started_at) / 1000:.1f}s"
        LOGGER.info(render_fields_block("Catalog Sync Complete", fields))
