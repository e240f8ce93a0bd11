"""SQLite-backed store for the local catalog mirror and its caches.

One database file holds every collection the engine needs:

- ``categories`` keyed by (type, category_id), indexed by type
- ``streams`` keyed by id, indexed by category_id and type
- ``details`` keyed by id, written lazily on first detail view
- ``sync_metadata`` keyed by type tag
- ``external_cache`` keyed by endpoint + params digest
- ``daily_selections`` keyed by date key, indexed by selection context

Writes go through a single lock so only one thread mutates the database at a
time; reads use thread-local connections and may run concurrently.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional

from ..errors import CacheWriteFailure
from ..models import (
    Category,
    ContentType,
    DailySelectionEntry,
    DetailRecord,
    ExternalCacheEntry,
    StreamEntry,
    SyncMetadata,
)
from ..utils import now_ms

if TYPE_CHECKING:
    from collections.abc import Iterator

LOGGER = logging.getLogger(__name__)

COLLECTIONS = (
    "categories",
    "streams",
    "details",
    "sync_metadata",
    "external_cache",
    "daily_selections",
)


@dataclass(frozen=True)
class SchemaStep:
    """One schema version step.

    Steps only add tables, indexes or columns. A step flagged ``breaking`` clears the
    collections listed in ``clears`` after it runs; no other path discards
    stored rows during a migration.
    """

    version: int
    statements: tuple[str, ...]
    breaking: bool = False
    clears: tuple[str, ...] = ()


SCHEMA_STEPS: tuple[SchemaStep, ...] = (
    SchemaStep(
        version=1,
        statements=(
            """
            CREATE TABLE IF NOT EXISTS categories (
                type TEXT NOT NULL,
                category_id TEXT NOT NULL,
                category_name TEXT NOT NULL,
                parent_id INTEGER NOT NULL DEFAULT 0,
                PRIMARY KEY (type, category_id)
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS streams (
                id TEXT PRIMARY KEY,
                category_id TEXT NOT NULL,
                name TEXT NOT NULL,
                type TEXT NOT NULL,
                icon TEXT,
                rating TEXT,
                added TEXT,
                raw TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS details (
                id TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                timestamp INTEGER NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS sync_metadata (
                type TEXT PRIMARY KEY,
                last_sync INTEGER NOT NULL
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_streams_category ON streams (category_id)",
        ),
    ),
    SchemaStep(
        version=2,
        statements=(
            "CREATE INDEX IF NOT EXISTS idx_streams_type ON streams (type)",
            "CREATE INDEX IF NOT EXISTS idx_categories_type ON categories (type)",
        ),
    ),
    SchemaStep(
        version=3,
        statements=(
            """
            CREATE TABLE IF NOT EXISTS external_cache (
                key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                timestamp INTEGER NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS daily_selections (
                date_key TEXT PRIMARY KEY,
                context TEXT NOT NULL,
                payload TEXT NOT NULL,
                timestamp INTEGER NOT NULL
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_daily_selections_context ON daily_selections (context)",
        ),
    ),
    SchemaStep(
        version=4,
        statements=("ALTER TABLE daily_selections ADD COLUMN outcome TEXT NOT NULL DEFAULT 'success'",),
    ),
)


def selection_context(date_key: str) -> str:
    """Return the context portion of a ``context:YYYY-MM-DD`` key ("" when unscoped)."""
    context, sep, _ = date_key.rpartition(":")
    return context if sep else ""


class PersistentStore:
    """Durable keyed collections backing the catalog mirror.

    Example:
        store = PersistentStore(Path("/cache/streamshelf.db"))
        store.put_categories([Category("1", "News", 0, ContentType.LIVE)])
        store.get_categories(ContentType.LIVE)
    """

    SCHEMA_VERSION = SCHEMA_STEPS[-1].version

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with the given database path.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection for the current thread."""
        if not hasattr(self._local, "connection") or self._local.connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._local.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._local.connection.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrency
            self._local.connection.execute("PRAGMA journal_mode=WAL")
        return self._local.connection

    @contextmanager
    def _write(self) -> Iterator[sqlite3.Connection]:
        """Serialize a write transaction; sqlite errors surface as CacheWriteFailure."""
        with self._write_lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                raise CacheWriteFailure(f"Write to {self.db_path} failed: {exc}") from exc

    def _init_schema(self) -> None:
        with self._write() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            current_version = row["version"] if row else 0

            for step in SCHEMA_STEPS:
                if step.version <= current_version:
                    continue
                LOGGER.debug("Applying schema step %d to %s", step.version, self.db_path)
                for statement in step.statements:
                    conn.execute(statement)
                if step.breaking:
                    for table in step.clears:
                        LOGGER.warning("Schema step %d clears collection '%s'", step.version, table)
                        conn.execute(f"DELETE FROM {table}")

            if current_version < self.SCHEMA_VERSION:
                conn.execute("DELETE FROM schema_version")
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,))

    # Categories

    def put_categories(self, categories: Iterable[Category]) -> int:
        rows = [
            (cat.type.value, cat.category_id, cat.category_name, cat.parent_id)
            for cat in categories
        ]
        if not rows:
            return 0
        with self._write() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO categories (type, category_id, category_name, parent_id)
                VALUES (?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    def get_categories(self, content_type: Optional[ContentType] = None) -> list[Category]:
        conn = self._get_connection()
        if content_type is None:
            cursor = conn.execute("SELECT * FROM categories")
        else:
            cursor = conn.execute("SELECT * FROM categories WHERE type = ?", (content_type.value,))
        return [
            Category(
                category_id=row["category_id"],
                category_name=row["category_name"],
                parent_id=row["parent_id"],
                type=ContentType(row["type"]),
            )
            for row in cursor
        ]

    # Streams

    def put_streams(self, batch: Iterable[StreamEntry]) -> int:
        """Upsert a batch of stream entries in a single transaction."""
        rows = [
            (
                entry.id,
                entry.category_id,
                entry.name,
                entry.type.value,
                entry.icon,
                entry.rating,
                entry.added,
                entry.raw_json(),
            )
            for entry in batch
        ]
        if not rows:
            return 0
        with self._write() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO streams (id, category_id, name, type, icon, rating, added, raw)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
        return len(rows)

    @staticmethod
    def _row_to_stream(row: sqlite3.Row) -> StreamEntry:
        return StreamEntry(
            id=row["id"],
            category_id=row["category_id"],
            name=row["name"],
            type=ContentType(row["type"]),
            icon=row["icon"],
            rating=row["rating"],
            added=row["added"],
            raw=json.loads(row["raw"]),
        )

    def get_streams_by_category(self, category_id: str, content_type: ContentType) -> list[StreamEntry]:
        conn = self._get_connection()
        cursor = conn.execute(
            "SELECT * FROM streams WHERE category_id = ? AND type = ?",
            (str(category_id), content_type.value),
        )
        return [self._row_to_stream(row) for row in cursor]

    def get_all_streams(self, content_type: Optional[ContentType] = None) -> list[StreamEntry]:
        conn = self._get_connection()
        if content_type is None:
            cursor = conn.execute("SELECT * FROM streams")
        else:
            cursor = conn.execute("SELECT * FROM streams WHERE type = ?", (content_type.value,))
        return [self._row_to_stream(row) for row in cursor]

    # Details

    def put_detail(self, detail_id: str, payload: dict[str, Any]) -> DetailRecord:
        record = DetailRecord(id=str(detail_id), payload=payload, timestamp=now_ms())
        with self._write() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO details (id, payload, timestamp) VALUES (?, ?, ?)",
                (record.id, json.dumps(payload, ensure_ascii=False), record.timestamp),
            )
        return record

    def get_detail(self, detail_id: str) -> Optional[DetailRecord]:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM details WHERE id = ?", (str(detail_id),)).fetchone()
        if row is None:
            return None
        return DetailRecord(id=row["id"], payload=json.loads(row["payload"]), timestamp=row["timestamp"])

    # Sync metadata

    def put_sync_meta(self, meta: SyncMetadata) -> None:
        with self._write() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sync_metadata (type, last_sync) VALUES (?, ?)",
                (meta.type, int(meta.last_sync)),
            )

    def get_sync_meta(self, meta_type: str) -> Optional[SyncMetadata]:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM sync_metadata WHERE type = ?", (meta_type,)).fetchone()
        if row is None:
            return None
        return SyncMetadata(type=row["type"], last_sync=row["last_sync"])

    # External metadata cache

    def put_external_cache(self, key: str, payload: Any, *, timestamp: Optional[int] = None) -> None:
        stamp = now_ms() if timestamp is None else timestamp
        with self._write() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO external_cache (key, payload, timestamp) VALUES (?, ?, ?)",
                (key, json.dumps(payload, ensure_ascii=False), stamp),
            )

    def get_external_cache(self, key: str) -> Optional[ExternalCacheEntry]:
        """Return the cached entry regardless of age; callers apply the TTL."""
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM external_cache WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return ExternalCacheEntry(key=row["key"], payload=json.loads(row["payload"]), timestamp=row["timestamp"])

    # Daily selections

    def put_daily_selection(
        self, date_key: str, payload: list[dict[str, Any]], outcome: str = "success"
    ) -> DailySelectionEntry:
        entry = DailySelectionEntry(
            date_key=date_key,
            context=selection_context(date_key),
            payload=payload,
            timestamp=now_ms(),
            outcome=outcome,
        )
        with self._write() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO daily_selections (date_key, context, payload, timestamp, outcome)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    entry.date_key,
                    entry.context,
                    json.dumps(payload, ensure_ascii=False),
                    entry.timestamp,
                    entry.outcome,
                ),
            )
        return entry

    def get_daily_selection(self, date_key: str) -> Optional[DailySelectionEntry]:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM daily_selections WHERE date_key = ?", (date_key,)).fetchone()
        if row is None:
            return None
        return DailySelectionEntry(
            date_key=row["date_key"],
            context=row["context"],
            payload=json.loads(row["payload"]),
            timestamp=row["timestamp"],
            outcome=row["outcome"],
        )

    def purge_expired_daily_selections(self, current_key: str) -> int:
        """Delete every selection of the same context whose key differs from ``current_key``.

        Returns:
            Number of entries deleted
        """
        with self._write() as conn:
            cursor = conn.execute(
                "DELETE FROM daily_selections WHERE context = ? AND date_key != ?",
                (selection_context(current_key), current_key),
            )
        return cursor.rowcount

    # Maintenance

    def clear_all(self) -> None:
        """Wipe every collection; each collection is cleared in its own transaction."""
        for table in COLLECTIONS:
            with self._write() as conn:
                conn.execute(f"DELETE FROM {table}")
        LOGGER.info("Cleared all cached collections in %s", self.db_path)

    def get_stats(self) -> dict[str, int]:
        conn = self._get_connection()
        return {
            table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in COLLECTIONS
        }

    def close(self) -> None:
        """Close the database connection of the current thread."""
        if hasattr(self._local, "connection") and self._local.connection is not None:
            self._local.connection.close()
            self._local.connection = None
