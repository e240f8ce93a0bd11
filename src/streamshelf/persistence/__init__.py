"""Persistence layer for the catalog mirror.

Public API:
- PersistentStore: SQLite-backed keyed collections (catalog, details, caches)
- SchemaStep: one additive schema migration step
- selection_context: extract the context part of a daily selection key

Example:
    from streamshelf.persistence import PersistentStore

    store = PersistentStore(Path("/path/to/streamshelf.db"))
    store.put_streams(batch)
    movies = store.get_all_streams(ContentType.MOVIE)
"""

from .store import COLLECTIONS, SCHEMA_STEPS, PersistentStore, SchemaStep, selection_context

__all__ = [
    "COLLECTIONS",
    "SCHEMA_STEPS",
    "PersistentStore",
    "SchemaStep",
    "selection_context",
]
