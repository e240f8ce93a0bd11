"""Streamshelf core package.

Streamshelf mirrors an IPTV-style remote catalog into a local store and builds
promotional views on top of it:

- **persistence**: SQLite-backed collections for the catalog, details and caches
- **sync**: Three-phase catalog sync with monotonic progress reporting
- **matcher**: Title normalization and fuzzy cross-matching
- **tmdb**: TMDb client and cached metadata provider
- **selection**: Day-seeded carousels and hero items cross-matched to the catalog
- **progress**: Playback progress reconciliation with debounced persistence
- **details**: Lazily cached movie and series detail payloads

Components take an explicit ``Session`` created at login; closing it clears
the local catalog.
"""

from .progress import ProgressTracker
from .selection import SelectionEngine
from .session import Session
from .sync import SyncEngine

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ProgressTracker",
    "SelectionEngine",
    "Session",
    "SyncEngine",
]
