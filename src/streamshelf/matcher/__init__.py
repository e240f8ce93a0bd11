"""Approximate title matching.

This package is organized into focused modules:

- **normalize**: Ordered pipeline of pure title transforms
- **similarity**: Levenshtein-based similarity scoring
- **best_match**: Prepared candidate lists and best-match selection

All functions are pure and safe to call from several threads at once.
"""

from .best_match import (
    DEFAULT_THRESHOLD,
    MAX_LENGTH_DELTA,
    MatchResult,
    PreparedItem,
    find_best_match,
    prepare_for_matching,
)
from .normalize import NORMALIZATION_STEPS, clear_normalize_cache, normalize_title
from .similarity import levenshtein, similarity

__all__ = [
    "DEFAULT_THRESHOLD",
    "MAX_LENGTH_DELTA",
    "MatchResult",
    "NORMALIZATION_STEPS",
    "PreparedItem",
    "clear_normalize_cache",
    "find_best_match",
    "levenshtein",
    "normalize_title",
    "prepare_for_matching",
    "similarity",
]
