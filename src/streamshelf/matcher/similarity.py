"""Edit-distance similarity between normalized titles."""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein


def levenshtein(a: str, b: str) -> int:
    """Unit-cost insert/delete/substitute distance."""
    return int(Levenshtein.distance(a, b))


def similarity(a: str, b: str) -> float:
    """Calculate normalized similarity between two strings.

    Defined as ``1 - levenshtein(a, b) / max(len(a), len(b))``; two empty
    strings are identical.

    Returns:
        Float between 0.0 and 1.0 where 1.0 is identical
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein(a, b) / longest
