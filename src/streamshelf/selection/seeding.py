"""Deterministic day-scoped randomness."""

from __future__ import annotations

import datetime as dt
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")

_INT32 = 1 << 32

# Numerical Recipes LCG parameters
LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223


def _to_int32(value: int) -> int:
    value &= _INT32 - 1
    return value - _INT32 if value >= _INT32 // 2 else value


def day_string(day: dt.date) -> str:
    """Unpadded ``YYYY-M-D`` form used for seeding."""
    return f"{day.year}-{day.month}-{day.day}"


def daily_seed(day: Optional[dt.date] = None) -> int:
    """Non-negative seed that is stable for one calendar day.

    Rolling hash ``h = h * 31 + ord(c)`` over :func:`day_string`, wrapped to
    a signed 32-bit integer after every step.
    """
    text = day_string(day or dt.date.today())
    value = 0
    for char in text:
        value = _to_int32(value * 31 + ord(char))
    return abs(value)


def seeded_shuffle(items: Sequence[T], seed: int) -> list[T]:
    """Fisher-Yates shuffle into a new list, one LCG step per swap."""
    shuffled = list(items)
    state = seed % _INT32
    for i in range(len(shuffled) - 1, 0, -1):
        state = (state * LCG_MULTIPLIER + LCG_INCREMENT) % _INT32
        j = state * (i + 1) // _INT32
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
