"""Best-candidate selection for cross-matching external titles to catalog items."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, Sequence, TypeVar

from .normalize import normalize_title
from .similarity import similarity

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_THRESHOLD = 0.85

# Candidates whose normalized length differs from the target by more than this
# are never scored. Can miss matches at thresholds below ~0.7.
MAX_LENGTH_DELTA = 5


@dataclass(frozen=True)
class PreparedItem(Generic[T]):
    normalized_name: str
    item: T


@dataclass(frozen=True)
class MatchResult(Generic[T]):
    item: T
    score: float


def _default_name(item: Any) -> str:
    if isinstance(item, Mapping):
        return str(item.get("name") or "")
    return str(getattr(item, "name", "") or "")


def prepare_for_matching(
    items: Iterable[T],
    *,
    name_of: Callable[[T], str] = _default_name,
) -> list[PreparedItem[T]]:
    """Normalize every item name once.

    Reuse the returned list for all queries against the same collection.
    """
    return [PreparedItem(normalized_name=normalize_title(name_of(item)), item=item) for item in items]


def find_best_match(
    target_title: str,
    prepared: Sequence[PreparedItem[T]],
    threshold: float = DEFAULT_THRESHOLD,
) -> Optional[MatchResult[T]]:
    """Find the closest prepared item to ``target_title``.

    An exact normalized match wins immediately with score 1.0. Otherwise the
    highest similarity wins, ties going to the earliest candidate.

    Returns:
        MatchResult when the best score reaches ``threshold``, else None
    """
    normalized_target = normalize_title(target_title)
    best: Optional[PreparedItem[T]] = None
    best_score = 0.0

    for candidate in prepared:
        if candidate.normalized_name == normalized_target:
            return MatchResult(item=candidate.item, score=1.0)

        if abs(len(normalized_target) - len(candidate.normalized_name)) > MAX_LENGTH_DELTA:
            continue

        score = similarity(normalized_target, candidate.normalized_name)
        if score > best_score:
            best_score = score
            best = candidate

    if best is not None and best_score >= threshold:
        LOGGER.debug(
            "Fuzzy match: %r -> %r (score %.2f)",
            target_title,
            best.normalized_name,
            best_score,
        )
        return MatchResult(item=best.item, score=best_score)
    return None
