"""Title normalization for cross-matching catalog names against metadata titles.

Normalization is an ordered pipeline of small string transforms. Each step is
a pure function and can be exercised on its own; ``normalize_title`` runs the
full pipeline. The order keeps the pipeline idempotent: punctuation is removed
before years so "19.99" cannot turn into a year on a second pass, and leading
articles are stripped last so annotations such as "[HD] The Matrix" cannot
expose a new article after the first pass.
"""

from __future__ import annotations

import functools
import re
from typing import Callable

# Leading articles and determiners (English, Portuguese, Spanish, French, German)
LEADING_ARTICLES = (
    "the", "a", "an",
    "o", "os", "as", "um", "uma",
    "el", "la", "los", "las",
    "le", "les", "un", "une", "des",
    "der", "die", "das",
)

# Release quality and source markers; the marker and everything after it is dropped
QUALITY_TOKENS = (
    "720p", "1080p", "2160p", "480p", "4k", "uhd", "fhd", "hd",
    "bluray", "brrip", "bdrip", "webrip", "webdl", "hdtv", "hdrip", "dvdrip",
    "cam", "ts", "tc", "x264", "x265", "hevc",
)

_BRACKETED = re.compile(r"\[[^\]]*\]|\([^)]*\)")
_PUNCTUATION = re.compile(r"[^\w\s]|_")
_YEAR = re.compile(r"\b\d{4}\b")
_QUALITY = re.compile(r"\b(?:%s)\b.*$" % "|".join(QUALITY_TOKENS))
_WHITESPACE = re.compile(r"\s+")
_ARTICLE = re.compile(r"^(?:%s)\s+" % "|".join(LEADING_ARTICLES))


def lowercase(value: str) -> str:
    return value.lower()


def strip_annotations(value: str) -> str:
    """Drop ``[...]`` tags and ``(...)`` annotations."""
    return _BRACKETED.sub(" ", value)


def strip_punctuation(value: str) -> str:
    """Keep letters (accented included), digits and whitespace."""
    return _PUNCTUATION.sub("", value)


def strip_years(value: str) -> str:
    return _YEAR.sub(" ", value)


def strip_quality_tags(value: str) -> str:
    return _QUALITY.sub("", value)


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(" ", value).strip()


def strip_leading_articles(value: str) -> str:
    """Remove leading articles until none remain ("the a team" -> "team")."""
    previous = None
    while previous != value:
        previous = value
        value = _ARTICLE.sub("", value)
    return value


NORMALIZATION_STEPS: tuple[tuple[str, Callable[[str], str]], ...] = (
    ("lowercase", lowercase),
    ("annotations", strip_annotations),
    ("punctuation", strip_punctuation),
    ("years", strip_years),
    ("quality", strip_quality_tags),
    ("whitespace", collapse_whitespace),
    ("articles", strip_leading_articles),
)


@functools.lru_cache(maxsize=4096)
def normalize_title(title: str) -> str:
    """Return the comparison form of a title.

    Example:
        >>> normalize_title("Inception (2010) [1080p]")
        'inception'
    """
    value = title or ""
    for _, step in NORMALIZATION_STEPS:
        value = step(value)
    return value.strip()


def clear_normalize_cache() -> None:
    """Clear the normalize_title LRU cache."""
    normalize_title.cache_clear()
