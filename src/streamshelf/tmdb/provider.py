"""Cached metadata provider backed by TMDb.

Every endpoint response is kept in the store's external cache for
``ttl_hours``. When TMDb fails, any older cached copy is returned and marked
stale so callers can report a degraded result instead of an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import CacheWriteFailure, MalformedResponse, NetworkFailure
from ..persistence import PersistentStore
from ..utils import now_ms, params_digest
from .client import TMDbClient
from .models import Genre, MetadataItem, MetadataKind, Video

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

HOUR_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class Fetched(Generic[T]):
    value: T
    stale: bool = False


class MetadataProvider(Protocol):
    """External metadata source consumed by the selection engine."""

    @property
    def is_configured(self) -> bool: ...

    def movie_genres(self) -> Fetched[list[Genre]]: ...

    def tv_genres(self) -> Fetched[list[Genre]]: ...

    def discover_movies(
        self, *, genre_id: Optional[int] = None, year: Optional[int] = None, page: int = 1
    ) -> Fetched[list[MetadataItem]]: ...

    def discover_tv(self, *, genre_id: Optional[int] = None, page: int = 1) -> Fetched[list[MetadataItem]]: ...

    def trending(self, page: int = 1) -> Fetched[list[MetadataItem]]: ...


def cache_key(endpoint: str, params: Optional[dict[str, Any]]) -> str:
    return f"tmdb:{endpoint}:{params_digest(params)}"


def _entries(payload: dict[str, Any], field: str) -> list[dict[str, Any]]:
    entries = payload.get(field)
    if not isinstance(entries, list):
        raise MalformedResponse(f"TMDb response has no '{field}' list")
    return [entry for entry in entries if isinstance(entry, dict)]


def _validated(model: type[M], entries: list[dict[str, Any]]) -> list[M]:
    """Validate each entry, skipping the ones that do not fit ``model``."""
    parsed: list[M] = []
    for entry in entries:
        try:
            parsed.append(model.model_validate(entry))
        except ValidationError as exc:
            LOGGER.debug("Skipping invalid %s entry: %s", model.__name__, exc.errors()[0]["msg"])
    return parsed


def _parse_items(payload: dict[str, Any], kind_hint: Optional[MetadataKind]) -> list[MetadataItem]:
    items: list[MetadataItem] = []
    for entry in _entries(payload, "results"):
        item = MetadataItem.from_payload(entry, kind_hint)
        if item is not None:
            items.append(item)
    return items


def _parse_genres(payload: dict[str, Any]) -> list[Genre]:
    return _validated(Genre, _entries(payload, "genres"))


def _parse_videos(payload: dict[str, Any]) -> list[Video]:
    return _validated(Video, _entries(payload, "results"))


class TMDbMetadataProvider:
    """TMDb-backed :class:`MetadataProvider` with a persistent response cache."""

    def __init__(
        self,
        store: PersistentStore,
        client: Optional[TMDbClient],
        *,
        ttl_hours: int = 24,
        language: str = "en-US",
    ) -> None:
        self.store = store
        self.client = client
        self.ttl_ms = ttl_hours * HOUR_MS
        self.language = language

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    def _fetch_with_cache(
        self,
        endpoint: str,
        params: Optional[dict[str, Any]],
        parse: Callable[[dict[str, Any]], T],
    ) -> Fetched[T]:
        """Return a fresh cached response, a new response, or a stale fallback.

        A response is parsed before it is cached, so a reply ``parse`` rejects
        never replaces a usable cached copy.

        Raises:
            NetworkFailure: When TMDb cannot be reached and nothing is cached
            MalformedResponse: When TMDb returns garbage and nothing is cached
            NotFound: When TMDb has no such resource
        """
        params = dict(params or {})
        key = cache_key(endpoint, {**params, "language": self.language})
        cached = self.store.get_external_cache(key)
        fallback: Optional[T] = None
        if cached is not None:
            try:
                fallback = parse(cached.payload)
            except MalformedResponse as exc:
                LOGGER.warning("Ignoring unusable TMDb cache entry for %s: %s", endpoint, exc)
                cached = None
        if cached is not None and cached.age_ms(now_ms()) < self.ttl_ms:
            LOGGER.debug("TMDb cache hit: %s", endpoint)
            return Fetched(fallback)

        try:
            if self.client is None:
                raise NetworkFailure("TMDb is not configured")
            payload = self.client.get(endpoint, params)
            value = parse(payload)
        except (NetworkFailure, MalformedResponse) as exc:
            if cached is None:
                raise
            LOGGER.warning("Using stale TMDb cache for %s: %s", endpoint, exc)
            return Fetched(fallback, stale=True)

        try:
            self.store.put_external_cache(key, payload)
        except CacheWriteFailure as exc:
            LOGGER.warning("Could not cache TMDb response for %s: %s", endpoint, exc)
        return Fetched(value)

    def _items(
        self, endpoint: str, params: dict[str, Any], kind_hint: Optional[MetadataKind]
    ) -> Fetched[list[MetadataItem]]:
        return self._fetch_with_cache(endpoint, params, lambda payload: _parse_items(payload, kind_hint))

    def movie_genres(self) -> Fetched[list[Genre]]:
        return self._fetch_with_cache("/genre/movie/list", None, _parse_genres)

    def tv_genres(self) -> Fetched[list[Genre]]:
        return self._fetch_with_cache("/genre/tv/list", None, _parse_genres)

    def discover_movies(
        self, *, genre_id: Optional[int] = None, year: Optional[int] = None, page: int = 1
    ) -> Fetched[list[MetadataItem]]:
        params: dict[str, Any] = {"sort_by": "popularity.desc", "page": page}
        if genre_id is not None:
            params["with_genres"] = genre_id
        if year is not None:
            params["primary_release_year"] = year
        return self._items("/discover/movie", params, "movie")

    def discover_tv(self, *, genre_id: Optional[int] = None, page: int = 1) -> Fetched[list[MetadataItem]]:
        params: dict[str, Any] = {"sort_by": "popularity.desc", "page": page}
        if genre_id is not None:
            params["with_genres"] = genre_id
        return self._items("/discover/tv", params, "tv")

    def trending(self, page: int = 1) -> Fetched[list[MetadataItem]]:
        return self._items("/trending/all/day", {"page": page}, None)

    def search(self, kind: MetadataKind, query: str) -> Optional[MetadataItem]:
        """First search hit for ``query``, or None."""
        items = self._items(f"/search/{kind}", {"query": query}, kind).value
        return items[0] if items else None

    def videos(self, kind: MetadataKind, tmdb_id: int) -> list[Video]:
        return self._fetch_with_cache(f"/{kind}/{tmdb_id}/videos", None, _parse_videos).value

    def find_trailer(self, kind: MetadataKind, tmdb_id: int) -> Optional[Video]:
        """Pick the official YouTube trailer, then any YouTube trailer, then a teaser."""
        youtube = [video for video in self.videos(kind, tmdb_id) if video.site == "YouTube"]
        for matches in (
            lambda video: video.type == "Trailer" and video.official,
            lambda video: video.type == "Trailer",
            lambda video: video.type == "Teaser",
        ):
            for video in youtube:
                if matches(video):
                    return video
        return None
