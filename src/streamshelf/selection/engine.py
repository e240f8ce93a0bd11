"""Daily carousel and hero banner selection.

Candidates come from the metadata provider and are kept only when they
cross-match an item of the local catalog. Whatever the provider cannot
deliver is filled from a day-seeded shuffle of the local catalog, so a
selection is always reproducible for a given day.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..errors import CacheWriteFailure, Outcome, StreamshelfError
from ..logging_utils import render_fields_block
from ..matcher import PreparedItem, find_best_match, prepare_for_matching
from ..models import SYNC_META_KEY, ContentType, StreamEntry
from ..session import Session
from ..tmdb import Fetched, Genre, MetadataItem, MetadataProvider
from .carousels import Carousel, CarouselConfig, CarouselItem, generate_daily_carousels
from .seeding import daily_seed, seeded_shuffle

LOGGER = logging.getLogger(__name__)

DEFAULT_CONTEXT = "home"
HERO_CONTEXT = "hero"

# Seed offsets per hero content filter: (local fill, final order)
_HERO_SEED_OFFSETS = {
    None: (0, 0),
    ContentType.MOVIE: (1, 10),
    ContentType.SERIES: (2, 20),
}


@dataclass
class SelectionResult:
    outcome: Outcome
    carousels: list[Carousel] = field(default_factory=list)
    from_cache: bool = False


@dataclass
class HeroResult:
    outcome: Outcome
    items: list[CarouselItem] = field(default_factory=list)
    from_cache: bool = False


def selection_key(context: str, day: dt.date) -> str:
    return f"{context}:{day.isoformat()}"


def _content_types_for(kind: str) -> tuple[ContentType, ...]:
    if kind == "movie":
        return (ContentType.MOVIE,)
    if kind == "tv":
        return (ContentType.SERIES,)
    return (ContentType.MOVIE, ContentType.SERIES)


class SelectionEngine:
    """Build and cache the day's carousels for one session."""

    def __init__(self, session: Session, provider: Optional[MetadataProvider] = None) -> None:
        self.session = session
        self.provider = provider
        self._prepared: dict[ContentType, list[PreparedItem[StreamEntry]]] = {}
        self._prepared_sync: Optional[int] = None

    @property
    def provider_available(self) -> bool:
        return self.provider is not None and self.provider.is_configured

    def invalidate_catalog(self) -> None:
        """Forget prepared catalog names."""
        self._prepared.clear()

    def _refresh_catalog(self) -> None:
        """Drop prepared names when the catalog was synced since they were built."""
        meta = self.session.store.get_sync_meta(SYNC_META_KEY)
        last_sync = meta.last_sync if meta else None
        if last_sync != self._prepared_sync:
            self.invalidate_catalog()
            self._prepared_sync = last_sync

    def _catalog(self, content_type: ContentType) -> list[PreparedItem[StreamEntry]]:
        if content_type not in self._prepared:
            entries = sorted(self.session.store.get_all_streams(content_type), key=lambda entry: entry.id)
            self._prepared[content_type] = prepare_for_matching(entries)
        return self._prepared[content_type]

    def _local_items(self, content_types: Sequence[ContentType]) -> list[StreamEntry]:
        return [prepared.item for content_type in content_types for prepared in self._catalog(content_type)]

    # Daily carousels

    def select_daily_content(self, context: str = DEFAULT_CONTEXT, day: Optional[dt.date] = None) -> SelectionResult:
        """Return the day's carousels for ``context``, building them on first call.

        A cached selection reports the outcome it was built with.
        """
        day = day or dt.date.today()
        key = selection_key(context, day)
        store = self.session.store

        cached = store.get_daily_selection(key)
        if cached is not None:
            LOGGER.debug("Reusing daily selection '%s'", key)
            carousels = [Carousel.from_dict(data) for data in cached.payload]
            return SelectionResult(outcome=Outcome(cached.outcome), carousels=carousels, from_cache=True)

        self._refresh_catalog()
        movie_genres, tv_genres, degraded = self._genres()
        configs = generate_daily_carousels(
            movie_genres,
            tv_genres,
            self.session.settings.selection.max_carousels,
            day,
        )

        seed = daily_seed(day)
        carousels: list[Carousel] = []
        fallbacks = 0
        for index, config in enumerate(configs):
            carousel, used_fallback, stale = self._resolve_carousel(config, seed + index)
            if used_fallback:
                fallbacks += 1
            degraded = degraded or used_fallback or stale
            if carousel.items:
                carousels.append(carousel)
            else:
                LOGGER.debug("Dropping empty carousel '%s'", config.id)

        if not carousels:
            outcome = Outcome.EMPTY
        elif degraded:
            outcome = Outcome.DEGRADED
        else:
            outcome = Outcome.SUCCESS

        if carousels:
            self._save(key, [carousel.to_dict() for carousel in carousels], outcome)

        LOGGER.info(
            render_fields_block(
                "Daily Selection Built",
                {
                    "Key": key,
                    "Carousels": f"{len(carousels)} of {len(configs)}",
                    "Local fallbacks": fallbacks,
                    "Outcome": outcome.value,
                },
            )
        )
        return SelectionResult(outcome=outcome, carousels=carousels)

    def _genres(self) -> tuple[list[Genre], list[Genre], bool]:
        if not self.provider_available:
            return [], [], False
        assert self.provider is not None
        try:
            movie = self.provider.movie_genres()
            tv = self.provider.tv_genres()
        except StreamshelfError as exc:
            LOGGER.warning("Genre lists unavailable: %s", exc)
            return [], [], True
        return movie.value, tv.value, movie.stale or tv.stale

    def _fetch_candidates(self, config: CarouselConfig) -> Fetched[list[MetadataItem]]:
        assert self.provider is not None
        if config.kind == "trending":
            return self.provider.trending()
        if config.kind == "tv":
            return self.provider.discover_tv(genre_id=config.genre_id)
        return self.provider.discover_movies(genre_id=config.genre_id, year=config.year)

    def _resolve_carousel(self, config: CarouselConfig, seed: int) -> tuple[Carousel, bool, bool]:
        """Resolve one carousel.

        Returns:
            (carousel, used local fallback, used stale metadata)
        """
        carousel = Carousel(id=config.id, title=config.title, kind=config.kind)
        limit = self.session.settings.selection.items_per_carousel

        if self.provider_available:
            try:
                fetched = self._fetch_candidates(config)
            except StreamshelfError as exc:
                LOGGER.warning("Carousel '%s' falling back to local catalog: %s", config.id, exc)
            else:
                carousel.items = self._cross_match(fetched.value, limit)
                return carousel, False, fetched.stale

        local = self._local_items(_content_types_for(config.kind))
        carousel.items = [CarouselItem.from_entry(entry) for entry in seeded_shuffle(local, seed)[:limit]]
        return carousel, True, False

    def _cross_match(
        self,
        candidates: Sequence[MetadataItem],
        limit: Optional[int],
        *,
        require_backdrop: bool = False,
        content_types: Optional[Sequence[ContentType]] = None,
    ) -> list[CarouselItem]:
        threshold = self.session.settings.selection.match_threshold
        matched: list[CarouselItem] = []
        seen: set[str] = set()
        for candidate in candidates:
            if limit is not None and len(matched) >= limit:
                break
            if require_backdrop and not candidate.backdrop_path:
                continue
            content_type = ContentType.MOVIE if candidate.kind == "movie" else ContentType.SERIES
            if content_types is not None and content_type not in content_types:
                continue
            result = find_best_match(candidate.title, self._catalog(content_type), threshold)
            if result is None or result.item.id in seen:
                continue
            seen.add(result.item.id)
            matched.append(CarouselItem.from_match(result.item, candidate, result.score))
        return matched

    def _save(self, key: str, payload: list[dict], outcome: Outcome) -> None:
        store = self.session.store
        try:
            store.put_daily_selection(key, payload, outcome.value)
            purged = store.purge_expired_daily_selections(key)
        except CacheWriteFailure as exc:
            LOGGER.warning("Could not cache selection '%s': %s", key, exc)
            return
        if purged:
            LOGGER.debug("Purged %d expired selection(s) for '%s'", purged, key)

    # Hero banner

    def select_hero_items(
        self,
        day: Optional[dt.date] = None,
        limit: Optional[int] = None,
        content_type: Optional[ContentType] = None,
    ) -> HeroResult:
        """Pick the day's hero banner items.

        Trending titles that match the local catalog and carry a backdrop come
        first; the rest is topped up from the local catalog. Every trending
        match is a candidate, and a day-seeded shuffle picks the final ``limit``.
        A cached selection reports the outcome it was built with.
        """
        if content_type is ContentType.LIVE:
            raise ValueError("Hero items are only selected for movies and series")
        day = day or dt.date.today()
        limit = limit or self.session.settings.selection.hero_items
        context = f"{HERO_CONTEXT}-{content_type.value if content_type else 'all'}"
        key = selection_key(context, day)

        cached = self.session.store.get_daily_selection(key)
        if cached is not None:
            items = [CarouselItem.from_dict(data) for data in cached.payload]
            return HeroResult(outcome=Outcome(cached.outcome), items=items, from_cache=True)

        self._refresh_catalog()

        content_types = (content_type,) if content_type else (ContentType.MOVIE, ContentType.SERIES)
        fill_offset, order_offset = _HERO_SEED_OFFSETS[content_type]
        seed = daily_seed(day)
        degraded = False

        items: list[CarouselItem] = []
        if self.provider_available:
            assert self.provider is not None
            try:
                trending = self.provider.trending()
            except StreamshelfError as exc:
                LOGGER.warning("Trending unavailable for hero selection: %s", exc)
                degraded = True
            else:
                degraded = trending.stale
                items = self._cross_match(
                    trending.value, None, require_backdrop=True, content_types=content_types
                )

        if len(items) < limit:
            seen = {item.stream_id for item in items}
            for entry in seeded_shuffle(self._local_items(content_types), seed + fill_offset):
                if len(items) >= limit:
                    break
                if entry.id in seen:
                    continue
                seen.add(entry.id)
                items.append(CarouselItem.from_entry(entry))

        items = seeded_shuffle(items, seed + order_offset)[:limit]

        if not items:
            outcome = Outcome.EMPTY
        elif degraded:
            outcome = Outcome.DEGRADED
        else:
            outcome = Outcome.SUCCESS

        if items:
            self._save(key, [item.to_dict() for item in items], outcome)
        return HeroResult(outcome=outcome, items=items)
