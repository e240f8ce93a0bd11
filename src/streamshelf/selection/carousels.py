"""Carousel configuration and resolved carousel payloads."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any, Literal, Mapping, Optional, Sequence

from ..models import StreamEntry
from ..tmdb import Genre, MetadataItem, image_url
from .seeding import daily_seed, seeded_shuffle

CarouselKind = Literal["movie", "tv", "trending"]

FIXED_CAROUSEL_COUNT = 2


@dataclass(frozen=True)
class CarouselConfig:
    id: str
    title: str
    kind: CarouselKind
    genre_id: Optional[int] = None
    year: Optional[int] = None


@dataclass
class CarouselItem:
    """A local catalog item, optionally enriched with the metadata it matched."""

    stream_id: str
    name: str
    content_type: str
    icon: Optional[str] = None
    score: Optional[float] = None
    tmdb_id: Optional[int] = None
    title: Optional[str] = None
    overview: str = ""
    poster_url: Optional[str] = None
    backdrop_url: Optional[str] = None
    release_date: Optional[str] = None

    @classmethod
    def from_entry(cls, entry: StreamEntry) -> CarouselItem:
        return cls(stream_id=entry.id, name=entry.name, content_type=entry.type.value, icon=entry.icon)

    @classmethod
    def from_match(cls, entry: StreamEntry, metadata: MetadataItem, score: float) -> CarouselItem:
        item = cls.from_entry(entry)
        item.score = round(score, 4)
        item.tmdb_id = metadata.id
        item.title = metadata.title
        item.overview = metadata.overview
        item.poster_url = image_url(metadata.poster_path)
        item.backdrop_url = image_url(metadata.backdrop_path)
        item.release_date = metadata.release_date
        return item

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CarouselItem:
        return cls(**{key: data.get(key) for key in cls.__dataclass_fields__ if key in data})


@dataclass
class Carousel:
    id: str
    title: str
    kind: CarouselKind
    items: list[CarouselItem] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "kind": self.kind,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Carousel:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            kind=data.get("kind") or "movie",
            items=[CarouselItem.from_dict(item) for item in data.get("items") or []],
        )


def generate_daily_carousels(
    movie_genres: Sequence[Genre],
    tv_genres: Sequence[Genre],
    max_carousels: int = 6,
    day: Optional[dt.date] = None,
) -> list[CarouselConfig]:
    """Fixed carousels followed by a day-seeded pick of genre carousels."""
    day = day or dt.date.today()
    fixed = [
        CarouselConfig(id="new-releases", title="New Releases", kind="movie", year=day.year),
        CarouselConfig(id="trending", title="Trending Today", kind="trending"),
    ]
    pool = [
        CarouselConfig(id=f"movie-genre-{genre.id}", title=f"{genre.name} Movies", kind="movie", genre_id=genre.id)
        for genre in movie_genres
    ] + [
        CarouselConfig(id=f"tv-genre-{genre.id}", title=f"{genre.name} Series", kind="tv", genre_id=genre.id)
        for genre in tv_genres
    ]
    remaining = max(0, max_carousels - FIXED_CAROUSEL_COUNT)
    return fixed + seeded_shuffle(pool, daily_seed(day))[:remaining]
