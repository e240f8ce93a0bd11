from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class ContentType(str, Enum):
    LIVE = "live"
    MOVIE = "movie"
    SERIES = "series"


# Remote catalog actions per content type: (categories, items, detail)
CATALOG_ACTIONS: dict[ContentType, tuple[str, str, Optional[str]]] = {
    ContentType.LIVE: ("get_live_categories", "get_live_streams", None),
    ContentType.MOVIE: ("get_vod_categories", "get_vod_streams", "get_vod_info"),
    ContentType.SERIES: ("get_series_categories", "get_series", "get_series_info"),
}

SYNC_META_KEY = "categories"


@dataclass
class Category:
    category_id: str
    category_name: str
    parent_id: int
    type: ContentType

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], content_type: ContentType) -> "Category":
        parent = payload.get("parent_id") or 0
        try:
            parent_id = int(parent)
        except (TypeError, ValueError):
            parent_id = 0
        return cls(
            category_id=str(payload.get("category_id", "")),
            category_name=str(payload.get("category_name") or ""),
            parent_id=parent_id,
            type=content_type,
        )


@dataclass
class StreamEntry:
    """A catalog item as mirrored from the provider.

    ``raw`` keeps the provider payload untouched so detail views can read
    fields the engine never interprets.
    """

    id: str
    category_id: str
    name: str
    type: ContentType
    icon: Optional[str] = None
    rating: Optional[str] = None
    added: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any], content_type: ContentType) -> Optional["StreamEntry"]:
        """Build an entry from a provider item, or ``None`` when it has no id."""
        raw_id = payload.get("stream_id") or payload.get("series_id")
        if raw_id in (None, ""):
            return None
        icon = payload.get("stream_icon") or payload.get("cover") or None
        rating = payload.get("rating")
        added = payload.get("added")
        return cls(
            id=str(raw_id),
            category_id=str(payload.get("category_id", "")),
            name=str(payload.get("name") or ""),
            type=content_type,
            icon=str(icon) if icon else None,
            rating=str(rating) if rating not in (None, "") else None,
            added=str(added) if added not in (None, "") else None,
            raw=dict(payload),
        )

    def raw_json(self) -> str:
        return json.dumps(self.raw, ensure_ascii=False)


@dataclass
class DetailRecord:
    id: str
    payload: dict[str, Any]
    timestamp: int


@dataclass
class SyncMetadata:
    type: str
    last_sync: int  # epoch milliseconds


@dataclass
class ExternalCacheEntry:
    key: str
    payload: Any
    timestamp: int  # epoch milliseconds

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.timestamp


@dataclass
class DailySelectionEntry:
    date_key: str
    context: str
    payload: list[dict[str, Any]]
    timestamp: int
    outcome: str = "success"


@dataclass
class WatchProgressRecord:
    """Playback position for a movie or a series episode.

    Attributes:
        stream_id: Movie stream id, or the episode id for series playback
        type: "movie" or "series"
        position: Current playback position in seconds
        duration: Total duration in seconds (0 when unknown)
        updated_at: Epoch milliseconds of the last update
        display_name: Label shown in "continue watching" rows
        image_ref: Poster or cover URL
        episode_id: Episode id (series only)
        series_id: Series id (series only)
        season_num: Season number (series only)
        episode_num: Episode number (series only)
    """

    stream_id: str
    type: str
    position: float
    duration: float = 0.0
    updated_at: int = 0
    display_name: str = ""
    image_ref: Optional[str] = None
    episode_id: Optional[str] = None
    series_id: Optional[str] = None
    season_num: Optional[int] = None
    episode_num: Optional[int] = None

    @property
    def is_series(self) -> bool:
        return self.type == "series"

    @property
    def content_id(self) -> str:
        if self.is_series and self.series_id:
            return str(self.series_id)
        return str(self.stream_id)

    @property
    def episode_key(self) -> str:
        """Identity of the playable unit (episode for series, stream for movies)."""
        if self.is_series:
            return str(self.episode_id or self.stream_id)
        return str(self.stream_id)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WatchProgressRecord":
        def _opt_str(value: Any) -> Optional[str]:
            return str(value) if value not in (None, "") else None

        def _opt_int(value: Any) -> Optional[int]:
            try:
                return int(value) if value not in (None, "") else None
            except (TypeError, ValueError):
                return None

        return cls(
            stream_id=str(data.get("stream_id", "")),
            type=str(data.get("type") or "movie"),
            position=float(data.get("position") or 0),
            duration=float(data.get("duration") or 0),
            updated_at=int(data.get("updated_at") or 0),
            display_name=str(data.get("display_name") or ""),
            image_ref=_opt_str(data.get("image_ref")),
            episode_id=_opt_str(data.get("episode_id")),
            series_id=_opt_str(data.get("series_id")),
            season_num=_opt_int(data.get("season_num")),
            episode_num=_opt_int(data.get("episode_num")),
        )
