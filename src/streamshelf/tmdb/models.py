"""Pydantic models for TMDb API responses."""

from __future__ import annotations

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

MetadataKind = Literal["movie", "tv"]


class Genre(BaseModel):
    """API response model for a genre."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class MetadataItem(BaseModel):
    """A movie or TV show, tagged once at ingestion.

    TMDb distinguishes movies from shows by which title/date fields are
    present (``title``/``release_date`` versus ``name``/``first_air_date``),
    or by ``media_type`` on mixed endpoints such as trending. ``from_payload``
    resolves that once into ``kind`` and a uniform ``title``/``release_date``.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    kind: MetadataKind
    title: str
    overview: str = ""
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    release_date: Optional[str] = None
    vote_average: float = 0.0
    genre_ids: list[int] = Field(default_factory=list)

    @property
    def year(self) -> Optional[int]:
        if not self.release_date or len(self.release_date) < 4:
            return None
        try:
            return int(self.release_date[:4])
        except ValueError:
            return None

    @classmethod
    def from_payload(
        cls,
        data: Mapping[str, Any],
        kind_hint: Optional[MetadataKind] = None,
    ) -> Optional[MetadataItem]:
        """Build a tagged item, or None for people and unparsable entries."""
        kind = data.get("media_type") or kind_hint or ("movie" if "title" in data else "tv")
        if kind not in ("movie", "tv"):
            return None
        title = data.get("title") if kind == "movie" else data.get("name")
        title = title or data.get("title") or data.get("name")
        release = data.get("release_date") if kind == "movie" else data.get("first_air_date")
        try:
            return cls.model_validate(
                {
                    **data,
                    "kind": kind,
                    "title": title or "",
                    "release_date": release or None,
                    "overview": data.get("overview") or "",
                    "vote_average": data.get("vote_average") or 0.0,
                    "genre_ids": data.get("genre_ids") or [],
                }
            )
        except ValidationError:
            return None


class Video(BaseModel):
    """API response model for a video (trailer, teaser, clip)."""

    model_config = ConfigDict(extra="ignore")

    key: str
    name: str = ""
    site: str = ""
    type: str = ""
    official: bool = False
