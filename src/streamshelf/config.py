from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from .utils import load_yaml_file, parse_env_bool, validate_url

DEFAULT_CONFIG_PATH = Path("/config/streamshelf.yaml")


@dataclass
class CatalogSettings:
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.username and self.password)


@dataclass
class MetadataSettings:
    """TMDb access and cache settings."""

    api_key: Optional[str] = None
    language: str = "en-US"
    ttl_hours: int = 24
    timeout: float = 15.0


@dataclass
class SyncSettings:
    batch_size: int = 1000
    max_age_hours: int = 24
    auto: bool = True


@dataclass
class SelectionSettings:
    max_carousels: int = 6
    items_per_carousel: int = 20
    match_threshold: float = 0.85
    hero_items: int = 5


@dataclass
class ProgressSettings:
    state_dir: Optional[Path] = None
    debounce_seconds: float = 2.0
    min_delta_seconds: float = 5.0


@dataclass
class Settings:
    cache_dir: Path = field(default_factory=lambda: Path("/data/cache"))
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    metadata: MetadataSettings = field(default_factory=MetadataSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    selection: SelectionSettings = field(default_factory=SelectionSettings)
    progress: ProgressSettings = field(default_factory=ProgressSettings)

    @property
    def db_path(self) -> Path:
        return self.cache_dir / "streamshelf.db"

    @property
    def progress_dir(self) -> Path:
        return self.progress.state_dir or (self.cache_dir / "state")


def _ensure_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{field_name}' must be provided as a mapping when specified")
    return value


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _positive_number(value: Any, *, field_name: str, cast: type = float) -> Any:
    try:
        number = cast(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' must be a number") from exc
    if number <= 0:
        raise ValueError(f"'{field_name}' must be greater than zero")
    return number


def _build_catalog_settings(data: dict[str, Any]) -> CatalogSettings:
    url = _clean_str(data.get("url"))
    if url is not None and not validate_url(url):
        raise ValueError("'catalog.url' must be an http(s) URL")
    return CatalogSettings(
        url=url,
        username=_clean_str(data.get("username")),
        password=_clean_str(data.get("password")),
        timeout=_positive_number(data.get("timeout", 30.0), field_name="catalog.timeout"),
    )


def _build_metadata_settings(data: dict[str, Any]) -> MetadataSettings:
    api_key = _clean_str(os.getenv("TMDB_API_KEY")) or _clean_str(data.get("api_key"))
    return MetadataSettings(
        api_key=api_key,
        language=_clean_str(data.get("language")) or "en-US",
        ttl_hours=_positive_number(data.get("ttl_hours", 24), field_name="metadata.ttl_hours", cast=int),
        timeout=_positive_number(data.get("timeout", 15.0), field_name="metadata.timeout"),
    )


def _build_sync_settings(data: dict[str, Any]) -> SyncSettings:
    env_auto = parse_env_bool(os.getenv("STREAMSHELF_AUTO_SYNC"))
    return SyncSettings(
        batch_size=_positive_number(data.get("batch_size", 1000), field_name="sync.batch_size", cast=int),
        max_age_hours=_positive_number(data.get("max_age_hours", 24), field_name="sync.max_age_hours", cast=int),
        auto=bool(data.get("auto", True)) if env_auto is None else env_auto,
    )


def _build_selection_settings(data: dict[str, Any]) -> SelectionSettings:
    max_carousels = _positive_number(
        data.get("max_carousels", 6), field_name="selection.max_carousels", cast=int
    )
    if max_carousels < 2:
        raise ValueError("'selection.max_carousels' must leave room for the two fixed carousels")
    threshold = _positive_number(
        data.get("match_threshold", 0.85), field_name="selection.match_threshold"
    )
    if threshold > 1:
        raise ValueError("'selection.match_threshold' must be between 0 and 1")
    return SelectionSettings(
        max_carousels=max_carousels,
        items_per_carousel=_positive_number(
            data.get("items_per_carousel", 20), field_name="selection.items_per_carousel", cast=int
        ),
        match_threshold=threshold,
        hero_items=_positive_number(data.get("hero_items", 5), field_name="selection.hero_items", cast=int),
    )


def _build_progress_settings(data: dict[str, Any]) -> ProgressSettings:
    state_dir = _clean_str(data.get("state_dir"))
    return ProgressSettings(
        state_dir=Path(state_dir).expanduser() if state_dir else None,
        debounce_seconds=_positive_number(
            data.get("debounce_seconds", 2.0), field_name="progress.debounce_seconds"
        ),
        min_delta_seconds=_positive_number(
            data.get("min_delta_seconds", 5.0), field_name="progress.min_delta_seconds"
        ),
    )


def build_settings(data: dict[str, Any]) -> Settings:
    cache_dir = Path(data.get("cache_dir", "/data/cache")).expanduser()
    return Settings(
        cache_dir=cache_dir,
        catalog=_build_catalog_settings(_ensure_mapping(data.get("catalog"), field_name="catalog")),
        metadata=_build_metadata_settings(_ensure_mapping(data.get("metadata"), field_name="metadata")),
        sync=_build_sync_settings(_ensure_mapping(data.get("sync"), field_name="sync")),
        selection=_build_selection_settings(_ensure_mapping(data.get("selection"), field_name="selection")),
        progress=_build_progress_settings(_ensure_mapping(data.get("progress"), field_name="progress")),
    )


def load_config(path: Path) -> Settings:
    data = load_yaml_file(path)
    return build_settings(_ensure_mapping(data.get("settings"), field_name="settings"))


def default_config_path() -> Path:
    return Path(os.getenv("STREAMSHELF_CONFIG", str(DEFAULT_CONFIG_PATH)))
