from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from streamshelf.config import Settings, build_settings, default_config_path, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TMDB_API_KEY", "STREAMSHELF_AUTO_SYNC", "STREAMSHELF_CONFIG"):
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "streamshelf.yaml"
    path.write_text(textwrap.dedent(body), encoding="utf-8")
    return path


def test_defaults() -> None:
    settings = build_settings({})

    assert settings.sync.batch_size == 1000
    assert settings.sync.max_age_hours == 24
    assert settings.selection.max_carousels == 6
    assert settings.selection.match_threshold == 0.85
    assert settings.progress.debounce_seconds == 2.0
    assert settings.catalog.is_configured is False


def test_load_full_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_PASSWORD", "hunter2")
    path = write_config(
        tmp_path,
        f"""
        settings:
          cache_dir: {tmp_path / "cache"}
          catalog:
            url: http://provider.example:8080
            username: alice
            password: ${{CATALOG_PASSWORD}}
          metadata:
            api_key: abc
            language: pt-BR
          sync:
            batch_size: 500
          selection:
            max_carousels: 4
          progress:
            state_dir: {tmp_path / "state"}
            debounce_seconds: 1.5
        """,
    )

    settings = load_config(path)

    assert settings.catalog.password == "hunter2"
    assert settings.catalog.is_configured is True
    assert settings.metadata.language == "pt-BR"
    assert settings.sync.batch_size == 500
    assert settings.selection.max_carousels == 4
    assert settings.db_path == tmp_path / "cache" / "streamshelf.db"
    assert settings.progress_dir == tmp_path / "state"
    assert settings.progress.debounce_seconds == 1.5


def test_progress_dir_defaults_under_cache(tmp_path: Path) -> None:
    settings = Settings(cache_dir=tmp_path)
    assert settings.progress_dir == tmp_path / "state"


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TMDB_API_KEY", "from-env")
    monkeypatch.setenv("STREAMSHELF_AUTO_SYNC", "off")

    settings = build_settings({"metadata": {"api_key": "from-file"}, "sync": {"auto": True}})

    assert settings.metadata.api_key == "from-env"
    assert settings.sync.auto is False


def test_default_config_path_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STREAMSHELF_CONFIG", "/tmp/other.yaml")
    assert default_config_path() == Path("/tmp/other.yaml")


@pytest.mark.parametrize(
    "data,key",
    [
        ({"catalog": {"url": "ftp://nope"}}, "catalog.url"),
        ({"sync": {"batch_size": 0}}, "sync.batch_size"),
        ({"sync": {"batch_size": "many"}}, "sync.batch_size"),
        ({"selection": {"max_carousels": 1}}, "selection.max_carousels"),
        ({"selection": {"match_threshold": 1.5}}, "selection.match_threshold"),
        ({"progress": {"min_delta_seconds": -1}}, "progress.min_delta_seconds"),
        ({"catalog": ["not", "a", "mapping"]}, "catalog"),
    ],
)
def test_invalid_values_name_the_key(data: dict, key: str) -> None:
    with pytest.raises(ValueError) as exc_info:
        build_settings(data)
    assert key in str(exc_info.value)
