from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import pytest

from streamshelf.config import Settings
from streamshelf.session import Session


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCatalogClient:
    """In-memory catalog answering ``player_api`` actions."""

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def request(self, action: str, **params: Any) -> Any:
        self.calls.append((action, params))
        response = self.responses.get(action, [])
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(**params)
        return response


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(cache_dir=tmp_path / "cache")


@pytest.fixture
def session(settings: Settings, clock: FakeClock) -> Iterator[Session]:
    session = Session.open(settings, clock=clock)
    yield session
    if not session.closed:
        session.store.close()


@pytest.fixture
def fake_catalog():
    """Factory for in-memory catalog clients."""
    return FakeCatalogClient
