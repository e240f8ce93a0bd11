"""Tests for lazy detail caching."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from streamshelf.details import DetailResolver
from streamshelf.errors import CacheWriteFailure, NetworkFailure, NotFound, Outcome
from streamshelf.models import ContentType

MOVIE_INFO = {"info": {"name": "Inception", "plot": "Dreams"}, "movie_data": {"stream_id": 1}}


class TestDetailResolver:
    def test_fetches_once_then_serves_cache(self, session, fake_catalog) -> None:
        client = fake_catalog({"get_vod_info": MOVIE_INFO})
        resolver = DetailResolver(session, client)

        first = resolver.fetch(ContentType.MOVIE, "1")
        second = resolver.fetch(ContentType.MOVIE, "1")

        assert first == MOVIE_INFO
        assert second == MOVIE_INFO
        assert client.calls == [("get_vod_info", {"vod_id": "1"})]

    def test_series_uses_series_id(self, session, fake_catalog) -> None:
        client = fake_catalog({"get_series_info": {"info": {"name": "Lost"}, "episodes": {"1": []}}})
        resolver = DetailResolver(session, client)

        resolver.fetch(ContentType.SERIES, "700")

        assert client.calls == [("get_series_info", {"series_id": "700"})]

    def test_missing_info_is_not_found(self, session, fake_catalog) -> None:
        resolver = DetailResolver(session, fake_catalog({"get_vod_info": {"info": []}}))

        with pytest.raises(NotFound):
            resolver.fetch(ContentType.MOVIE, "1")
        assert session.store.get_detail("1") is None

    def test_live_has_no_detail(self, session, fake_catalog) -> None:
        with pytest.raises(NotFound):
            DetailResolver(session, fake_catalog()).fetch(ContentType.LIVE, "1")

    def test_cache_write_failure_still_returns_payload(self, session, fake_catalog) -> None:
        resolver = DetailResolver(session, fake_catalog({"get_vod_info": MOVIE_INFO}))

        with patch.object(session.store, "put_detail", side_effect=CacheWriteFailure("disk full")):
            payload = resolver.fetch(ContentType.MOVIE, "1")

        assert payload == MOVIE_INFO
        assert session.store.get_detail("1") is None

    def test_resolve_reports_outcomes(self, session, fake_catalog) -> None:
        client = fake_catalog(
            {
                "get_vod_info": lambda vod_id: MOVIE_INFO if vod_id == "1" else {"info": None},
                "get_series_info": NetworkFailure("unreachable"),
            }
        )
        resolver = DetailResolver(session, client)

        fresh = resolver.resolve(ContentType.MOVIE, "1")
        cached = resolver.resolve(ContentType.MOVIE, "1")
        missing = resolver.resolve(ContentType.MOVIE, "2")
        failed = resolver.resolve(ContentType.SERIES, "3")

        assert fresh.outcome is Outcome.SUCCESS and fresh.from_cache is False
        assert cached.outcome is Outcome.SUCCESS and cached.from_cache is True
        assert missing.outcome is Outcome.EMPTY
        assert failed.outcome is Outcome.ERROR
        assert failed.error == "unreachable"
