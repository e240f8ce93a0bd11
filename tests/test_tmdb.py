"""Tests for the TMDb client, models and cached provider."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from streamshelf.errors import MalformedResponse, NetworkFailure, NotFound
from streamshelf.persistence import PersistentStore
from streamshelf.tmdb import MetadataItem, TMDbClient, TMDbMetadataProvider, cache_key, image_url


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx client."""
    with patch("streamshelf.tmdb.client.httpx.Client") as mock_class:
        mock_instance = MagicMock()
        mock_class.return_value = mock_instance
        yield mock_instance


@pytest.fixture
def store(tmp_path: Path) -> PersistentStore:
    return PersistentStore(tmp_path / "test.db")


def discover_payload(*titles: str) -> dict:
    return {"page": 1, "results": [{"id": i, "title": title} for i, title in enumerate(titles, start=1)]}


class TestMetadataItem:
    def test_movie_fields(self) -> None:
        item = MetadataItem.from_payload(
            {"id": 1, "title": "Dune", "release_date": "2021-09-15", "backdrop_path": "/b.jpg", "genre_ids": [878]}
        )

        assert item is not None
        assert item.kind == "movie"
        assert item.year == 2021
        assert item.genre_ids == [878]

    def test_tv_fields(self) -> None:
        item = MetadataItem.from_payload({"id": 2, "name": "Dark", "first_air_date": "2017-12-01"})

        assert item is not None
        assert item.kind == "tv"
        assert item.title == "Dark"
        assert item.release_date == "2017-12-01"

    def test_media_type_wins(self) -> None:
        item = MetadataItem.from_payload({"id": 3, "name": "Severance", "media_type": "tv"}, "movie")
        assert item is not None and item.kind == "tv"

    def test_people_are_dropped(self) -> None:
        assert MetadataItem.from_payload({"id": 4, "name": "Someone", "media_type": "person"}) is None

    def test_missing_date_has_no_year(self) -> None:
        item = MetadataItem.from_payload({"id": 5, "title": "Untitled", "release_date": ""})
        assert item is not None and item.year is None

    def test_image_url(self) -> None:
        assert image_url("/p.jpg") == "https://image.tmdb.org/t/p/w500/p.jpg"
        assert image_url(None) is None


class TestTMDbClient:
    def test_get_adds_key_and_language(self, mock_httpx_client) -> None:
        response = MagicMock()
        response.status_code = 200
        response.json.return_value = {"genres": []}
        mock_httpx_client.request.return_value = response
        client = TMDbClient("key123", language="pt-BR")

        assert client.get("/genre/movie/list") == {"genres": []}
        method, url = mock_httpx_client.request.call_args.args
        assert url == "https://api.themoviedb.org/3/genre/movie/list"
        assert mock_httpx_client.request.call_args.kwargs["params"] == {"api_key": "key123", "language": "pt-BR"}

    @patch("streamshelf.http.time.sleep")
    def test_failure_message_hides_key(self, mock_sleep, mock_httpx_client) -> None:
        response = MagicMock()
        response.status_code = 404
        mock_httpx_client.request.return_value = response
        client = TMDbClient("key123")

        with pytest.raises(NotFound) as exc_info:
            client.get("/movie/1/videos")
        assert "key123" not in str(exc_info.value)


class TestTMDbMetadataProvider:
    def test_fresh_cache_skips_network(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.return_value = discover_payload("Dune")
        provider = TMDbMetadataProvider(store, client)

        first = provider.discover_movies(genre_id=878)
        second = provider.discover_movies(genre_id=878)

        assert [item.title for item in first.value] == ["Dune"]
        assert second.value == first.value
        assert second.stale is False
        assert client.get.call_count == 1
        client.get.assert_called_once_with(
            "/discover/movie", {"sort_by": "popularity.desc", "page": 1, "with_genres": 878}
        )

    def test_expired_cache_is_refreshed(self, store: PersistentStore) -> None:
        params = {"page": 1, "language": "en-US"}
        store.put_external_cache(cache_key("/trending/all/day", params), discover_payload("Old"), timestamp=0)
        client = MagicMock()
        client.get.return_value = discover_payload("New")
        provider = TMDbMetadataProvider(store, client)

        fetched = provider.trending()

        assert [item.title for item in fetched.value] == ["New"]
        assert fetched.stale is False

    def test_stale_cache_served_on_failure(self, store: PersistentStore) -> None:
        params = {"page": 1, "language": "en-US"}
        store.put_external_cache(cache_key("/trending/all/day", params), discover_payload("Old"), timestamp=0)
        client = MagicMock()
        client.get.side_effect = NetworkFailure("down")
        provider = TMDbMetadataProvider(store, client)

        fetched = provider.trending()

        assert [item.title for item in fetched.value] == ["Old"]
        assert fetched.stale is True

    def test_failure_without_cache_raises(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.side_effect = NetworkFailure("down")
        provider = TMDbMetadataProvider(store, client)

        with pytest.raises(NetworkFailure):
            provider.movie_genres()

    def test_unconfigured_provider(self, store: PersistentStore) -> None:
        provider = TMDbMetadataProvider(store, None)

        assert provider.is_configured is False
        with pytest.raises(NetworkFailure):
            provider.tv_genres()

    def test_cache_key_ignores_param_order(self) -> None:
        assert cache_key("/x", {"a": 1, "b": 2}) == cache_key("/x", {"b": 2, "a": 1})
        assert cache_key("/x", {"a": 1}) != cache_key("/y", {"a": 1})

    def test_search_returns_first_hit(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.return_value = {"results": [{"id": 9, "name": "Dark"}, {"id": 10, "name": "Dark Matter"}]}
        provider = TMDbMetadataProvider(store, client)

        item = provider.search("tv", "Dark")

        assert item is not None and item.id == 9 and item.kind == "tv"

    def test_find_trailer_priority(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.return_value = {
            "results": [
                {"key": "t1", "site": "YouTube", "type": "Teaser", "official": True},
                {"key": "v1", "site": "Vimeo", "type": "Trailer", "official": True},
                {"key": "y1", "site": "YouTube", "type": "Trailer", "official": False},
                {"key": "y2", "site": "YouTube", "type": "Trailer", "official": True},
            ]
        }
        provider = TMDbMetadataProvider(store, client)

        trailer = provider.find_trailer("movie", 1)

        assert trailer is not None and trailer.key == "y2"

    def test_find_trailer_falls_back_to_teaser(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.return_value = {"results": [{"key": "t1", "site": "YouTube", "type": "Teaser"}]}
        provider = TMDbMetadataProvider(store, client)

        trailer = provider.find_trailer("tv", 1)

        assert trailer is not None and trailer.key == "t1"

    def test_malformed_reply_keeps_cached_copy(self, store: PersistentStore) -> None:
        key = cache_key("/trending/all/day", {"page": 1, "language": "en-US"})
        store.put_external_cache(key, discover_payload("Old"), timestamp=0)
        client = MagicMock()
        client.get.return_value = {"status_message": "oops"}
        provider = TMDbMetadataProvider(store, client)

        fetched = provider.trending()

        assert [item.title for item in fetched.value] == ["Old"]
        assert fetched.stale is True
        assert store.get_external_cache(key).payload == discover_payload("Old")

        client.get.side_effect = NetworkFailure("down")
        again = provider.trending()
        assert [item.title for item in again.value] == ["Old"]
        assert again.stale is True

    def test_malformed_reply_without_cache_raises(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.return_value = {"status_message": "oops"}
        provider = TMDbMetadataProvider(store, client)

        with pytest.raises(MalformedResponse):
            provider.trending()
        assert store.get_stats()["external_cache"] == 0

    def test_invalid_genre_entries_are_skipped(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.return_value = {"genres": [{"id": 28}, {"id": 18, "name": "Drama"}, {"name": "No id"}]}
        provider = TMDbMetadataProvider(store, client)

        fetched = provider.movie_genres()

        assert [genre.name for genre in fetched.value] == ["Drama"]

    def test_invalid_video_entries_are_skipped(self, store: PersistentStore) -> None:
        client = MagicMock()
        client.get.return_value = {
            "results": [
                {"site": "YouTube", "type": "Trailer", "official": True},
                {"key": "y1", "site": "YouTube", "type": "Trailer", "official": "not-a-bool"},
                {"key": "t1", "site": "YouTube", "type": "Teaser"},
            ]
        }
        provider = TMDbMetadataProvider(store, client)

        trailer = provider.find_trailer("movie", 1)

        assert trailer is not None and trailer.key == "t1"
