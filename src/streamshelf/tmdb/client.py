"""HTTP client for the TMDb v3 REST API."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..errors import MalformedResponse
from ..http import decode_json, request_with_retry

LOGGER = logging.getLogger(__name__)

API_BASE_URL = "https://api.themoviedb.org/3"
IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"


def image_url(path: Optional[str]) -> Optional[str]:
    """Absolute poster/backdrop URL for a TMDb image path."""
    if not path:
        return None
    return f"{IMAGE_BASE_URL}{path}"


class TMDbClient:
    """Thin TMDb client: one GET per call, bounded retries, JSON objects only.

    The API key is sent as a query parameter and is never included in log
    lines or error messages.
    """

    def __init__(
        self,
        api_key: str,
        *,
        language: str = "en-US",
        timeout: float = 15.0,
        base_url: str = API_BASE_URL,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.language = language
        self._api_key = api_key
        self._client = httpx.Client(timeout=timeout)

    def get(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Fetch an endpoint such as ``/discover/movie``.

        Raises:
            NetworkFailure: When TMDb is unreachable after retries
            NotFound: On 404
            MalformedResponse: When the body is not a JSON object
        """
        query: dict[str, Any] = {"api_key": self._api_key, "language": self.language}
        query.update(params or {})
        LOGGER.debug("TMDb request: %s %s", endpoint, params or {})
        response = request_with_retry(
            self._client,
            "GET",
            f"{self.base_url}{endpoint}",
            label=endpoint,
            params=query,
        )
        data = decode_json(response, label=endpoint)
        if not isinstance(data, dict):
            raise MalformedResponse(f"TMDb returned {type(data).__name__} for {endpoint}")
        return data

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> TMDbClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()
