"""HTTP client for Xtream-Codes style ``player_api.php`` catalogs."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from ..http import decode_json, request_with_retry

LOGGER = logging.getLogger(__name__)


class RemoteCatalogClient(Protocol):
    """Anything that can answer ``player_api`` actions with decoded JSON."""

    def request(self, action: str, **params: Any) -> Any: ...


class CatalogClient:
    """Client for the remote catalog provider.

    Every call is a GET on ``{base_url}/player_api.php`` carrying the account
    credentials and the action name. Responses are returned exactly as the
    provider decoded them; item payloads are never reshaped here.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        *,
        timeout: float = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._username = username
        self._password = password
        self._client = httpx.Client(timeout=timeout, follow_redirects=True)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/player_api.php"

    def request(self, action: str, **params: Any) -> Any:
        """Run a catalog action.

        Raises:
            NetworkFailure: When the provider is unreachable after retries
            NotFound: On 404
            MalformedResponse: When the body is not JSON
        """
        query: dict[str, Any] = {
            "username": self._username,
            "password": self._password,
            "action": action,
        }
        query.update({key: value for key, value in params.items() if value is not None})
        LOGGER.debug("Catalog request: %s %s", action, params)
        response = request_with_retry(self._client, "GET", self.endpoint, label=action, params=query)
        return decode_json(response, label=action)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> CatalogClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()
