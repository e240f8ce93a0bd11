"""Lazy detail caching for movie and series info views."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .catalog import RemoteCatalogClient
from .errors import CacheWriteFailure, MalformedResponse, NotFound, Outcome, StreamshelfError
from .models import CATALOG_ACTIONS, ContentType
from .session import Session

LOGGER = logging.getLogger(__name__)

_ID_PARAMS = {
    ContentType.MOVIE: "vod_id",
    ContentType.SERIES: "series_id",
}


@dataclass
class DetailOutcome:
    outcome: Outcome
    payload: Optional[dict[str, Any]] = None
    from_cache: bool = False
    error: Optional[str] = None


class DetailResolver:
    """Fetch detail payloads on first view and keep them forever after.

    A cached detail is never refreshed. When writing the fetched detail fails
    the payload is still returned; only the caching step is lost.
    """

    def __init__(self, session: Session, client: RemoteCatalogClient) -> None:
        self.session = session
        self.client = client

    def fetch(self, content_type: ContentType, item_id: str) -> dict[str, Any]:
        """Return the detail payload, fetching and caching it when missing.

        Raises:
            NotFound: When the provider has no detail for the item
            NetworkFailure: When the provider cannot be reached
            MalformedResponse: When the provider response is not a mapping
        """
        if content_type not in _ID_PARAMS:
            raise NotFound(f"No detail view for {content_type.value} items")

        cached = self.session.store.get_detail(str(item_id))
        if cached is not None:
            LOGGER.debug("Using cached detail: %s/%s", content_type.value, item_id)
            return cached.payload

        action = CATALOG_ACTIONS[content_type][2]
        payload = self.client.request(action, **{_ID_PARAMS[content_type]: str(item_id)})
        if not isinstance(payload, dict):
            raise MalformedResponse(f"'{action}' returned {type(payload).__name__}, expected a mapping")
        if not payload.get("info"):
            raise NotFound(f"No detail for {content_type.value} {item_id}")

        try:
            self.session.store.put_detail(str(item_id), payload)
        except CacheWriteFailure as exc:
            LOGGER.warning("Could not cache detail for %s/%s: %s", content_type.value, item_id, exc)
        return payload

    def resolve(self, content_type: ContentType, item_id: str) -> DetailOutcome:
        """Structured variant of :meth:`fetch` that never raises for expected failures."""
        from_cache = self.session.store.get_detail(str(item_id)) is not None
        try:
            payload = self.fetch(content_type, item_id)
        except NotFound as exc:
            return DetailOutcome(outcome=Outcome.EMPTY, error=str(exc))
        except StreamshelfError as exc:
            LOGGER.error("Detail lookup failed for %s/%s: %s", content_type.value, item_id, exc)
            return DetailOutcome(outcome=Outcome.ERROR, error=str(exc))
        return DetailOutcome(outcome=Outcome.SUCCESS, payload=payload, from_cache=from_cache)
