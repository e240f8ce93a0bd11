"""Remote catalog provider client package."""

from __future__ import annotations

from .client import CatalogClient, RemoteCatalogClient

__all__ = [
    "CatalogClient",
    "RemoteCatalogClient",
]
