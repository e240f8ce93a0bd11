from .client import API_BASE_URL, TMDbClient, image_url
from .models import Genre, MetadataItem, MetadataKind, Video
from .provider import Fetched, MetadataProvider, TMDbMetadataProvider, cache_key

__all__ = [
    "API_BASE_URL",
    "Fetched",
    "Genre",
    "MetadataItem",
    "MetadataKind",
    "MetadataProvider",
    "TMDbClient",
    "TMDbMetadataProvider",
    "Video",
    "cache_key",
    "image_url",
]
