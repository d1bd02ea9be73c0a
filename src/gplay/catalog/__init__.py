"""Catalog client for finding playable items.

Search results and playlist contents come from the YouTube Data API; the
item URLs are the locators handed to the playback controller.
"""

from gplay.catalog.base import (
    CatalogItem,
    SearchConfig,
    SearchResponse,
    extract_playlist_id,
    extract_video_id,
    format_duration,
    parse_duration,
)
from gplay.catalog.youtube import CatalogError, YouTubeCatalog, best_thumbnail

__all__ = [
    "CatalogItem",
    "SearchConfig",
    "SearchResponse",
    "CatalogError",
    "YouTubeCatalog",
    "best_thumbnail",
    "extract_playlist_id",
    "extract_video_id",
    "format_duration",
    "parse_duration",
]
