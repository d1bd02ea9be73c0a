"""YouTube Data API v3 client (search, playlists, video details).

Usage:
    with YouTubeCatalog(api_key) as catalog:
        response = catalog.search("lofi hip hop")
        items = catalog.playlist_items("PL...")
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from gplay.catalog.base import CatalogItem, SearchConfig, SearchResponse

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"
DEFAULT_TIMEOUT = 10.0
MAX_PAGE_SIZE = 50
UNAVAILABLE_TITLES = ("Private video", "Deleted video")


class CatalogError(Exception):
    """Error talking to the YouTube Data API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def best_thumbnail(thumbnails: dict | None) -> str:
    """Return the URL of the best available thumbnail."""
    if not thumbnails:
        return ""
    for key in ("maxres", "high", "medium", "default"):
        thumb = thumbnails.get(key)
        if thumb and thumb.get("url"):
            return thumb["url"]
    return ""


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class YouTubeCatalog:
    """Catalog backed by the YouTube Data API.

    Requires an API key (``[youtube] api_key`` or GOOGLE_API_KEY).
    """

    def __init__(
        self,
        api_key: str,
        search_config: SearchConfig | None = None,
        base_url: str = API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        if not api_key:
            raise CatalogError(
                "missing YouTube API key: set GOOGLE_API_KEY or [youtube] api_key in gplay.toml"
            )
        self._api_key = api_key
        self.search_config = search_config or SearchConfig()
        self.base_url = base_url
        self._client = httpx.Client(base_url=base_url, timeout=timeout)

    def close(self):
        self._client.close()

    def __enter__(self) -> "YouTubeCatalog":
        return self

    def __exit__(self, *exc):
        self.close()

    def _get(self, path: str, params: dict) -> dict:
        try:
            resp = self._client.get(path, params={**params, "key": self._api_key})
            resp.raise_for_status()
            return resp.json()
        except httpx.ConnectError:
            raise CatalogError(f"Cannot connect to {self.base_url}")
        except httpx.TimeoutException:
            raise CatalogError("Request timed out")
        except httpx.HTTPStatusError as e:
            raise CatalogError(_api_error_message(e), e.response.status_code)
        except httpx.HTTPError as e:
            raise CatalogError(f"Request to {self.base_url}{path} failed: {e}")
        except ValueError:
            raise CatalogError(f"Invalid JSON from {self.base_url}{path}")

    # --- Search ---

    def search(self, query: str, config: SearchConfig | None = None) -> SearchResponse:
        """Search for videos matching ``query``."""
        config = config or self.search_config
        data = self._get("/search", {
            "part": "id,snippet",
            "q": query,
            "type": "video",
            "maxResults": max(1, min(MAX_PAGE_SIZE, config.max_results)),
            "order": config.order,
            "safeSearch": config.safe_search,
            "videoDuration": config.video_duration,
            "videoType": config.video_type,
        })

        items = []
        for entry in data.get("items", []):
            video_id = (entry.get("id") or {}).get("videoId")
            snippet = entry.get("snippet")
            if not video_id or not snippet:
                continue
            items.append(_item_from_snippet(video_id, snippet))

        self._merge_details(items)

        return SearchResponse(
            query=query,
            items=items,
            total_results=_to_int((data.get("pageInfo") or {}).get("totalResults")),
            next_page_token=data.get("nextPageToken", ""),
        )

    # --- Playlists ---

    def playlist_items(self, playlist_id: str, max_results: int = MAX_PAGE_SIZE, limit: int = 0) -> list[CatalogItem]:
        """Fetch every video in a playlist, following pagination.

        ``limit`` caps the total number of items (0 = all).
        """
        page_size = max(1, min(MAX_PAGE_SIZE, max_results))
        results: list[CatalogItem] = []
        page_token = ""

        while True:
            params = {
                "part": "id,snippet,contentDetails",
                "playlistId": playlist_id,
                "maxResults": page_size,
            }
            if page_token:
                params["pageToken"] = page_token
            data = self._get("/playlistItems", params)

            page = []
            for entry in data.get("items", []):
                snippet = entry.get("snippet")
                details = entry.get("contentDetails")
                if not snippet or not details or not details.get("videoId"):
                    continue
                if snippet.get("title") in UNAVAILABLE_TITLES:
                    continue
                page.append(_item_from_snippet(details["videoId"], snippet))

            self._merge_details(page)
            results.extend(page)

            if limit and len(results) >= limit:
                return results[:limit]
            page_token = data.get("nextPageToken", "")
            if not page_token:
                break

        logger.info("Fetched %d items from playlist %s", len(results), playlist_id)
        return results

    # --- Details ---

    def video_details(self, video_ids: list[str]) -> dict[str, dict]:
        """Fetch duration, view and like counts keyed by video ID."""
        if not video_ids:
            return {}
        data = self._get("/videos", {
            "part": "statistics,contentDetails",
            "id": ",".join(video_ids),
        })
        details = {}
        for video in data.get("items", []):
            stats = video.get("statistics")
            content = video.get("contentDetails")
            if stats is None or content is None:
                continue
            details[video["id"]] = {
                "duration": content.get("duration", ""),
                "view_count": _to_int(stats.get("viewCount")),
                "like_count": _to_int(stats.get("likeCount")),
            }
        return details

    def _merge_details(self, items: list[CatalogItem]):
        if not items:
            return
        try:
            details = self.video_details([i.video_id for i in items])
        except CatalogError as e:
            logger.warning("Failed to get video details: %s", e)
            return
        for item in items:
            d = details.get(item.video_id)
            if d:
                item.duration = d["duration"]
                item.view_count = d["view_count"]
                item.like_count = d["like_count"]


def _item_from_snippet(video_id: str, snippet: dict) -> CatalogItem:
    return CatalogItem(
        video_id=video_id,
        title=snippet.get("title", ""),
        description=snippet.get("description", ""),
        channel_title=snippet.get("channelTitle", ""),
        channel_id=snippet.get("channelId", ""),
        published_at=snippet.get("publishedAt", ""),
        thumbnail_url=best_thumbnail(snippet.get("thumbnails")),
    )


def _api_error_message(e: httpx.HTTPStatusError) -> str:
    """Pull the human-readable message out of a Google API error body."""
    try:
        message = e.response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        message = ""
    return f"YouTube API error {e.response.status_code}: {message or e.response.reason_phrase}"
