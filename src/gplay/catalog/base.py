"""Catalog data types and helpers."""

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlparse

WATCH_URL = "https://www.youtube.com/watch?v={}"

_ISO_DURATION = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


@dataclass
class CatalogItem:
    """A playable video from a search or playlist."""

    video_id: str
    title: str = ""
    description: str = ""
    channel_title: str = ""
    channel_id: str = ""
    published_at: str = ""
    duration: str = ""      # ISO-8601, e.g. "PT4M13S"
    view_count: int = 0
    like_count: int = 0
    thumbnail_url: str = ""
    url: str = ""

    def __post_init__(self):
        if not self.url and self.video_id:
            self.url = WATCH_URL.format(self.video_id)

    @property
    def duration_seconds(self) -> int:
        return parse_duration(self.duration)

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "title": self.title,
            "description": self.description,
            "channel_title": self.channel_title,
            "channel_id": self.channel_id,
            "published_at": self.published_at,
            "duration": self.duration,
            "view_count": self.view_count,
            "like_count": self.like_count,
            "thumbnail_url": self.thumbnail_url,
            "url": self.url,
        }


@dataclass
class SearchConfig:
    """Search parameters passed through to the YouTube Data API."""

    max_results: int = 10
    order: str = "relevance"        # relevance, date, rating, viewCount, title
    safe_search: str = "moderate"   # none, moderate, strict
    video_duration: str = "any"     # any, short, medium, long
    video_type: str = "any"         # any, episode, movie


@dataclass
class SearchResponse:
    """Results of one search call."""

    query: str
    items: list[CatalogItem] = field(default_factory=list)
    total_results: int = 0
    next_page_token: str = ""


def parse_duration(value: str) -> int:
    """Convert an ISO-8601 duration ("PT1H2M3S") to seconds. 0 if unknown."""
    if not value:
        return 0
    m = _ISO_DURATION.match(value)
    if not m:
        return 0
    parts = {k: int(v) for k, v in m.groupdict().items() if v}
    return (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )


def format_duration(seconds: float) -> str:
    """Format seconds as M:SS or H:MM:SS."""
    s = int(seconds)
    if s < 0:
        s = 0
    h, remainder = divmod(s, 3600)
    m, sec = divmod(remainder, 60)
    if h > 0:
        return f"{h}:{m:02d}:{sec:02d}"
    return f"{m}:{sec:02d}"


def extract_video_id(url: str) -> str | None:
    """Extract a YouTube video ID from a watch/short/embed URL.

    Returns None for non-YouTube URLs.
    """
    try:
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None

    if "youtu.be" in host:
        vid = parsed.path.lstrip("/").split("/")[0]
        return vid if vid else None

    if "youtube.com" in host:
        if parsed.path == "/watch":
            ids = parse_qs(parsed.query).get("v", [])
            return ids[0] if ids else None
        for prefix in ("/shorts/", "/embed/", "/live/"):
            if parsed.path.startswith(prefix):
                vid = parsed.path[len(prefix):].split("/")[0]
                return vid if vid else None

    return None


def extract_playlist_id(value: str) -> str:
    """Accept either a bare playlist ID or a URL with a list= parameter."""
    if "://" not in value:
        return value.strip()
    try:
        ids = parse_qs(urlparse(value).query).get("list", [])
    except ValueError:
        return ""
    return ids[0] if ids else ""
