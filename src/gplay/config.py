"""Configuration loader for gplay."""

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python 3.10 fallback


@dataclass
class PlayerConfig:
    """Configuration for the playback pipeline (yt-dlp -> ffmpeg -> speakers)."""

    ytdl_path: str = "yt-dlp"
    ytdl_format: str = "bestaudio[ext=m4a]/bestaudio[ext=webm]/bestaudio"
    ytdl_cookies_from_browser: str = ""  # e.g. "firefox"
    resolve_timeout: float = 0           # seconds, 0 = wait forever
    ffmpeg_path: str = "ffmpeg"
    sample_rate: int = 48000
    channels: int = 2
    buffer_size: str = "64k"
    ffmpeg_log_level: str = "warning"
    reconnect_delay_max: int = 5
    grace_period: float = 0.05           # seconds between cancel and kill
    audio_device: str = ""               # empty = system default output
    block_size: int = 4096               # bytes read from ffmpeg per write


@dataclass
class YouTubeConfig:
    """Configuration for the YouTube Data API catalog."""

    api_key: str = ""
    max_results: int = 10
    order: str = "relevance"
    safe_search: str = "moderate"
    video_duration: str = "any"
    video_type: str = "any"
    startup_playlist: str = ""

    def __post_init__(self):
        if not self.api_key:
            self.api_key = os.environ.get("GOOGLE_API_KEY", "")


@dataclass
class Config:
    """Top-level gplay configuration."""

    player: PlayerConfig = field(default_factory=PlayerConfig)
    youtube: YouTubeConfig = field(default_factory=YouTubeConfig)


def load_config(path: str | None = None) -> Config:
    """Load configuration from gplay.toml.

    Search order:
    1. Explicit path argument
    2. ./gplay.toml
    3. ~/.config/gplay/gplay.toml
    4. Defaults
    """
    search_paths = []
    if path:
        search_paths.append(Path(path))
    search_paths.extend([
        Path("gplay.toml"),
        Path.home() / ".config" / "gplay" / "gplay.toml",
    ])

    for p in search_paths:
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            return _parse_config(data)

    return Config()


def _parse_config(data: dict) -> Config:
    """Parse a TOML dict into Config."""
    config = Config()

    if "player" in data:
        p = data["player"]
        d = config.player
        config.player = PlayerConfig(
            ytdl_path=p.get("ytdl_path", d.ytdl_path),
            ytdl_format=p.get("ytdl_format", d.ytdl_format),
            ytdl_cookies_from_browser=p.get("ytdl_cookies_from_browser", d.ytdl_cookies_from_browser),
            resolve_timeout=p.get("resolve_timeout", d.resolve_timeout),
            ffmpeg_path=p.get("ffmpeg_path", d.ffmpeg_path),
            sample_rate=p.get("sample_rate", d.sample_rate),
            channels=p.get("channels", d.channels),
            buffer_size=p.get("buffer_size", d.buffer_size),
            ffmpeg_log_level=p.get("ffmpeg_log_level", d.ffmpeg_log_level),
            reconnect_delay_max=p.get("reconnect_delay_max", d.reconnect_delay_max),
            grace_period=p.get("grace_period", d.grace_period),
            audio_device=p.get("audio_device", d.audio_device),
            block_size=p.get("block_size", d.block_size),
        )

    if "youtube" in data:
        y = data["youtube"]
        d = config.youtube
        config.youtube = YouTubeConfig(
            api_key=y.get("api_key", ""),
            max_results=y.get("max_results", d.max_results),
            order=y.get("order", d.order),
            safe_search=y.get("safe_search", d.safe_search),
            video_duration=y.get("video_duration", d.video_duration),
            video_type=y.get("video_type", d.video_type),
            startup_playlist=y.get("startup_playlist", d.startup_playlist),
        )

    return config


def ytdl_auth_args(config: PlayerConfig) -> list[str]:
    """Build yt-dlp auth arguments from config."""
    if config.ytdl_cookies_from_browser:
        return [f"--cookies-from-browser={config.ytdl_cookies_from_browser}"]
    return []
