"""Locator -> direct media URL resolution via yt-dlp."""

from __future__ import annotations

import logging
import subprocess

from gplay.config import PlayerConfig, ytdl_auth_args
from gplay.player.errors import ResolutionError

logger = logging.getLogger(__name__)


class StreamResolver:
    """Turns a watch URL into a direct, time-limited audio stream URL.

    Blocks for as long as yt-dlp takes. ``resolve_timeout`` in the player
    config bounds that; 0 means no bound.
    """

    def __init__(self, config: PlayerConfig | None = None):
        self._config = config or PlayerConfig()

    def build_command(self, locator: str) -> list[str]:
        return [
            self._config.ytdl_path,
            "--get-url",
            "-f", self._config.ytdl_format,
            "--no-playlist",
            "--no-warnings",
            *ytdl_auth_args(self._config),
            locator,
        ]

    def resolve(self, locator: str) -> str:
        """Return the direct media URL for ``locator``.

        Raises ResolutionError if yt-dlp is missing, fails, times out, or
        prints nothing.
        """
        if not locator:
            raise ResolutionError("empty locator")

        timeout = self._config.resolve_timeout or None
        try:
            result = subprocess.run(
                self.build_command(locator),
                capture_output=True, text=True, timeout=timeout,
            )
        except FileNotFoundError:
            raise ResolutionError(
                f"{self._config.ytdl_path} not found - install it with: pip install yt-dlp"
            )
        except subprocess.TimeoutExpired:
            raise ResolutionError(f"yt-dlp timed out after {timeout:.0f}s for {locator}")
        except OSError as e:
            raise ResolutionError(f"failed to run yt-dlp: {e}")

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else ""
            logger.warning("yt-dlp failed for %s (exit=%d): %s", locator, result.returncode, detail)
            raise ResolutionError(f"no playable audio format for {locator}: {detail or 'yt-dlp error'}")

        # Split formats print one URL per line; the first is the audio track
        urls = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if not urls:
            raise ResolutionError(f"empty stream URL returned from yt-dlp for {locator}")

        logger.debug("Resolved %s -> %s", locator, urls[0][:80])
        return urls[0]
