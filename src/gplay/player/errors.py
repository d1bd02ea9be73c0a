"""Playback error types.

Everything that can go wrong between a locator and the speakers is turned
into one of these, so callers never have to catch OSError or
subprocess exceptions themselves.
"""


class PlaybackError(Exception):
    """Base class for playback failures."""


class ResolutionError(PlaybackError):
    """The locator could not be turned into a direct media URL."""


class SubprocessStartError(PlaybackError):
    """The decoder process could not be launched."""


class SubprocessRuntimeError(PlaybackError):
    """The decoder exited abnormally before producing any audio."""

    def __init__(self, message: str, returncode: int | None = None):
        super().__init__(message)
        self.returncode = returncode


class SinkError(PlaybackError):
    """The audio output device could not be opened or written to."""
