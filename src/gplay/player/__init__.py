"""Playback core: locator -> yt-dlp -> ffmpeg -> speakers.

The controller owns one pipeline at a time and exposes a
stopped/playing/paused state machine plus a completion signal for
auto-advance.
"""

from gplay.player.audio import AudioEngine, AudioSink
from gplay.player.autoadvance import AutoAdvance
from gplay.player.completion import CompletionSignal
from gplay.player.controller import PlaybackController, TransportState
from gplay.player.errors import (
    PlaybackError,
    ResolutionError,
    SinkError,
    SubprocessRuntimeError,
    SubprocessStartError,
)
from gplay.player.resolver import StreamResolver
from gplay.player.transcoder import TranscodeSupervisor

__all__ = [
    "AudioEngine",
    "AudioSink",
    "AutoAdvance",
    "CompletionSignal",
    "PlaybackController",
    "TransportState",
    "PlaybackError",
    "ResolutionError",
    "SinkError",
    "SubprocessRuntimeError",
    "SubprocessStartError",
    "StreamResolver",
    "TranscodeSupervisor",
]
