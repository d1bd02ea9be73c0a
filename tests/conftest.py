"""Shared test fixtures for the gplay test suite.

Playback tests run the real controller, supervisor and sink against:
- a resolver that returns the locator unchanged (no yt-dlp),
- small Python scripts standing in for ffmpeg,
- an audio engine whose output lines record what they were fed.
"""

import sys
import threading

import pytest

from gplay.config import PlayerConfig
from gplay.player.audio import AudioEngine
from gplay.player.controller import PlaybackController
from gplay.player.errors import ResolutionError, SinkError
from gplay.player.resolver import StreamResolver
from gplay.player.transcoder import TranscodeSupervisor

TONE_BYTES = 19200  # 0.1s of 48kHz stereo s16le

DECODER_SCRIPTS = {
    # Writes a short burst of silence and exits cleanly
    "tone": (
        "import sys\n"
        f"sys.stdout.buffer.write(b'\\x00' * {TONE_BYTES})\n"
        "sys.stdout.buffer.flush()\n"
    ),
    # Streams until terminated
    "endless": (
        "import sys, time\n"
        "while True:\n"
        "    sys.stdout.buffer.write(b'\\x00' * 4096)\n"
        "    sys.stdout.buffer.flush()\n"
        "    time.sleep(0.01)\n"
    ),
    # Fails before producing any audio
    "broken": (
        "import sys\n"
        "sys.stderr.write('Server returned 403 Forbidden\\n')\n"
        "sys.exit(1)\n"
    ),
    # Produces some audio, then dies
    "truncated": (
        "import sys\n"
        "sys.stdout.buffer.write(b'\\x00' * 4096)\n"
        "sys.stdout.buffer.flush()\n"
        "sys.stderr.write('Connection reset by peer\\n')\n"
        "sys.exit(1)\n"
    ),
    # Ignores SIGTERM once it has written its first frame
    "stubborn": (
        "import signal, sys, time\n"
        "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
        "sys.stdout.buffer.write(b'\\x00' * 4)\n"
        "sys.stdout.buffer.flush()\n"
        "time.sleep(30)\n"
    ),
}
DECODER_SCRIPTS["track1"] = DECODER_SCRIPTS["endless"]


class FakeOutput:
    """Stands in for a sounddevice RawOutputStream."""

    def __init__(self, fail_start=False, fail_write=False):
        self.fail_start = fail_start
        self.fail_write = fail_write
        self.written = bytearray()
        self.started = False
        self.stopped = False
        self.aborted = False
        self.closed = False

    def start(self):
        if self.fail_start:
            raise RuntimeError("device busy")
        self.started = True

    def write(self, data):
        if self.fail_write:
            raise RuntimeError("output underflow")
        self.written += data

    def stop(self):
        self.stopped = True

    def abort(self):
        self.aborted = True

    def close(self):
        self.closed = True


class FakeAudioEngine(AudioEngine):
    """AudioEngine with the device probe and output lines faked out."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.outputs: list[FakeOutput] = []
        self.probe_count = 0
        self.fail_probe = False
        self.fail_start = False
        self.fail_write = False

    def _probe(self):
        self.probe_count += 1
        if self.fail_probe:
            raise SinkError("audio device unavailable: no default output")

    def open_output(self):
        output = FakeOutput(fail_start=self.fail_start, fail_write=self.fail_write)
        self.outputs.append(output)
        return output


class FakeResolver(StreamResolver):
    """Returns the locator as the stream URL; fails for locators in ``fail``."""

    def __init__(self):
        super().__init__(PlayerConfig())
        self.fail: set[str] = set()
        self.calls: list[str] = []
        self.gate: threading.Event | None = None  # when set, resolve() blocks on it
        self.entered = threading.Event()

    def resolve(self, locator):
        self.calls.append(locator)
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=10)
        if locator in self.fail:
            raise ResolutionError(f"no playable audio format for {locator}")
        return locator


class ScriptSupervisor(TranscodeSupervisor):
    """Runs a Python script from DECODER_SCRIPTS instead of ffmpeg."""

    def __init__(self, grace_period=0.05):
        super().__init__(PlayerConfig(grace_period=grace_period))
        self.started = []

    def build_command(self, url):
        if url == "missing":
            return ["/nonexistent/bin/ffmpeg"]
        return [sys.executable, "-c", DECODER_SCRIPTS[url]]

    def start(self, url):
        decoder = super().start(url)
        self.started.append(decoder)
        return decoder


class ErrorRecorder:
    """Collects on_error callbacks and lets tests wait for them."""

    def __init__(self):
        self.errors = []
        self.event = threading.Event()

    def __call__(self, error):
        self.errors.append(error)
        self.event.set()

    def wait(self, timeout=5):
        return self.event.wait(timeout)


@pytest.fixture
def engine():
    return FakeAudioEngine()


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def supervisor():
    return ScriptSupervisor()


@pytest.fixture
def errors():
    return ErrorRecorder()


@pytest.fixture
def controller(resolver, supervisor, engine, errors):
    """A PlaybackController wired to fakes; always stopped afterwards."""
    c = PlaybackController(resolver, supervisor, engine, on_error=errors)
    yield c
    c.stop()
    for decoder in supervisor.started:
        if decoder.is_running():
            supervisor.terminate(decoder)
