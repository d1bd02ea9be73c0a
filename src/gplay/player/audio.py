"""Raw PCM -> speakers via sounddevice (PortAudio).

The AudioEngine is the process-wide output context: it is created once at
start-up, probes the output device on first use and is never torn down.
Each pipeline gets its own AudioSink, which opens an output line on the
engine and feeds it from the decoder's sample stream on a worker thread.
"""

from __future__ import annotations

import logging
import threading

from gplay.config import PlayerConfig
from gplay.player.errors import SinkError

logger = logging.getLogger(__name__)

BYTES_PER_SAMPLE = 2  # s16le


def _sounddevice():
    """Import sounddevice lazily; it needs the PortAudio shared library."""
    try:
        import sounddevice
    except (ImportError, OSError) as e:
        raise SinkError(f"audio backend unavailable: {e}")
    return sounddevice


class AudioSink:
    """One output line fed from one sample stream.

    Rendering starts on ``start()``. ``pause()`` stops feeding the device
    (the line plays silence), ``play()`` resumes. ``close()`` is idempotent
    and releases the line but never the engine.
    """

    def __init__(self, output, stream, frame_bytes: int, block_size: int = 4096):
        self._output = output
        self._stream = stream
        self._frame_bytes = frame_bytes
        self._block_size = max(frame_bytes, block_size - block_size % frame_bytes)
        self._running = threading.Event()
        self._running.set()
        self._closed = threading.Event()
        self._finished = threading.Event()
        self._close_lock = threading.Lock()
        self.error: SinkError | None = None
        self.bytes_written = 0
        self._thread = threading.Thread(target=self._feed, daemon=True, name="audio-sink")

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def finished(self) -> bool:
        """True once the feeder stopped: stream exhausted, failed, or closed."""
        return self._finished.is_set()

    def start(self):
        try:
            self._output.start()
        except Exception as e:
            self._output.close()
            raise SinkError(f"failed to start audio output: {e}")
        self._thread.start()

    def play(self):
        self._running.set()

    def pause(self):
        self._running.clear()

    def wait_finished(self, timeout: float | None = None) -> bool:
        return self._finished.wait(timeout)

    def close(self):
        with self._close_lock:
            if self._closed.is_set():
                return
            self._closed.set()
        self._running.set()  # a paused feeder must wake up to see the close
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=2)
            if self._thread.is_alive():
                logger.warning("Audio feeder did not stop within 2s")
        self._output.abort()
        self._output.close()
        self._finished.set()

    def _feed(self):
        leftover = b""
        try:
            while True:
                self._running.wait()
                if self._closed.is_set():
                    break
                data = self._stream.read(self._block_size)
                if not data:
                    if not self._closed.is_set():
                        # End of stream: let the device play out its buffer
                        self._output.stop()
                    break
                data = leftover + data
                usable = len(data) - len(data) % self._frame_bytes
                leftover = data[usable:]
                if usable:
                    self._output.write(data[:usable])
                    self.bytes_written += usable
        except Exception as e:
            if not self._closed.is_set():
                self.error = SinkError(f"audio output failed: {e}")
                logger.warning("Audio output failed: %s", e)
        finally:
            self._finished.set()


class AudioEngine:
    """Process-wide audio output context.

    Construct once and pass to the controller. The device check runs on
    the first ``attach()``; every later sink reuses the result.
    """

    def __init__(
        self,
        sample_rate: int = 48000,
        channels: int = 2,
        device: str | int | None = None,
        block_size: int = 4096,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.device = device or None
        self.block_size = block_size
        self._lock = threading.Lock()
        self._initialized = False

    @classmethod
    def from_config(cls, config: PlayerConfig) -> "AudioEngine":
        return cls(
            sample_rate=config.sample_rate,
            channels=config.channels,
            device=config.audio_device or None,
            block_size=config.block_size,
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def frame_bytes(self) -> int:
        return self.channels * BYTES_PER_SAMPLE

    def initialize(self):
        """Probe the output device. Later calls are no-ops."""
        with self._lock:
            if self._initialized:
                return
            self._probe()
            self._initialized = True
            logger.info("Audio output ready (%d Hz, %d ch, device=%s)",
                        self.sample_rate, self.channels, self.device or "default")

    def _probe(self):
        sd = _sounddevice()
        try:
            sd.check_output_settings(
                device=self.device, channels=self.channels,
                dtype="int16", samplerate=self.sample_rate,
            )
        except (sd.PortAudioError, ValueError) as e:
            raise SinkError(f"audio device unavailable: {e}")

    def open_output(self):
        """Open a new raw int16 output line on the shared device."""
        sd = _sounddevice()
        try:
            return sd.RawOutputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
            )
        except (sd.PortAudioError, ValueError) as e:
            raise SinkError(f"failed to open audio output: {e}")

    def attach(self, stream) -> AudioSink:
        """Start rendering ``stream`` and return its sink handle."""
        self.initialize()
        sink = AudioSink(self.open_output(), stream, self.frame_bytes, self.block_size)
        sink.start()
        return sink
