"""ffmpeg decoder supervision.

Owns one ffmpeg process per pipeline: launches it on a direct media URL,
hands its stdout (raw s16le PCM) to the audio sink, drains its stderr into
the log, and shuts it down in two phases (SIGTERM, short grace period,
SIGKILL) so no decoder is ever left orphaned.
"""

from __future__ import annotations

import collections
import logging
import subprocess
import threading

from gplay.config import PlayerConfig
from gplay.player.errors import SubprocessStartError

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20


class CancelToken:
    """Cooperative cancellation handle for one decoder process."""

    def __init__(self, process: subprocess.Popen):
        self._process = process
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        """Ask the process to shut down (SIGTERM). Safe to call repeatedly."""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        if self._process.poll() is None:
            try:
                self._process.terminate()
            except OSError:
                pass


class SampleStream:
    """Read side of the decoder's stdout, counting the bytes delivered."""

    def __init__(self, pipe):
        self._pipe = pipe
        self.bytes_read = 0

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes. Returns b"" at end of stream."""
        try:
            data = self._pipe.read(size)
        except (OSError, ValueError):
            return b""
        if not data:
            return b""
        self.bytes_read += len(data)
        return data

    def close(self):
        try:
            self._pipe.close()
        except OSError:
            pass


class DecoderProcess:
    """A running ffmpeg instance with its output stream and cancel token."""

    def __init__(self, process: subprocess.Popen, url: str):
        self.process = process
        self.url = url
        self.stream = SampleStream(process.stdout)
        self.token = CancelToken(process)
        self.stderr_tail: collections.deque[str] = collections.deque(maxlen=STDERR_TAIL_LINES)
        self._stderr_thread = threading.Thread(
            target=self._drain_stderr, daemon=True, name=f"ffmpeg-stderr-{process.pid}",
        )
        self._stderr_thread.start()

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.poll()

    def is_running(self) -> bool:
        return self.process.poll() is None

    def _drain_stderr(self):
        """Forward ffmpeg diagnostics to the log so the pipe never fills."""
        pipe = self.process.stderr
        if pipe is None:
            return
        try:
            for raw in pipe:
                line = raw.decode("utf-8", errors="replace").rstrip()
                if line:
                    self.stderr_tail.append(line)
                    logger.debug("ffmpeg[%d]: %s", self.pid, line)
        except (OSError, ValueError):
            pass

    def join_stderr(self, timeout: float = 1.0):
        """Wait for the stderr reader to hit EOF so ``stderr_tail`` is complete."""
        if self._stderr_thread is not threading.current_thread():
            self._stderr_thread.join(timeout)

    def close(self):
        """Release the pipes. Only call once the process has exited."""
        self.join_stderr()
        self.stream.close()
        if self.process.stderr:
            try:
                self.process.stderr.close()
            except OSError:
                pass


class TranscodeSupervisor:
    """Launches and tears down ffmpeg decoder processes."""

    def __init__(self, config: PlayerConfig | None = None):
        self._config = config or PlayerConfig()

    @property
    def grace_period(self) -> float:
        return self._config.grace_period

    def build_command(self, url: str) -> list[str]:
        c = self._config
        return [
            c.ffmpeg_path,
            "-reconnect", "1",
            "-reconnect_streamed", "1",
            "-reconnect_delay_max", str(c.reconnect_delay_max),
            "-i", url,
            "-vn",
            "-f", "s16le",
            "-ar", str(c.sample_rate),
            "-ac", str(c.channels),
            "-acodec", "pcm_s16le",
            "-bufsize", c.buffer_size,
            "-loglevel", c.ffmpeg_log_level,
            "-nostdin",
            "pipe:1",
        ]

    def start(self, url: str) -> DecoderProcess:
        """Launch a decoder for ``url`` with raw PCM piped to stdout.

        Raises SubprocessStartError if the process cannot be created.
        """
        cmd = self.build_command(url)
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except FileNotFoundError:
            raise SubprocessStartError(
                f"{cmd[0]} not found - install it: sudo apt install ffmpeg"
            )
        except OSError as e:
            raise SubprocessStartError(f"failed to start {cmd[0]}: {e}")

        logger.debug("Started decoder pid=%d", process.pid)
        return DecoderProcess(process, url)

    def wait(self, decoder: DecoderProcess) -> int:
        """Block until the decoder exits and return its exit status.

        Only ever called from a pipeline's watcher thread.
        """
        return decoder.process.wait()

    def terminate(self, decoder: DecoderProcess) -> int | None:
        """Two-phase shutdown: cancel, wait the grace period, then kill."""
        decoder.token.cancel()
        try:
            decoder.process.wait(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            logger.debug("Decoder pid=%d still running after %.0fms, killing",
                         decoder.pid, self.grace_period * 1000)
            try:
                decoder.process.kill()
            except OSError:
                pass
            try:
                decoder.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                logger.error("Decoder pid=%d did not exit after SIGKILL", decoder.pid)
        return decoder.process.poll()
