"""Playback controller - the transport state machine.

Composes resolver, decoder supervisor and audio engine into one pipeline
per loaded track, and is the single owner of "what is playing now".

Locking:
    _lifecycle serializes load/stop/teardown (pipeline construction and
    destruction). _lock guards the PlaybackSession and is never held
    across blocking I/O, so accessors and pause/play stay responsive while
    a load is resolving. Lock order is always _lifecycle -> _lock.

Each pipeline has a watcher thread. It waits for the sink to run dry and
the decoder to exit, then posts a PipelineExit event on the controller's
event queue and drains it. Events for a pipeline that has already been
retired (stopped or superseded) are dropped by the drain.
"""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable

from gplay.config import PlayerConfig
from gplay.player.audio import AudioEngine, AudioSink
from gplay.player.completion import CompletionSignal
from gplay.player.errors import (
    PlaybackError,
    SinkError,
    SubprocessRuntimeError,
)
from gplay.player.resolver import StreamResolver
from gplay.player.transcoder import DecoderProcess, TranscodeSupervisor

logger = logging.getLogger(__name__)


class TransportState(enum.Enum):
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(eq=False)
class Pipeline:
    """One generation of {decoder, sample stream, sink} for a single load."""

    generation: int
    locator: str
    decoder: DecoderProcess
    sink: AudioSink
    watcher: threading.Thread | None = None


@dataclass
class PlaybackSession:
    """Mutable record of what is happening now. Guarded by the controller lock."""

    current_locator: str = ""
    transport_state: TransportState = TransportState.STOPPED
    manually_stopped: bool = False
    pipeline: Pipeline | None = None


@dataclass
class PipelineExit:
    """Posted by a watcher when its pipeline's decoder has exited."""

    pipeline: Pipeline
    returncode: int | None
    bytes_decoded: int
    sink_error: SinkError | None = None
    stderr_tail: list[str] = field(default_factory=list)


class PlaybackController:
    """Load/stop/pause/play with auto-advance notification.

    Usage:
        controller = PlaybackController.from_config(config.player)
        controller.load("https://www.youtube.com/watch?v=...")
        controller.pause()
        controller.play()
        controller.completion.wait()   # track ended on its own
    """

    def __init__(
        self,
        resolver: StreamResolver,
        supervisor: TranscodeSupervisor,
        engine: AudioEngine,
        completion: CompletionSignal | None = None,
        on_error: Callable[[PlaybackError], None] | None = None,
    ):
        self._resolver = resolver
        self._supervisor = supervisor
        self._engine = engine
        self.completion = completion or CompletionSignal()
        self.on_error = on_error
        self._session = PlaybackSession()
        self._lock = threading.Lock()
        self._lifecycle = threading.Lock()
        self._events: queue.Queue[PipelineExit] = queue.Queue()
        self._generation = 0
        self._last_error: PlaybackError | None = None

    @classmethod
    def from_config(
        cls,
        config: PlayerConfig,
        engine: AudioEngine | None = None,
        on_error: Callable[[PlaybackError], None] | None = None,
    ) -> "PlaybackController":
        return cls(
            StreamResolver(config),
            TranscodeSupervisor(config),
            engine or AudioEngine.from_config(config),
            on_error=on_error,
        )

    # --- Read-only snapshots ---

    @property
    def current_locator(self) -> str:
        with self._lock:
            return self._session.current_locator

    @property
    def state(self) -> TransportState:
        with self._lock:
            return self._session.transport_state

    def is_playing(self) -> bool:
        return self.state is TransportState.PLAYING

    def is_paused(self) -> bool:
        return self.state is TransportState.PAUSED

    @property
    def last_error(self) -> PlaybackError | None:
        """Most recent failure detected after load() returned, if any."""
        with self._lock:
            return self._last_error

    def get_status(self) -> dict:
        with self._lock:
            s = self._session
            pipeline = s.pipeline
            return {
                "state": s.transport_state.value,
                "locator": s.current_locator,
                "generation": pipeline.generation if pipeline else None,
                "bytes_played": pipeline.sink.bytes_written if pipeline else 0,
                "error": str(self._last_error) if self._last_error else "",
            }

    # --- Transport ---

    def load(self, locator: str):
        """Tear down whatever is playing, then start playing ``locator``.

        Raises ResolutionError, SubprocessStartError or SinkError. On any
        failure nothing is left loaded.
        """
        with self._lifecycle:
            self._teardown()
            with self._lock:
                self._session.manually_stopped = False
                self._last_error = None

            logger.info("Loading: %s", locator)
            url = self._resolver.resolve(locator)
            decoder = self._supervisor.start(url)
            try:
                sink = self._engine.attach(decoder.stream)
            except SinkError:
                self._supervisor.terminate(decoder)
                decoder.close()
                raise

            self._generation += 1
            pipeline = Pipeline(self._generation, locator, decoder, sink)
            with self._lock:
                self._session.pipeline = pipeline
                self._session.current_locator = locator
                self._session.transport_state = TransportState.PLAYING

            pipeline.watcher = threading.Thread(
                target=self._watch, args=(pipeline,),
                daemon=True, name=f"pipeline-watch-{pipeline.generation}",
            )
            pipeline.watcher.start()
            logger.info("Playing: %s (decoder pid=%d, pipeline #%d)",
                        locator, decoder.pid, pipeline.generation)

    def stop(self):
        """Stop playback and clear ``last_error``.

        Idempotent; never fires the completion signal. Waits for an
        in-flight load() to finish first, so call it off the UI thread.
        """
        with self._lifecycle:
            self._teardown()

    def pause(self):
        with self._lock:
            s = self._session
            if s.transport_state is not TransportState.PLAYING or s.pipeline is None:
                return
            s.pipeline.sink.pause()
            s.transport_state = TransportState.PAUSED
        logger.debug("Paused")

    def play(self):
        """Resume after pause(). A stopped track needs load() again."""
        with self._lock:
            s = self._session
            if s.transport_state is not TransportState.PAUSED or s.pipeline is None:
                return
            s.pipeline.sink.play()
            s.transport_state = TransportState.PLAYING
        logger.debug("Resumed")

    def toggle(self):
        if self.is_playing():
            self.pause()
        else:
            self.play()

    # --- Pipeline teardown ---

    def _detach_locked(self) -> Pipeline | None:
        s = self._session
        pipeline = s.pipeline
        s.pipeline = None
        s.current_locator = ""
        s.transport_state = TransportState.STOPPED
        return pipeline

    def _teardown(self):
        """User-initiated end of the current pipeline. Caller holds _lifecycle."""
        with self._lock:
            self._session.manually_stopped = True
            self._last_error = None
            pipeline = self._detach_locked()
        if pipeline is None:
            return
        self._destroy(pipeline)
        logger.info("Stopped: %s", pipeline.locator)

    def _destroy(self, pipeline: Pipeline):
        # cancel -> grace period -> kill, then release the line and pipes
        returncode = self._supervisor.terminate(pipeline.decoder)
        pipeline.sink.close()
        pipeline.decoder.close()
        logger.debug("Pipeline #%d torn down (decoder exit=%s)", pipeline.generation, returncode)

    # --- Watcher ---

    def _watch(self, pipeline: Pipeline):
        sink = pipeline.sink
        decoder = pipeline.decoder
        sink.wait_finished()
        if sink.error is not None and decoder.is_running():
            # Nobody is reading the pipe any more; ffmpeg would block forever
            self._supervisor.terminate(decoder)
        returncode = self._supervisor.wait(decoder)
        decoder.join_stderr()
        self._events.put(PipelineExit(
            pipeline=pipeline,
            returncode=returncode,
            bytes_decoded=decoder.stream.bytes_read,
            sink_error=sink.error,
            stderr_tail=list(decoder.stderr_tail),
        ))
        self._drain_events()

    def _drain_events(self):
        errors: list[PlaybackError] = []
        with self._lifecycle:
            while True:
                try:
                    event = self._events.get_nowait()
                except queue.Empty:
                    break
                error = self._handle_exit(event)
                if error is not None:
                    errors.append(error)

        # on_error may be swapped out from another thread
        callback = self.on_error
        if callback:
            for error in errors:
                callback(error)

    def _handle_exit(self, event: PipelineExit) -> PlaybackError | None:
        """Retire the pipeline named by ``event``. Caller holds _lifecycle."""
        pipeline = event.pipeline
        error: PlaybackError | None = None
        with self._lock:
            if pipeline is not self._session.pipeline:
                logger.debug("Ignoring exit of retired pipeline #%d", pipeline.generation)
                return None
            self._detach_locked()
            notify = not self._session.manually_stopped

            if event.sink_error is not None:
                error = event.sink_error
            elif event.bytes_decoded == 0:
                detail = event.stderr_tail[-1] if event.stderr_tail else "no output"
                error = SubprocessRuntimeError(
                    f"decoder exited (status {event.returncode}) before producing audio: {detail}",
                    returncode=event.returncode,
                )
            if error is not None:
                self._last_error = error

        self._destroy(pipeline)

        if error is not None:
            logger.warning("Playback failed for %s: %s", pipeline.locator, error)
            return error

        if event.returncode:
            logger.warning(
                "Decoder exited with status %d after %d bytes, treating as end of track: %s",
                event.returncode, event.bytes_decoded, pipeline.locator,
            )
        logger.info("Finished: %s", pipeline.locator)
        if notify:
            self.completion.publish()
        return None
