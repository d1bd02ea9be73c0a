"""Auto-advance policy: play a list of locators back to back."""

from __future__ import annotations

import logging
import threading
from typing import Callable

from gplay.player.controller import PlaybackController
from gplay.player.errors import PlaybackError

logger = logging.getLogger(__name__)


class AutoAdvance:
    """Loads the next locator each time the controller reports a natural end.

    Runs a background thread that blocks on the controller's completion
    signal. Items that fail to load are skipped.
    """

    def __init__(
        self,
        controller: PlaybackController,
        on_advance: Callable[[int, str], None] | None = None,
        poll_interval: float = 0.5,
    ):
        self.controller = controller
        self.on_advance = on_advance
        self.poll_interval = poll_interval
        self._items: list[str] = []
        self._index = -1
        self._lock = threading.Lock()
        self._running = False
        self._thread: threading.Thread | None = None
        self._done = threading.Event()
        self._skip = threading.Event()

    @property
    def index(self) -> int:
        with self._lock:
            return self._index

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, items: list[str], index: int = 0) -> bool:
        """Start playing ``items`` from ``index``.

        Returns False if no item from ``index`` onward could be loaded.
        """
        with self._lock:
            self._items = list(items)
        self._done.clear()
        self._skip.clear()
        self.controller.completion.clear()
        if not self._running:
            self._running = True
            self._thread = threading.Thread(target=self._loop, daemon=True, name="auto-advance")
            self._thread.start()
        return self._play_from(index)

    def stop(self):
        """Stop advancing. Does not stop the current track."""
        self._running = False
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.poll_interval * 4)
        self._thread = None

    def wait_done(self, timeout: float | None = None) -> bool:
        """Block until the last item has finished or nothing more can play."""
        return self._done.wait(timeout)

    def handle_error(self, error: PlaybackError):
        """Controller ``on_error`` hook: a track that failed mid-way is skipped.

        Failures after load() returned never raise the completion signal,
        so without this the list would stall on a broken item.
        """
        logger.warning("Track failed, advancing: %s", error)
        self._skip.set()

    def _loop(self):
        while self._running:
            if self._skip.is_set():
                self._skip.clear()
            elif not self.controller.completion.wait(timeout=self.poll_interval):
                continue
            if not self._running:
                break
            self._play_from(self.index + 1)

    def _play_from(self, index: int) -> bool:
        with self._lock:
            items = list(self._items)

        for i in range(max(index, 0), len(items)):
            # Set before loading: a short track can finish before load() returns
            with self._lock:
                self._index = i
            try:
                self.controller.load(items[i])
            except PlaybackError as e:
                logger.warning("Skipping %s: %s", items[i], e)
                continue
            if self.on_advance:
                self.on_advance(i, items[i])
            return True

        logger.info("Reached end of list (%d items)", len(items))
        self._done.set()
        return False
