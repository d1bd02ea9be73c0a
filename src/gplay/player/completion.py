"""Single-slot "track finished" notification."""

import logging
import queue

logger = logging.getLogger(__name__)


class CompletionSignal:
    """At most one pending notification; extra publishes are dropped.

    The consumer only needs to know that something finished, not how many
    times, so publishing never blocks and never queues beyond one.
    Each successful ``wait()`` consumes the pending signal; call it again
    to keep observing.
    """

    def __init__(self):
        self._slot: queue.Queue[bool] = queue.Queue(maxsize=1)

    def publish(self) -> bool:
        """Raise the signal. Returns False if one was already pending."""
        try:
            self._slot.put_nowait(True)
        except queue.Full:
            logger.debug("Completion already pending, dropped")
            return False
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the signal is raised, then consume it.

        Returns False if ``timeout`` expired first.
        """
        try:
            self._slot.get(timeout=timeout)
        except queue.Empty:
            return False
        return True

    @property
    def pending(self) -> bool:
        return not self._slot.empty()

    def clear(self):
        """Drop a pending signal, if any."""
        try:
            self._slot.get_nowait()
        except queue.Empty:
            pass
