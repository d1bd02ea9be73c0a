"""Tests for AutoAdvance (play a list back to back)."""

import threading

from gplay.player.autoadvance import AutoAdvance
from gplay.player.controller import PlaybackController


class Recorder:
    def __init__(self):
        self.advanced = []

    def __call__(self, index, locator):
        self.advanced.append((index, locator))


def _advance(controller, **kwargs):
    recorder = Recorder()
    advance = AutoAdvance(controller, on_advance=recorder, poll_interval=0.05, **kwargs)
    return advance, recorder


class TestAutoAdvance:
    def test_plays_list_to_the_end(self, controller):
        advance, recorder = _advance(controller)
        try:
            assert advance.start(["tone", "tone", "tone"]) is True
            assert advance.wait_done(timeout=10) is True
        finally:
            advance.stop()
        assert recorder.advanced == [(0, "tone"), (1, "tone"), (2, "tone")]
        assert advance.index == 2

    def test_start_from_index(self, controller):
        advance, recorder = _advance(controller)
        try:
            advance.start(["endless", "tone"], index=1)
            assert advance.wait_done(timeout=10) is True
        finally:
            advance.stop()
        assert recorder.advanced == [(1, "tone")]

    def test_skips_items_that_fail_to_load(self, controller, resolver):
        resolver.fail.add("bad")
        advance, recorder = _advance(controller)
        try:
            advance.start(["bad", "tone", "bad", "tone"])
            assert advance.wait_done(timeout=10) is True
        finally:
            advance.stop()
        assert recorder.advanced == [(1, "tone"), (3, "tone")]

    def test_nothing_playable(self, controller, resolver):
        resolver.fail.add("bad")
        advance, recorder = _advance(controller)
        try:
            assert advance.start(["bad"]) is False
            assert advance.wait_done(timeout=0) is True
        finally:
            advance.stop()
        assert recorder.advanced == []

    def test_manual_stop_does_not_advance(self, controller):
        advance, recorder = _advance(controller)
        try:
            advance.start(["endless", "tone"])
            controller.stop()
            assert advance.wait_done(timeout=0.3) is False
        finally:
            advance.stop()
        assert recorder.advanced == [(0, "endless")]

    def test_stop_ends_the_thread(self, controller):
        advance, _ = _advance(controller)
        advance.start(["endless"])
        assert advance.is_running is True
        advance.stop()
        assert advance.is_running is False

    def test_runtime_failure_skips_to_next(self, resolver, supervisor, engine):
        done = threading.Event()
        recorder = Recorder()
        controller = PlaybackController(resolver, supervisor, engine)
        advance = AutoAdvance(controller, on_advance=recorder, poll_interval=0.05)
        controller.on_error = advance.handle_error
        try:
            advance.start(["broken", "tone"])
            if advance.wait_done(timeout=10):
                done.set()
        finally:
            advance.stop()
            controller.stop()
        assert done.is_set()
        assert recorder.advanced == [(0, "broken"), (1, "tone")]
