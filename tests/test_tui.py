"""Smoke tests for TUI modules.

Tests import correctness, widget construction, and display helpers.
Does NOT test full Textual app rendering.
"""

from unittest.mock import MagicMock, patch

import pytest

from gplay.catalog.base import CatalogItem
from gplay.tui.app import next_index
from gplay.tui.widgets.player_panel import STATUS_LINES, _format_count, status_line


class TestTUIImports:
    """Verify all TUI modules can be imported without error."""

    def test_import_app(self):
        from gplay.tui.app import GPlayApp, HelpScreen, SearchScreen
        assert GPlayApp is not None
        assert HelpScreen is not None
        assert SearchScreen is not None

    def test_import_results_list(self):
        from gplay.tui.widgets.results_list import ResultsList
        assert ResultsList is not None

    def test_import_player_panel(self):
        from gplay.tui.widgets.player_panel import PlayerPanel
        assert PlayerPanel is not None

    def test_import_controls(self):
        from gplay.tui.widgets.controls import ControlsBar
        assert ControlsBar is not None


class TestStatusLine:
    @pytest.mark.parametrize("status", ["loading", "playing", "paused", "stopped"])
    def test_known_states(self, status):
        assert status_line(status) == STATUS_LINES[status]

    def test_unknown_state_shows_stopped(self):
        assert status_line("buffering") == STATUS_LINES["stopped"]

    def test_matches_transport_states(self):
        from gplay.player.controller import TransportState
        for state in TransportState:
            assert state.value in STATUS_LINES


class TestFormatCount:
    def test_small(self):
        assert _format_count(999) == "999"

    def test_thousands(self):
        assert _format_count(42000) == "42.0K"

    def test_millions(self):
        assert _format_count(1_500_000) == "1.5M"


class TestTruncate:
    def test_short_title_unchanged(self):
        from gplay.tui.widgets.results_list import _truncate
        assert _truncate("short", 40) == "short"

    def test_long_title_truncated(self):
        from gplay.tui.widgets.results_list import _truncate
        result = _truncate("x" * 50, 40)
        assert len(result) == 40
        assert result.endswith("...")


class TestAppBindings:
    def test_key_bindings(self):
        from gplay.tui.app import GPlayApp
        keys = {b.key: b.action for b in GPlayApp.BINDINGS}
        assert keys["slash,s"] == "search"
        assert keys["space"] == "toggle"
        assert keys["x"] == "stop"
        assert keys["q"] == "quit_app"
        assert keys["j"] == "cursor_down"
        assert keys["k"] == "cursor_up"

    def test_stop_runs_off_the_event_loop(self):
        from gplay.tui.app import GPlayApp
        controller = MagicMock()
        app = GPlayApp(controller=controller)
        with patch.object(GPlayApp, "_stop") as stop_worker:
            app.action_stop()
        stop_worker.assert_called_once()
        controller.stop.assert_not_called()

    def test_quit_does_not_wait_for_stop(self):
        from gplay.tui.app import GPlayApp
        controller = MagicMock()
        app = GPlayApp(controller=controller)
        with patch.object(app, "exit") as exit_app:
            app.action_quit_app()
        exit_app.assert_called_once()
        controller.stop.assert_not_called()

    def test_app_wires_error_callback(self, controller):
        from gplay.tui.app import GPlayApp
        app = GPlayApp(controller=controller)
        assert controller.on_error == app._on_playback_error
        assert app.catalog is None
        assert app.current_item is None


class TestNextIndex:
    @pytest.fixture()
    def items(self):
        return [
            CatalogItem(video_id="a"),
            CatalogItem(video_id="b"),
            CatalogItem(video_id="a"),
            CatalogItem(video_id="c"),
        ]

    def test_advances_from_playing_position(self, items):
        assert next_index(items, 0, items[0]) == 1

    def test_repeated_video_moves_forward(self, items):
        # The second copy of "a" is playing; the next track is "c", not "b"
        assert next_index(items, 2, items[2]) == 3

    def test_end_of_list(self, items):
        assert next_index(items, 3, items[3]) is None

    def test_list_replaced_falls_back_to_url(self, items):
        playing = CatalogItem(video_id="b")
        assert next_index(items, 0, playing) == 2

    def test_not_in_list(self, items):
        assert next_index(items, 1, CatalogItem(video_id="zzz")) is None

    def test_nothing_playing(self, items):
        assert next_index(items, None, None) is None
        assert next_index([], 0, items[0]) is None
