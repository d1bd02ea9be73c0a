"""gplay TUI - Textual terminal player.

Search YouTube, pick a result and listen to its audio track. Playback runs
in-process through the PlaybackController; slow calls (search, load) run in
worker threads so the UI never blocks.
"""

import logging
import threading

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Input, Label, ListView
from textual.worker import get_current_worker

from gplay.catalog.base import CatalogItem, SearchConfig
from gplay.catalog.youtube import CatalogError, YouTubeCatalog
from gplay.player.controller import PlaybackController
from gplay.player.errors import PlaybackError
from gplay.tui.widgets.controls import ControlsBar
from gplay.tui.widgets.player_panel import PlayerPanel
from gplay.tui.widgets.results_list import ResultsList

logger = logging.getLogger(__name__)


def next_index(
    items: list[CatalogItem], current_index: int | None, current_item: CatalogItem | None,
) -> int | None:
    """Index of the result after the one playing, or None at the end of the list.

    Uses the position playback started from, so a video listed twice moves
    on past its second copy. If the list was replaced since, falls back to
    the first result with the same URL.
    """
    if current_item is None or not items:
        return None
    if current_index is not None and current_index < len(items) and items[current_index] is current_item:
        index = current_index
    else:
        urls = [i.url for i in items]
        if current_item.url not in urls:
            return None
        index = urls.index(current_item.url)
    index += 1
    return index if index < len(items) else None


class SearchScreen(ModalScreen[str | None]):
    """Modal screen for entering a search query."""

    DEFAULT_CSS = """
    SearchScreen {
        align: center middle;
    }
    SearchScreen > Container {
        width: 60;
        height: auto;
        max-height: 9;
        border: round #00D9FF;
        background: $surface;
        padding: 1 3;
    }
    SearchScreen .search-title {
        color: #00D9FF;
        text-style: bold;
        margin-bottom: 1;
    }
    SearchScreen .search-help {
        color: $text-muted;
        text-style: italic;
        margin-top: 1;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    def compose(self) -> ComposeResult:
        with Container():
            yield Label("Search YouTube", classes="search-title")
            yield Input(placeholder="Enter search query...", max_length=100, id="search-input")
            yield Label("Enter to search  -  Esc to cancel", classes="search-help")

    def on_mount(self) -> None:
        self.query_one("#search-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        query = event.value.strip()
        self.dismiss(query if query else None)

    def action_cancel(self) -> None:
        self.dismiss(None)


class HelpScreen(ModalScreen):
    """Help screen showing all keybindings."""

    DEFAULT_CSS = """
    HelpScreen {
        align: center middle;
    }
    HelpScreen > Container {
        width: 56;
        height: auto;
        max-height: 16;
        border: thick $primary;
        background: $surface;
        padding: 1 2;
    }
    HelpScreen .help-title {
        text-style: bold;
        text-align: center;
        margin-bottom: 1;
    }
    HelpScreen .help-line {
        height: 1;
    }
    HelpScreen .help-footer {
        text-align: center;
        margin-top: 1;
        color: $text-muted;
    }
    """

    BINDINGS = [
        Binding("escape", "dismiss_help", "Close"),
        Binding("question_mark", "dismiss_help", "Close"),
    ]

    HELP_LINES = [
        ("/ or S", "Search YouTube"),
        ("Up/K", "Previous result"),
        ("Down/J", "Next result"),
        ("Enter", "Play selected"),
        ("Space", "Pause / resume / play selected"),
        ("X", "Stop"),
        ("Q", "Quit"),
    ]

    def compose(self) -> ComposeResult:
        with Container():
            yield Label("gplay Keybindings", classes="help-title")
            for key, desc in self.HELP_LINES:
                yield Label(f"  {key:>10}   {desc}", classes="help-line", markup=False)
            yield Label("Press ? or Esc to close", classes="help-footer")

    def action_dismiss_help(self) -> None:
        self.dismiss()


class GPlayApp(App):
    """gplay terminal UI."""

    TITLE = "gplay"

    CSS = """
    #main {
        height: 1fr;
    }
    """

    BINDINGS = [
        Binding("slash,s", "search", "Search", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("space", "toggle", "Play/Pause", show=False),
        Binding("x", "stop", "Stop", show=False),
        Binding("q", "quit_app", "Quit", show=False),
        Binding("question_mark", "show_help", "Help", show=False),
    ]

    def __init__(
        self,
        controller: PlaybackController,
        catalog: YouTubeCatalog | None = None,
        search_config: SearchConfig | None = None,
        startup_playlist: str = "",
    ):
        super().__init__()
        self.controller = controller
        self.catalog = catalog
        self.search_config = search_config
        self.startup_playlist = startup_playlist
        self.current_item: CatalogItem | None = None
        self.current_index: int | None = None
        self._loading = False
        controller.on_error = self._on_playback_error

    def compose(self) -> ComposeResult:
        with Horizontal(id="main"):
            yield ResultsList()
            yield PlayerPanel()
        yield ControlsBar()

    def on_mount(self) -> None:
        self.set_interval(0.5, self._refresh_status)
        self._watch_completions()
        if self.startup_playlist:
            self._fetch_playlist(self.startup_playlist)

    def on_unmount(self) -> None:
        self.controller.on_error = None
        # stop() can wait on a resolving load; never block the event loop on it
        threading.Thread(target=self.controller.stop, daemon=True, name="gplay-stop").start()
        if self.catalog:
            self.catalog.close()

    # --- Status ---

    def _refresh_status(self) -> None:
        panel = self.query_one(PlayerPanel)
        panel.status = "loading" if self._loading else self.controller.state.value
        self.query_one(ResultsList).loaded_url = self.controller.current_locator

    def _set_loading(self, loading: bool) -> None:
        self._loading = loading
        self._refresh_status()

    def _on_playback_error(self, error: PlaybackError) -> None:
        # Called from a pipeline watcher thread
        self.call_from_thread(self.notify, f"Error: {error}", severity="error", timeout=4)

    # --- Workers ---

    @work(thread=True, exclusive=True, group="completion")
    def _watch_completions(self) -> None:
        """Auto-advance: play the next result whenever a track ends."""
        worker = get_current_worker()
        while not worker.is_cancelled:
            if self.controller.completion.wait(timeout=0.5):
                self.call_from_thread(self._advance)

    @work(thread=True, exclusive=True, group="load")
    def _load(self, item: CatalogItem) -> None:
        self.call_from_thread(self._set_loading, True)
        try:
            self.controller.load(item.url)
        except PlaybackError as e:
            logger.warning("Load failed for %s: %s", item.url, e)
            self.call_from_thread(self.notify, f"Error: {e}", severity="error", timeout=4)
        finally:
            self.call_from_thread(self._set_loading, False)

    @work(thread=True, group="stop")
    def _stop(self) -> None:
        # Waits behind a load that is still resolving
        self.controller.stop()
        if self.is_running:
            self.call_from_thread(self._refresh_status)

    @work(thread=True, exclusive=True, group="search")
    def _search(self, query: str) -> None:
        try:
            response = self.catalog.search(query, self.search_config)
        except CatalogError as e:
            self.call_from_thread(self.notify, f"Search failed: {e}", severity="error", timeout=4)
            return
        self.call_from_thread(self._show_results, response.items, f"Results: {query}")

    @work(thread=True, exclusive=True, group="search")
    def _fetch_playlist(self, playlist_id: str) -> None:
        if not self.catalog:
            return
        try:
            items = self.catalog.playlist_items(playlist_id)
        except CatalogError as e:
            self.call_from_thread(self.notify, f"Playlist failed: {e}", severity="error", timeout=4)
            return
        self.call_from_thread(self._show_results, items, "Playlist")

    def _show_results(self, items: list[CatalogItem], heading: str) -> None:
        self.query_one(ResultsList).update_items(items, heading)
        if not items:
            self.notify("No results", timeout=2)

    # --- Playback helpers ---

    def _play(self, item: CatalogItem, index: int | None = None) -> None:
        self.current_item = item
        self.current_index = index
        self.query_one(PlayerPanel).item = item
        self._load(item)

    def _advance(self) -> None:
        results = self.query_one(ResultsList)
        items = results.items
        index = next_index(items, self.current_index, self.current_item)
        if index is None:
            if self.current_item is not None and any(i.url == self.current_item.url for i in items):
                self.notify("End of list", timeout=2)
            return
        results.select(index)
        self._play(items[index], index)

    # --- Events ---

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        self.action_play_selected()

    def on_list_view_highlighted(self, event: ListView.Highlighted) -> None:
        if self.current_item is None:
            self.query_one(PlayerPanel).item = self.query_one(ResultsList).get_selected_item()

    # --- Actions ---

    def action_search(self) -> None:
        if not self.catalog:
            self.notify("Search unavailable: set GOOGLE_API_KEY", severity="warning", timeout=3)
            return
        self.push_screen(SearchScreen(), self._on_search_submitted)

    def _on_search_submitted(self, query: str | None) -> None:
        if query:
            self.notify(f"Searching YouTube for '{query}'...", timeout=2)
            self._search(query)

    def action_cursor_up(self) -> None:
        self.query_one(ResultsList).move(-1)

    def action_cursor_down(self) -> None:
        self.query_one(ResultsList).move(1)

    def action_play_selected(self) -> None:
        results = self.query_one(ResultsList)
        item = results.get_selected_item()
        if item:
            self._play(item, results.selected_index)

    def action_toggle(self) -> None:
        if self._loading:
            return
        if self.controller.is_playing():
            self.controller.pause()
        elif self.controller.is_paused():
            self.controller.play()
        else:
            self.action_play_selected()
        self._refresh_status()

    def action_stop(self) -> None:
        self._stop()

    def action_quit_app(self) -> None:
        # Playback is stopped from on_unmount
        self.exit()

    def action_show_help(self) -> None:
        self.push_screen(HelpScreen())
