"""Results list widget - search or playlist results with a play marker."""

from textual.app import ComposeResult
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label, ListItem, ListView

from gplay.catalog.base import CatalogItem

MAX_TITLE = 40


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit - 3] + "..."


class ResultsList(Widget):
    """Displays catalog items; highlights the one currently loaded."""

    DEFAULT_CSS = """
    ResultsList {
        width: 1fr;
        height: 1fr;
        border: round $panel-lighten-2;
        padding: 0 1;
    }
    ResultsList .rl-header {
        text-style: bold;
        color: $accent;
        height: 1;
    }
    ResultsList ListView {
        height: 1fr;
    }
    ResultsList ListItem {
        height: 2;
    }
    ResultsList .rl-channel {
        color: $text-muted;
        text-style: italic;
    }
    ResultsList .rl-empty {
        text-style: italic;
        color: $text-muted;
        text-align: center;
        margin: 2 0;
    }
    ResultsList ListItem.loaded {
        background: $primary-background;
    }
    """

    items: reactive[list] = reactive(list, always_update=True)
    heading: reactive[str] = reactive("Search Results")
    loaded_url: reactive[str] = reactive("")

    def compose(self) -> ComposeResult:
        yield Label("Search Results", id="rl-header", classes="rl-header")
        yield ListView(id="rl-list")
        yield Label("Press [bold]/[/bold] or [bold]s[/bold] to search\nPress [bold]q[/bold] to quit",
                    id="rl-empty", classes="rl-empty")

    def update_items(self, items: list[CatalogItem], heading: str = "Search Results") -> None:
        self.heading = heading
        self.items = items

    def watch_heading(self, heading: str) -> None:
        self.query_one("#rl-header", Label).update(heading)

    def watch_items(self, items: list) -> None:
        listview = self.query_one("#rl-list", ListView)
        empty_label = self.query_one("#rl-empty", Label)

        listview.clear()

        if not items:
            empty_label.display = True
            listview.display = False
            return

        empty_label.display = False
        listview.display = True

        for item in items:
            li = ListItem(
                Label(_truncate(item.title or item.url, MAX_TITLE), markup=False),
                Label(item.channel_title, classes="rl-channel", markup=False),
            )
            if item.url == self.loaded_url:
                li.add_class("loaded")
            listview.append(li)
        listview.index = 0

    def watch_loaded_url(self, url: str) -> None:
        listview = self.query_one("#rl-list", ListView)
        for li, item in zip(listview.children, self.items):
            li.set_class(bool(url) and item.url == url, "loaded")

    @property
    def selected_index(self) -> int | None:
        index = self.query_one("#rl-list", ListView).index
        if index is None or index >= len(self.items):
            return None
        return index

    def get_selected_item(self) -> CatalogItem | None:
        index = self.selected_index
        return self.items[index] if index is not None else None

    def select(self, index: int) -> None:
        if 0 <= index < len(self.items):
            self.query_one("#rl-list", ListView).index = index

    def move(self, delta: int) -> None:
        listview = self.query_one("#rl-list", ListView)
        if not self.items:
            return
        current = listview.index or 0
        listview.index = max(0, min(len(self.items) - 1, current + delta))
