"""Player panel - transport status and details of the selected item."""

from textual.app import ComposeResult
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label

from gplay.catalog.base import CatalogItem, format_duration

STATUS_LINES = {
    "loading": "[bold #FFB86C]... LOADING[/]",
    "playing": "[bold #50FA7B]>> NOW PLAYING[/]",
    "paused": "[bold #F1FA8C]|| PAUSED[/]",
    "stopped": "[#6272A4]-- STOPPED[/]",
}


def status_line(status: str) -> str:
    return STATUS_LINES.get(status, STATUS_LINES["stopped"])


def _format_count(n: int) -> str:
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(n)


class PlayerPanel(Widget):
    """Shows what the controller is doing and what is selected."""

    DEFAULT_CSS = """
    PlayerPanel {
        width: 3fr;
        height: 1fr;
        border: round $panel-lighten-2;
        padding: 0 1;
    }
    PlayerPanel .pp-header {
        text-style: bold;
        color: $accent;
        height: 1;
        margin-bottom: 1;
    }
    PlayerPanel .pp-status {
        margin-bottom: 1;
    }
    PlayerPanel .pp-title {
        text-style: bold;
        color: $accent;
    }
    PlayerPanel .pp-channel {
        color: $secondary;
        text-style: italic;
        margin-bottom: 1;
    }
    PlayerPanel .pp-meta {
        color: $text-muted;
    }
    PlayerPanel .pp-idle {
        text-style: italic;
        color: $text-muted;
        margin: 1 0;
    }
    """

    status: reactive[str] = reactive("stopped")
    item: reactive[CatalogItem | None] = reactive(None)

    def compose(self) -> ComposeResult:
        yield Label("Player", classes="pp-header")
        yield Label(status_line("stopped"), id="pp-status", classes="pp-status")
        yield Label("No video selected", id="pp-idle", classes="pp-idle")
        # Titles and descriptions come from YouTube and may contain brackets
        yield Label("", id="pp-title", classes="pp-title", markup=False)
        yield Label("", id="pp-channel", classes="pp-channel", markup=False)
        yield Label("", id="pp-meta", classes="pp-meta", markup=False)
        yield Label("", id="pp-description", classes="pp-meta", markup=False)

    def watch_status(self, status: str) -> None:
        self.query_one("#pp-status", Label).update(status_line(status))

    def watch_item(self, item: CatalogItem | None) -> None:
        idle = item is None
        self.query_one("#pp-idle", Label).display = idle
        for wid in ("#pp-title", "#pp-channel", "#pp-meta", "#pp-description"):
            self.query_one(wid, Label).display = not idle
        if idle:
            return

        self.query_one("#pp-title", Label).update(item.title)
        self.query_one("#pp-channel", Label).update(item.channel_title)
        meta = [f"Video ID: {item.video_id}"]
        if item.duration_seconds:
            meta.append(f"Duration: {format_duration(item.duration_seconds)}")
        if item.view_count:
            meta.append(f"Views: {_format_count(item.view_count)}")
        if item.like_count:
            meta.append(f"Likes: {_format_count(item.like_count)}")
        meta.append(f"URL: {item.url}")
        self.query_one("#pp-meta", Label).update("\n".join(meta))
        description = item.description
        if len(description) > 200:
            description = description[:197] + "..."
        self.query_one("#pp-description", Label).update(description)
