"""Controls bar widget - shows keybindings at the bottom of the screen."""

from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.widget import Widget
from textual.widgets import Label

KEYS = [
    ("[/]", "Search"),
    ("[Up/Down]", "Navigate"),
    ("[Enter]", "Play"),
    ("[Space]", "Pause/Resume"),
    ("[X]", "Stop"),
    ("[?]", "Help"),
    ("[Q]", "Quit"),
]


class ControlsBar(Widget):
    """Displays available keybindings in a compact footer bar."""

    DEFAULT_CSS = """
    ControlsBar {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    ControlsBar .cb-row {
        height: 1;
        width: 1fr;
    }
    ControlsBar .cb-key {
        text-style: bold;
        color: $accent;
        width: auto;
    }
    ControlsBar .cb-desc {
        color: $text;
        width: auto;
        margin-right: 2;
    }
    """

    def compose(self) -> ComposeResult:
        with Horizontal(classes="cb-row"):
            for key, desc in KEYS:
                yield Label(key, classes="cb-key", markup=False)
                yield Label(desc, classes="cb-desc")
