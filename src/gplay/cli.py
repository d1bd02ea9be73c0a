"""CLI entry point for gplay.

gplay                 Runs the Textual TUI (same as ``gplay tui``)
gplay search QUERY    Prints search results
gplay playlist ID     Prints the videos in a playlist
gplay play URL...     Plays URLs back to back without the TUI
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from gplay import __version__

logger = logging.getLogger("gplay")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DEFAULT_LOG_FILE = Path.home() / ".cache" / "gplay" / "gplay.log"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gplay",
        description="gplay - search YouTube and play audio from the terminal",
    )
    parser.add_argument("--version", action="version", version=f"gplay {__version__}")
    parser.add_argument(
        "--config", default=None, help="Path to gplay.toml config file"
    )
    parser.add_argument(
        "--log-level", default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)"
    )
    sub = parser.add_subparsers(dest="command")

    # tui
    p_tui = sub.add_parser("tui", help="Run the terminal UI (default)")
    p_tui.add_argument(
        "--log-file", default=str(DEFAULT_LOG_FILE),
        help=f"Log file while the TUI owns the terminal (default: {DEFAULT_LOG_FILE})"
    )
    p_tui.add_argument("--playlist", default=None, help="Playlist ID or URL to load at start-up")

    # search
    p_search = sub.add_parser("search", help="Search YouTube for videos")
    p_search.add_argument("query", nargs="+", help="Search query")
    p_search.add_argument("--max", "-m", type=int, default=None, dest="max_results",
                          help="Maximum number of results (1-50)")
    p_search.add_argument("--order", default=None,
                          choices=["relevance", "date", "rating", "viewCount", "title"],
                          help="Sort order")
    p_search.add_argument("--safe", default=None, choices=["none", "moderate", "strict"],
                          help="Safe search filter")
    p_search.add_argument("--duration", default=None, choices=["any", "short", "medium", "long"],
                          help="Video duration filter")
    p_search.add_argument("--type", default=None, choices=["any", "episode", "movie"],
                          dest="video_type", help="Video type filter")
    p_search.add_argument("--format", default="table", choices=["table", "json"],
                          dest="output_format", help="Output format")

    # playlist
    p_playlist = sub.add_parser("playlist", help="List the videos in a playlist")
    p_playlist.add_argument("playlist", help="Playlist ID or URL")
    p_playlist.add_argument("--max", "-m", type=int, default=0, dest="max_results",
                            help="Maximum number of videos (default: all)")
    p_playlist.add_argument("--format", default="table", choices=["table", "json"],
                            dest="output_format", help="Output format")

    # play
    p_play = sub.add_parser("play", help="Play one or more URLs without the TUI")
    p_play.add_argument("urls", nargs="+", help="YouTube URLs")

    return parser


def _setup_logging(level: str, log_file: str | None = None):
    """Log to stderr, or to a file when the TUI owns the terminal."""
    kwargs = {}
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        kwargs["filename"] = str(path)
    logging.basicConfig(
        level=getattr(logging, level),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        **kwargs,
    )


def _search_config(yt, args=None):
    from gplay.catalog.base import SearchConfig

    config = SearchConfig(
        max_results=yt.max_results,
        order=yt.order,
        safe_search=yt.safe_search,
        video_duration=yt.video_duration,
        video_type=yt.video_type,
    )
    if args is not None:
        if args.max_results is not None:
            config.max_results = args.max_results
        if args.order:
            config.order = args.order
        if args.safe:
            config.safe_search = args.safe
        if args.duration:
            config.video_duration = args.duration
        if args.video_type:
            config.video_type = args.video_type
    return config


def _print_items(items, output_format: str):
    from gplay.catalog.base import format_duration

    if output_format == "json":
        print(json.dumps([item.to_dict() for item in items], indent=2))
        return

    if not items:
        print("No results")
        return
    for n, item in enumerate(items, 1):
        duration = format_duration(item.duration_seconds) if item.duration_seconds else "-"
        print(f"{n:3d}. {item.title}")
        print(f"     {item.channel_title}  [{duration}]  {item.url}")


def cmd_search(config, args) -> int:
    from gplay.catalog.youtube import CatalogError, YouTubeCatalog

    query = " ".join(args.query)
    try:
        with YouTubeCatalog(config.youtube.api_key) as catalog:
            response = catalog.search(query, _search_config(config.youtube, args))
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.output_format == "table":
        print(f"Results for '{query}' ({len(response.items)} of {response.total_results}):")
    _print_items(response.items, args.output_format)
    return 0


def cmd_playlist(config, args) -> int:
    from gplay.catalog.base import extract_playlist_id
    from gplay.catalog.youtube import CatalogError, YouTubeCatalog

    playlist_id = extract_playlist_id(args.playlist)
    if not playlist_id:
        print(f"Error: no playlist ID in {args.playlist}", file=sys.stderr)
        return 1
    try:
        with YouTubeCatalog(config.youtube.api_key) as catalog:
            items = catalog.playlist_items(playlist_id, limit=args.max_results)
    except CatalogError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.output_format == "table":
        print(f"Playlist {playlist_id} ({len(items)} videos):")
    _print_items(items, args.output_format)
    return 0


def cmd_play(config, args) -> int:
    from gplay.player.autoadvance import AutoAdvance
    from gplay.player.controller import PlaybackController

    controller = PlaybackController.from_config(config.player)
    advance = AutoAdvance(
        controller,
        on_advance=lambda i, url: print(f"[{i + 1}/{len(args.urls)}] {url}"),
    )
    controller.on_error = advance.handle_error

    if not advance.start(args.urls):
        print("Error: nothing could be played", file=sys.stderr)
        advance.stop()
        return 1
    try:
        advance.wait_done()
    except KeyboardInterrupt:
        print()
    finally:
        advance.stop()
        controller.stop()
    return 0


def cmd_tui(config, args) -> int:
    from gplay.catalog.base import extract_playlist_id
    from gplay.catalog.youtube import CatalogError, YouTubeCatalog
    from gplay.player.controller import PlaybackController
    from gplay.tui.app import GPlayApp

    catalog = None
    try:
        catalog = YouTubeCatalog(config.youtube.api_key)
    except CatalogError as e:
        logger.warning("Search disabled: %s", e)

    playlist = getattr(args, "playlist", None) or config.youtube.startup_playlist
    app = GPlayApp(
        controller=PlaybackController.from_config(config.player),
        catalog=catalog,
        search_config=_search_config(config.youtube),
        startup_playlist=extract_playlist_id(playlist) if playlist else "",
    )
    try:
        app.run()
    finally:
        # The UI is gone; make sure no decoder outlives the process
        app.controller.stop()
    return 0


COMMANDS = {
    "tui": cmd_tui,
    "search": cmd_search,
    "playlist": cmd_playlist,
    "play": cmd_play,
}


def main(argv: list[str] | None = None) -> int:
    """Entry point for the gplay command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "tui"

    # The TUI owns the terminal, so its log goes to a file
    if command == "tui":
        _setup_logging(args.log_level, getattr(args, "log_file", None) or str(DEFAULT_LOG_FILE))
    else:
        _setup_logging(args.log_level)

    from gplay.config import load_config

    config = load_config(args.config)
    return COMMANDS[command](config, args)


if __name__ == "__main__":
    sys.exit(main())
