"""Centralized Rich Console management.

Holds the Rich Console used by the CLI and the foreground service, plus the
event printer that shows core messages and song changes on it.
"""

from rich.console import Console
from rich.markup import escape

from jukebox.core.events import Event, EventKind

_console: Console | None = None


def get_console() -> Console:
    """Get or create the global Rich Console instance.

    Returns:
        Console: The global Rich Console instance
    """
    global _console
    if _console is None:
        _console = Console()
    return _console


def safe_print(message: str, style: str | None = None) -> None:
    """Print using Rich Console with optional styling.

    Args:
        message: The message to print
        style: Optional Rich style string (e.g., "bold red", "green")
    """
    console = get_console()
    if style:
        console.print(message, style=style)
    else:
        console.print(message)


def _song_label(song) -> str:
    return escape(song.display_title) if song is not None else "-"


def print_event(event: Event) -> None:
    """Show a core event on the console; progress updates are not printed."""
    if event.kind == EventKind.MESSAGE and event.message:
        safe_print(escape(event.message), style="cyan")
    elif event.kind == EventKind.STATE_CHANGED and event.state:
        safe_print(escape(f"[{event.state}]"), style="dim")
    elif event.kind == EventKind.SONGS_CHANGED and len(event.songs) == 3:
        previous, current, next_song = event.songs
        if current is not None:
            safe_print(
                f"♪ {_song_label(current)}  "
                f"[dim](previous: {_song_label(previous)}, next: {_song_label(next_song)})[/dim]"
            )
