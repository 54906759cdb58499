"""
Service loop for jukebox.

The main thread owns the core: it drains IPC commands, polls the playback
backend and sleeps for the configured update interval. Quitting flushes the
library and settings before returning.
"""

import queue
import time
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger
from rich.markup import escape

from jukebox.context import CoreContext
from jukebox.core.config import ensure_directories
from jukebox.core.console import print_event, safe_print
from jukebox.core.logging import setup_logging
from jukebox.domain.library import CheckMode, Song
from jukebox.domain.playback import MpvBackend, PlaybackBackend
from jukebox.ipc.server import IPCServer, process_ipc_commands

# Lower bound for the loop's sleep so an interval of 0 does not spin
MIN_SLEEP_MS = 10


def import_files(ctx: CoreContext, files: Sequence[str], quiet: bool = False) -> int:
    """Add files and directories given on the command line to the library."""
    if not files:
        return 0

    def on_added(song: Song, index: int, total: int) -> None:
        if not quiet:
            position = f"[{index + 1}/{total}] " if total else ""
            safe_print(f"{position}Added {escape(song.display_title)}", style="green")

    added = ctx.library.add_files(files, on_added, check=CheckMode.AUDIO)
    ctx.library.write(force=False)
    return added


def run_loop(
    ctx: CoreContext,
    command_queue: queue.Queue,
    response_queue: queue.Queue,
) -> None:
    """Process commands and backend messages until a quit is requested."""
    while not ctx.quit_requested:
        process_ipc_commands(ctx, command_queue, response_queue)
        ctx.player.poll()

        if ctx.settings.write_queued:
            ctx.settings.write()

        interval = max(ctx.settings.update_interval, MIN_SLEEP_MS)
        time.sleep(interval / 1000.0)


def run_service(
    settings_path: Optional[str] = None,
    library_path: Optional[str] = None,
    files: Sequence[str] = (),
    background: bool = False,
    log_level: Optional[str] = None,
    verbose: bool = False,
    backend: Optional[PlaybackBackend] = None,
) -> int:
    """
    Run the jukebox service in the foreground until quit.

    Args:
        settings_path: Settings file override
        library_path: Library file override
        files: Files and directories to import at startup
        background: Do not print events to the console
        log_level: Log level override
        verbose: Also log to stderr
        backend: Audio backend (default: a new mpv process)

    Returns:
        Exit code
    """
    ensure_directories()

    mpv: Optional[MpvBackend] = None
    if backend is None:
        mpv = MpvBackend()
        backend = mpv

    ctx = CoreContext.create(
        Path(settings_path) if settings_path else None,
        Path(library_path) if library_path else None,
        backend,
    )

    ctx.settings.read()
    setup_logging(
        level=log_level or ctx.settings.log_level,
        console_output=verbose or ctx.settings.console_output,
    )

    if not ctx.library.read():
        logger.warning("Continuing with an empty library")

    if not background:
        ctx.events.subscribe(print_event)

    added = import_files(ctx, files, quiet=background)
    if files:
        ctx.events.message(f"Imported {added} songs")

    if mpv is not None:
        mpv.initial_volume = ctx.settings.volume
        if not mpv.start():
            safe_print("Could not start mpv; is it installed?", style="red")
            ctx.flush()
            return 1

    command_queue: queue.Queue = queue.Queue()
    response_queue: queue.Queue = queue.Queue()
    server = IPCServer(command_queue, response_queue)
    server.start()

    ctx.events.message(f"jukebox ready with {len(ctx.library)} songs")

    try:
        run_loop(ctx, command_queue, response_queue)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        server.stop()
        ctx.player.shutdown()
        ctx.flush()
        logger.info("jukebox stopped")

    return 0
