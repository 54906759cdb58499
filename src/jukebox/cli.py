"""
jukebox CLI - Entry point with IPC support

Starts the service, or forwards one-shot playback actions and files to an
instance that is already running.
"""

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List, Optional

from jukebox import ipc
from jukebox.core.logging import LOG_LEVELS
from jukebox.domain.library import path_to_escaped_uri

# (option flags, remote method, help)
PLAYBACK_ACTIONS = (
    (("--play-pause", "-p"), "playpause", "Toggle between play and pause"),
    (("--play",), "play", "Start or resume playback"),
    (("--pause",), "pause", "Pause playback"),
    (("--stop",), "stop", "Stop playback"),
    (("--previous",), "backward", "Play the previous song"),
    (("--next", "-n"), "forward", "Play the next song"),
)


def get_version() -> str:
    try:
        return version("jukebox")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="jukebox",
        description="jukebox - Music player that picks the next song for you",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    playback = parser.add_argument_group("playback")
    actions = playback.add_mutually_exclusive_group()
    for flags, method, help_text in PLAYBACK_ACTIONS:
        actions.add_argument(
            *flags, dest="action", action="store_const", const=method, help=help_text
        )

    parser.add_argument("--config", metavar="PATH", help="Use PATH as settings file")
    parser.add_argument("--library", metavar="PATH", help="Use PATH as library file")
    parser.add_argument(
        "--background",
        "-b",
        action="store_true",
        help="Run without console output",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        help="Override the log level from the settings",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Also log to stderr"
    )
    parser.add_argument(
        "--version", "-V", action="version", version=f"%(prog)s {get_version()}"
    )
    parser.add_argument("--shortlist", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("files", nargs="*", metavar="FILE", help="Files to add to the library")

    return parser


def shortlist(parser: argparse.ArgumentParser) -> List[str]:
    """Every option string the parser accepts, for shell completion."""
    options = []
    for action in parser._actions:
        options.extend(action.option_strings)
    return options


def send_ipc_command(command: str, args: list) -> int:
    """
    Send a command to running jukebox instance via IPC.

    Args:
        command: Command name
        args: Command arguments

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    success, message = ipc.send_command(command, args)

    if success:
        print(message)
        return 0
    else:
        print(message, file=sys.stderr)
        return 1


def forward_to_instance(action: Optional[str], files: List[str]) -> int:
    """Hand files and an action to the running instance."""
    exit_code = 0

    for file in files:
        exit_code |= send_ipc_command("addsong", [path_to_escaped_uri(file)])

    if action:
        exit_code |= send_ipc_command(action, [])
    elif not files:
        print("jukebox is already running")

    return exit_code


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the jukebox command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.shortlist:
        print(" ".join(shortlist(parser)))
        sys.exit(0)

    if ipc.is_service_running():
        sys.exit(forward_to_instance(args.action, args.files))

    if args.action:
        print(ipc.NOT_RUNNING, file=sys.stderr)
        sys.exit(1)

    # Delegate to the service loop
    from .main import run_service

    sys.exit(
        run_service(
            settings_path=args.config,
            library_path=args.library,
            files=args.files,
            background=args.background,
            log_level=args.log_level,
            verbose=args.verbose,
        )
    )


if __name__ == "__main__":
    main()
