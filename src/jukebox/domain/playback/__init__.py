"""Playback domain - song manager, playback controller and MPV backend.

This domain handles:
- History, up-next, queue and recent artists
- Applying statistics when songs finish
- Driving the audio backend and reacting to its messages
- MPV integration via JSON IPC
"""

# Song manager
from .manager import (
    HISTORY_LIMIT,
    RECENT_ARTISTS_LIMIT,
    SongManager,
)

# Playback controller
from .player import (
    BackendError,
    BackendEvent,
    BackendMessage,
    PlaybackBackend,
    PlaybackState,
    Player,
)

# MPV backend
from .mpv import (
    MpvBackend,
    MpvState,
    check_mpv_available,
    get_mpv_property,
    is_mpv_running,
    send_mpv_command,
    start_mpv,
    stop_mpv,
)

__all__ = [
    # Manager
    "HISTORY_LIMIT",
    "RECENT_ARTISTS_LIMIT",
    "SongManager",
    # Player
    "BackendError",
    "BackendEvent",
    "BackendMessage",
    "PlaybackBackend",
    "PlaybackState",
    "Player",
    # MPV
    "MpvBackend",
    "MpvState",
    "check_mpv_available",
    "get_mpv_property",
    "is_mpv_running",
    "send_mpv_command",
    "start_mpv",
    "stop_mpv",
]
