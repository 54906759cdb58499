"""Remote control surface.

Maps the remote method and property names onto core calls. Requests arrive
over the IPC socket as ``(command, args)`` and are dispatched on the main
thread; every handler returns ``(success, message)``.

Methods:
    quit, raise, refreshmetadata, addsong <uri>, setplaying <id>,
    setqueue <id> <bool>, stopaftersong [id], seek <percentage>, play,
    pause, playpause, backward, forward, stop, next, previous

Properties (``get <name>`` / ``set <name> <value>``):
    songprevious, songplaying, songnext, incognito, volume, position,
    playbackstatus, metadata
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from jukebox.context import CoreContext
from jukebox.domain.library import CheckMode, Song, path_to_escaped_uri

Reply = Tuple[bool, str]
Method = Callable[[CoreContext, List[str]], Reply]
Getter = Callable[[CoreContext], Any]
Setter = Callable[[CoreContext, str], Reply]

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def song_id(song: Optional[Song]) -> int:
    """Remote id of a song: its 32-bit URI hash, 0 for none."""
    return song.hash if song is not None else 0


def parse_bool(value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    return None


def _parse_float(value: str) -> Optional[float]:
    try:
        return float(value)
    except ValueError:
        return None


def _find_song(ctx: CoreContext, args: List[str], index: int = 0) -> Optional[Song]:
    if len(args) <= index:
        return None
    try:
        return ctx.library.get(int(args[index], 0))
    except ValueError:
        return None


def _done(message: str) -> Reply:
    return True, message


# Application methods


def _quit(ctx: CoreContext, args: List[str]) -> Reply:
    ctx.quit_requested = True
    return _done("Quitting")


def _raise(ctx: CoreContext, args: List[str]) -> Reply:
    # The service has no window of its own
    return _done("Nothing to raise")


def _refresh_metadata(ctx: CoreContext, args: List[str]) -> Reply:
    count = ctx.library.update_metadata(force=True)
    ctx.library.write(force=False)
    return _done(str(count))


def _add_song(ctx: CoreContext, args: List[str]) -> Reply:
    if not args:
        return False, "addsong requires a URI"

    uri = args[0] if "://" in args[0] else path_to_escaped_uri(args[0])
    ctx.library.add_by_uri(uri, check=CheckMode.AUDIO, skip_dotfiles=True)
    ctx.library.write(force=False)

    song = ctx.library.get_by_uri(uri)
    return _done(str(song_id(song)))


# Player methods


def _song_method(action: Callable[[CoreContext, Song], None]) -> Method:
    def method(ctx: CoreContext, args: List[str]) -> Reply:
        song = _find_song(ctx, args)
        if song is None:
            return False, "Unknown song id"
        action(ctx, song)
        return _done(str(song.hash))

    return method


def _set_queue(ctx: CoreContext, args: List[str]) -> Reply:
    song = _find_song(ctx, args)
    if song is None:
        return False, "Unknown song id"

    queued = parse_bool(args[1]) if len(args) > 1 else None
    if queued is None:
        return False, "setqueue requires a boolean"

    ctx.player.set_queued(song, queued)
    return _done(str(song.hash))


def _stop_after_song(ctx: CoreContext, args: List[str]) -> Reply:
    song = _find_song(ctx, args)
    if args and song is None:
        return False, "Unknown song id"
    ctx.player.stop_after_song(song)
    return _done("Toggled stop flag")


def _seek(ctx: CoreContext, args: List[str]) -> Reply:
    percentage = _parse_float(args[0]) if args else None
    if percentage is None:
        return False, "seek requires a percentage"
    if not ctx.player.seek(percentage):
        return False, "Could not seek"
    return _done(f"Seeked to {percentage:g}%")


def _player_action(action: Callable[[CoreContext], None], message: str) -> Method:
    def method(ctx: CoreContext, args: List[str]) -> Reply:
        action(ctx)
        return _done(message)

    return method


METHODS: Dict[str, Method] = {
    "quit": _quit,
    "raise": _raise,
    "refreshmetadata": _refresh_metadata,
    "addsong": _add_song,
    "setplaying": _song_method(lambda ctx, song: ctx.player.play_song(song)),
    "setqueue": _set_queue,
    "stopaftersong": _stop_after_song,
    "seek": _seek,
    "play": _player_action(lambda ctx: ctx.player.play(), "Play"),
    "pause": _player_action(lambda ctx: ctx.player.pause(), "Pause"),
    "playpause": _player_action(lambda ctx: ctx.player.play_pause(), "Play/pause"),
    "backward": _player_action(lambda ctx: ctx.player.backward(), "Backward"),
    "forward": _player_action(lambda ctx: ctx.player.forward(), "Forward"),
    "stop": _player_action(lambda ctx: ctx.player.stop(), "Stop"),
    # Media player names
    "next": _player_action(lambda ctx: ctx.player.forward(), "Next"),
    "previous": _player_action(lambda ctx: ctx.player.backward(), "Previous"),
}


# Properties


def _metadata(ctx: CoreContext) -> Dict[str, Any]:
    song = ctx.manager.current
    if song is None:
        return {}
    return {
        "trackid": song.hash,
        "url": song.uri,
        "title": song.title or song.display_title,
        "artist": [song.artist] if song.artist else [],
        "album": song.album or "",
        "length": song.duration,
        "rating": song.rating,
        "score": song.score,
        "play_count": song.play_count,
        "last_played": song.last_played,
    }


def _set_incognito(ctx: CoreContext, value: str) -> Reply:
    enabled = parse_bool(value)
    if enabled is None:
        return False, f"Invalid boolean: {value}"
    ctx.manager.incognito = enabled
    return _done(str(enabled).lower())


def _set_volume(ctx: CoreContext, value: str) -> Reply:
    volume = _parse_float(value)
    if volume is None or not 0.0 <= volume <= 100.0:
        return False, f"Invalid volume: {value}"
    ctx.player.volume = volume
    return _done(f"{volume:g}")


def _set_position(ctx: CoreContext, value: str) -> Reply:
    seconds = _parse_float(value)
    if seconds is None or seconds < 0:
        return False, f"Invalid position: {value}"
    if not ctx.player.seek_seconds(seconds):
        return False, "Could not seek"
    return _done(f"{seconds:g}")


PROPERTIES: Dict[str, Tuple[Getter, Optional[Setter]]] = {
    "songprevious": (lambda ctx: song_id(ctx.manager.reported[0]), None),
    "songplaying": (lambda ctx: song_id(ctx.manager.reported[1]), None),
    "songnext": (lambda ctx: song_id(ctx.manager.reported[2]), None),
    "incognito": (lambda ctx: ctx.manager.incognito, _set_incognito),
    "volume": (lambda ctx: ctx.player.volume, _set_volume),
    "position": (lambda ctx: ctx.player.position, _set_position),
    "playbackstatus": (lambda ctx: ctx.player.state.value, None),
    "metadata": (_metadata, None),
}


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        return f"{value:g}"
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def get_property(ctx: CoreContext, name: str) -> Reply:
    entry = PROPERTIES.get(name.lower())
    if entry is None:
        return False, f"Property <{name}> not supported"
    getter, _ = entry
    return True, _format(getter(ctx))


def set_property(ctx: CoreContext, name: str, value: str) -> Reply:
    entry = PROPERTIES.get(name.lower())
    if entry is None:
        return False, f"Property <{name}> not supported"
    _, setter = entry
    if setter is None:
        return False, f"Property <{name}> is read-only"
    return setter(ctx, value)


def dispatch(ctx: CoreContext, command: str, args: List[str]) -> Reply:
    """
    Run a remote request.

    Args:
        ctx: Core context
        command: Method name, or "get"/"set" for properties (case-insensitive)
        args: String arguments

    Returns:
        (success, message) tuple
    """
    name = command.lower()
    args = [str(arg) for arg in args]
    logger.debug(f"Remote request: {name} {args}")

    try:
        if name == "get":
            if not args:
                return False, "get requires a property name"
            return get_property(ctx, args[0])

        if name == "set":
            if len(args) < 2:
                return False, "set requires a property name and a value"
            return set_property(ctx, args[0], args[1])

        method = METHODS.get(name)
        if method is None:
            return False, f"Method <{command}> not supported"
        return method(ctx, args)

    except Exception as e:
        logger.exception(f"Remote request {name} failed")
        return False, f"Error: {e}"
