"""
Library key file encoding.

The library is stored as a TOML document with one table per song, named
after the song's tag:

    [Properties]
    FileVersion = 20221201

    [song-2f8a1c3b]
    URI = "file:///home/user/Music/track.flac"
    Title = "Track"
    Rating = 80
    ...

Files written by a newer version are refused. Older or unversioned files are
accepted and upgraded by the next write. Unknown keys are ignored and values
of the wrong type or out of range fall back to the defaults.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

import tomli_w
from loguru import logger

from jukebox.domain.statistics import (
    COUNT_MIN,
    rating_is_valid,
    score_is_valid,
)

from .models import Song, SongStatus, path_to_uri

FILE_VERSION = 20221201

PROPERTIES_GROUP = "Properties"
VERSION_KEY = "FileVersion"

KEY_URI = "URI"
KEY_LOCATION = "Location"

# (file key, attribute) for optional string fields
STRING_KEYS = (
    ("Title", "title"),
    ("Artist", "artist"),
    ("AlbumArtist", "album_artist"),
    ("Album", "album"),
)


def _non_negative(value: int) -> bool:
    return value >= COUNT_MIN


# (file key, attribute, validator) for integer fields
INT_KEYS: tuple[tuple[str, str, Callable[[int], bool]], ...] = (
    ("LastMetadataUpdate", "last_metadata_update", _non_negative),
    ("TrackNumber", "track_number", _non_negative),
    ("Duration", "duration", _non_negative),
    ("Rating", "rating", rating_is_valid),
    ("PlayCount", "play_count", _non_negative),
    ("SkipCount", "skip_count", _non_negative),
    ("LastPlayed", "last_played", _non_negative),
)


@dataclass
class LoadedLibrary:
    """Result of parsing a library file."""

    songs: List[Song] = field(default_factory=list)
    version: Optional[int] = None
    needs_rewrite: bool = False


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def song_from_table(tag: str, table: Dict[str, Any]) -> tuple[Optional[Song], bool]:
    """
    Build a song from its table in the library file.

    Args:
        tag: Group name (only used for log messages)
        table: Keys of the song's group

    Returns:
        (song, converted) - song is None if the group has no usable location;
        converted is True when the URI had to be derived from ``Location``
    """
    converted = False
    uri = table.get(KEY_URI)

    if not isinstance(uri, str) or not uri:
        location = table.get(KEY_LOCATION)
        if not isinstance(location, str) or not location:
            logger.warning(f"Skipping {tag}: no URI or location")
            return None, False
        uri = path_to_uri(location)
        converted = True

    song = Song.from_unescaped_uri(uri)

    for key, attribute in STRING_KEYS:
        value = table.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            setattr(song, attribute, value)
        else:
            logger.debug(f"Ignoring {key} of {tag}: not a string")

    for key, attribute, is_valid in INT_KEYS:
        value = table.get(key)
        if value is None:
            continue
        if _is_int(value) and is_valid(value):
            setattr(song, attribute, value)
        else:
            logger.debug(f"Ignoring {key} = {value!r} of {tag}: out of range")

    score = table.get("Score")
    if score is not None:
        if isinstance(score, (int, float)) and not isinstance(score, bool) and score_is_valid(score):
            song.score = float(score)
        else:
            logger.debug(f"Ignoring Score = {score!r} of {tag}: out of range")

    song.status = SongStatus.AVAILABLE
    return song, converted


def song_to_table(song: Song) -> Dict[str, Any]:
    """Serialize a song to the keys of its group."""
    table: Dict[str, Any] = {KEY_URI: song.uri}

    for key, attribute in STRING_KEYS:
        value = getattr(song, attribute)
        if value is not None:
            table[key] = value

    for key, attribute, _ in INT_KEYS:
        table[key] = getattr(song, attribute)

    table["Score"] = float(song.score)
    return table


def load_library_file(path: Path) -> Optional[LoadedLibrary]:
    """
    Parse a library file.

    Returns:
        The parsed songs, or None if the file could not be read or was
        written by a newer version
    """
    try:
        with open(path, "rb") as f:
            document = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.error(f"Failed to read library file {path}: {e}")
        return None

    loaded = LoadedLibrary()

    properties = document.get(PROPERTIES_GROUP)
    version = properties.get(VERSION_KEY) if isinstance(properties, dict) else None

    if _is_int(version):
        if version > FILE_VERSION:
            logger.error(
                f"Library file version {version} is newer than supported ({FILE_VERSION}), "
                f"refusing to read {path}"
            )
            return None
        loaded.version = version
        loaded.needs_rewrite = version < FILE_VERSION
    else:
        logger.debug("Library file has no version, upgrading on next write")
        loaded.needs_rewrite = True

    for tag, table in document.items():
        if tag == PROPERTIES_GROUP:
            continue
        if not isinstance(table, dict):
            logger.debug(f"Ignoring top-level key {tag}")
            continue

        song, converted = song_from_table(tag, table)
        if song is None:
            continue
        if converted:
            loaded.needs_rewrite = True
        loaded.songs.append(song)

    logger.info(f"Parsed {len(loaded.songs)} songs from {path}")
    return loaded


def dump_library_file(path: Path, songs: Iterable[Song]) -> bool:
    """Write ``songs`` to the library file, replacing it atomically."""
    document: Dict[str, Any] = {PROPERTIES_GROUP: {VERSION_KEY: FILE_VERSION}}
    count = 0
    for song in songs:
        document[song.tag] = song_to_table(song)
        count += 1

    temp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(temp_path, "wb") as f:
            tomli_w.dump(document, f)
        os.replace(temp_path, path)
    except OSError as e:
        logger.error(f"Failed to write library file {path}: {e}")
        return False

    logger.info(f"Wrote {count} songs to {path}")
    return True
