"""
Song metadata extraction and display utilities.

Reads tags from audio files using Mutagen. Extraction of a single file is
bounded by a timeout; a file that takes too long keeps its old metadata.
"""

import concurrent.futures
from typing import Any, NamedTuple, Optional

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError

DEFAULT_TIMEOUT = 3.0

_executor: Optional[concurrent.futures.ThreadPoolExecutor] = None


class SongMetadata(NamedTuple):
    """Tags read from an audio file."""

    title: Optional[str] = None
    artist: Optional[str] = None
    album_artist: Optional[str] = None
    album: Optional[str] = None
    track_number: int = 0
    duration: int = 0


def get_tag_value(audio_file: Any, tag_names: list[str]) -> Optional[str]:
    """Get tag value, trying multiple possible tag names."""
    for tag_name in tag_names:
        try:
            value = audio_file.get(tag_name)
            if value:
                # Handle different formats
                if isinstance(value, list) and value:
                    return str(value[0])
                return str(value)
        except (KeyError, ValueError):
            # Some formats (like Vorbis) raise ValueError for non-existent keys
            continue
    return None


def parse_track_number(value: Any) -> int:
    """
    Parse a track number tag ("3", "3/12", (3, 12) for MP4).

    Examples:
        >>> parse_track_number("3/12")
        3
        >>> parse_track_number("(5, 10)")
        5
        >>> parse_track_number(None)
        0
    """
    if value is None:
        return 0
    text = str(value).strip("()[] ")
    for separator in ("/", ","):
        text = text.split(separator)[0]
    try:
        return max(int(text.strip()), 0)
    except ValueError:
        return 0


def extract_song_metadata(local_path: str) -> Optional[SongMetadata]:
    """Extract metadata from an audio file using mutagen.

    Returns:
        The metadata, or None if the file could not be read
    """
    try:
        audio_file = MutagenFile(local_path)
    except (MutagenError, OSError) as e:
        logger.warning(f"Could not read tags of {local_path}: {e}")
        return None

    if audio_file is None:
        logger.debug(f"Unsupported file for tag reading: {local_path}")
        return None

    # ID3 (MP3), MP4, and Vorbis/Opus tags (lowercase)
    title = get_tag_value(audio_file, ["TIT2", "\xa9nam", "TITLE", "title"])
    artist = get_tag_value(audio_file, ["TPE1", "\xa9ART", "ARTIST", "artist"])
    album_artist = get_tag_value(
        audio_file, ["TPE2", "aART", "ALBUMARTIST", "albumartist", "album artist"]
    )
    album = get_tag_value(audio_file, ["TALB", "\xa9alb", "ALBUM", "album"])
    track_number = parse_track_number(
        get_tag_value(audio_file, ["TRCK", "trkn", "TRACKNUMBER", "tracknumber"])
    )

    duration = 0
    if hasattr(audio_file, "info"):
        length = getattr(audio_file.info, "length", None)
        if length:
            duration = int(length)

    return SongMetadata(
        title=title,
        artist=artist,
        album_artist=album_artist,
        album=album,
        track_number=track_number,
        duration=duration,
    )


def _get_executor() -> concurrent.futures.ThreadPoolExecutor:
    global _executor
    if _executor is None:
        _executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="metadata"
        )
    return _executor


def extract_with_timeout(
    local_path: str, timeout: float = DEFAULT_TIMEOUT
) -> Optional[SongMetadata]:
    """
    Extract metadata, giving up after ``timeout`` seconds.

    Args:
        local_path: File to read
        timeout: Maximum time to wait in seconds

    Returns:
        The metadata, or None on failure or timeout
    """
    future = _get_executor().submit(extract_song_metadata, local_path)
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        logger.warning(f"Metadata extraction timed out after {timeout}s: {local_path}")
        future.cancel()
        return None


def format_duration(seconds: Optional[float]) -> str:
    """Format duration in seconds to m:ss (or h:mm:ss)."""
    if not seconds or seconds < 0:
        return "0:00"

    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
