"""
Data models for library songs.
"""

import os
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional
from urllib.parse import unquote

from loguru import logger

from jukebox.core.hashing import folded_hash, raw_hash

if TYPE_CHECKING:
    from .metadata import SongMetadata

SCORE_DEFAULT = 50.0

FILE_SCHEME = "file://"
LOCALHOST = "localhost"


class SongStatus(Enum):
    """Lifecycle status of a song."""

    UNKNOWN = "unknown"
    AVAILABLE = "available"
    PLAYING = "playing"
    NOT_FOUND = "not-found"


def path_to_uri(path: str | Path) -> str:
    """Convert a filesystem path to an unescaped ``file://`` URI."""
    absolute = Path(path).expanduser().absolute()
    return FILE_SCHEME + str(absolute)


def path_to_escaped_uri(path: str | Path) -> str:
    """Convert a filesystem path to a percent-escaped ``file://`` URI."""
    return Path(path).expanduser().absolute().as_uri()


def uri_to_path(uri: str) -> Optional[str]:
    """Get the local path of an unescaped ``file://`` URI, or None for other schemes."""
    if not uri.startswith(FILE_SCHEME):
        return None
    path = uri[len(FILE_SCHEME):]
    if path.startswith(LOCALHOST + "/"):
        path = path[len(LOCALHOST):]
    return path


@dataclass(eq=False)
class Song:
    """A single track in (or out of) the library.

    Songs compare by identity; two records with the same URI are never both
    members of one library.
    """

    uri: str
    hash: int
    name: str
    display_name: Optional[str] = None

    # Filesystem modification time: 0 when unknown, -1 when not found
    modified: int = 0

    # Metadata
    last_metadata_update: int = 0
    track_number: int = 0
    title: Optional[str] = None
    artist: Optional[str] = None
    album_artist: Optional[str] = None
    album: Optional[str] = None
    duration: int = 0

    # Statistics
    rating: int = 0
    score: float = SCORE_DEFAULT
    play_count: int = 0
    skip_count: int = 0
    last_played: int = 0

    # Flags
    in_library: bool = False
    queued: bool = False
    stop_flag: bool = False
    status: SongStatus = SongStatus.UNKNOWN

    @classmethod
    def from_uri(cls, uri: str) -> "Song":
        """Create a song for an escaped ``uri``; percent-escapes are decoded first."""
        return cls.from_unescaped_uri(unquote(uri))

    @classmethod
    def from_unescaped_uri(cls, uri: str) -> "Song":
        """Create a song for a URI that is stored as is."""
        name = os.path.basename(uri.rstrip("/")) or uri
        return cls(uri=uri, hash=raw_hash(uri), name=name)

    @classmethod
    def from_path(cls, path: str | Path) -> "Song":
        """Create a song for a local file."""
        return cls.from_unescaped_uri(path_to_uri(path))

    @property
    def tag(self) -> str:
        """Printable identifier, also the group name in the library file."""
        return f"song-{self.hash:x}"

    @property
    def path(self) -> Optional[str]:
        """Local filesystem path, or None if the URI is not a local file."""
        return uri_to_path(self.uri)

    @property
    def artist_hash(self) -> int:
        """Artist identity: album artist when present, else the track artist."""
        value = folded_hash(self.album_artist)
        if value == 0:
            value = folded_hash(self.artist)
        return value

    @property
    def display_title(self) -> str:
        """'Artist - Title' when tagged, else the file name."""
        if self.title and self.artist:
            return f"{self.artist} - {self.title}"
        if self.title:
            return self.title
        return self.display_name or self.name

    def update_fs_info(self) -> bool:
        """Refresh modification time and display name from the filesystem.

        A missing file marks the song NOT_FOUND; a file that shows up again
        makes the song AVAILABLE.

        Returns:
            True if the filesystem could be queried
        """
        path = self.path
        if path is None:
            return False

        try:
            stat_result = os.stat(path)
        except FileNotFoundError:
            if self.status != SongStatus.NOT_FOUND:
                logger.warning(f"File of {self.name} not found: {path}")
            self.status = SongStatus.NOT_FOUND
            self.modified = -1
            return False
        except OSError as e:
            logger.warning(f"Could not query file info of {self.name}: {e}")
            return False

        self.modified = int(stat_result.st_mtime)
        self.display_name = os.path.basename(path)

        if self.status in (SongStatus.NOT_FOUND, SongStatus.UNKNOWN):
            self.status = SongStatus.AVAILABLE

        return True

    def needs_metadata_update(self, force: bool = False) -> bool:
        """Check whether the tags should be read (again)."""
        if self.modified == -1:
            return False
        if force or self.modified == 0:
            return True
        return self.last_metadata_update <= self.modified

    def apply_metadata(self, metadata: "SongMetadata", now: Optional[int] = None) -> None:
        """Overwrite metadata fields with freshly extracted values."""
        self.title = metadata.title
        self.artist = metadata.artist
        self.album_artist = metadata.album_artist
        self.album = metadata.album
        self.track_number = max(metadata.track_number, 0)
        self.duration = max(metadata.duration, 0)
        self.last_metadata_update = int(time.time()) if now is None else now
