"""
The song library: an ordered collection of songs keyed by URI hash.

The library owns the order of its songs, imports new songs from files or
URIs, refreshes metadata and persists itself lazily: mutations only queue a
write, and ``write()`` flushes when one is queued.
"""

from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional
from urllib.parse import unquote

from loguru import logger

from jukebox.core.hashing import raw_hash

from .inspector import CheckMode, FileType, get_file_type, is_accepted, list_directory
from .metadata import DEFAULT_TIMEOUT, SongMetadata, extract_with_timeout
from .models import Song, SongStatus, uri_to_path
from .storage import dump_library_file, load_library_file

OnAdded = Callable[[Song, int, int], None]
MetadataExtractor = Callable[[str, float], Optional[SongMetadata]]


class Column(Enum):
    """Song fields summarised for displays."""

    TRACK_NUMBER = "track-number"
    TITLE = "title"
    ARTIST = "artist"
    ALBUM = "album"
    DURATION = "duration"


def _has_value(song: Song, column: Column) -> bool:
    if column == Column.TRACK_NUMBER:
        return song.track_number > 0
    if column == Column.TITLE:
        return bool(song.title)
    if column == Column.ARTIST:
        return bool(song.artist)
    if column == Column.ALBUM:
        return bool(song.album)
    # Durations of a second or less are treated as unknown
    return song.duration > 1


class Library:
    """Ordered, persistent collection of songs."""

    def __init__(
        self,
        path: Optional[Path] = None,
        metadata_timeout: float = DEFAULT_TIMEOUT,
        extractor: MetadataExtractor = extract_with_timeout,
    ):
        """
        Initialize an empty library.

        Args:
            path: Library file used by read() and write()
            metadata_timeout: Seconds to wait for the tags of one song
            extractor: Callable (path, timeout) returning SongMetadata or None
        """
        self.path = path
        self.metadata_timeout = metadata_timeout
        self._extractor = extractor
        self._songs: List[Song] = []
        self._by_hash: Dict[int, Song] = {}
        self._write_queued = False
        self._refuse_write = False

    def __len__(self) -> int:
        return len(self._songs)

    def __iter__(self) -> Iterator[Song]:
        return iter(list(self._songs))

    def __contains__(self, song: object) -> bool:
        return isinstance(song, Song) and self._by_hash.get(song.hash) is song

    def songs(self) -> List[Song]:
        """Shallow snapshot of the songs in library order."""
        return list(self._songs)

    def get(self, song_hash: int) -> Optional[Song]:
        """Look up a song by its URI hash."""
        return self._by_hash.get(song_hash)

    def get_by_uri(self, uri: str) -> Optional[Song]:
        unescaped = unquote(uri)
        song = self._by_hash.get(raw_hash(unescaped))
        if song is not None and song.uri == unescaped:
            return song
        return None

    def index(self, song: Song) -> int:
        """Position of ``song`` in the library, -1 if it is not a member."""
        if song not in self:
            return -1
        return self._songs.index(song)

    # Membership

    def add_song(self, song: Song) -> bool:
        """
        Append a song to the library.

        Returns:
            False if a song with the same URI hash is already a member
        """
        if song.hash in self._by_hash:
            logger.debug(f"{song.name} is already in the library")
            return False

        self._songs.append(song)
        self._by_hash[song.hash] = song
        song.in_library = True
        self.queue_write()
        return True

    def remove_song(self, song: Song) -> bool:
        """Remove a song; other holders of the record keep it alive."""
        if song not in self:
            return False

        self._songs.remove(song)
        del self._by_hash[song.hash]
        song.in_library = False
        self.queue_write()
        logger.info(f"Removed {song.name} from the library")
        return True

    def clear(self) -> None:
        for song in self._songs:
            song.in_library = False
        self._songs.clear()
        self._by_hash.clear()

    # Ordering

    def _move(self, song: Song, target: Song, after: bool) -> bool:
        if song is target or song not in self or target not in self:
            return False

        self._songs.remove(song)
        position = self._songs.index(target) + (1 if after else 0)
        self._songs.insert(position, song)
        self.queue_write()
        return True

    def move_before(self, song: Song, target: Song) -> bool:
        """Move ``song`` directly in front of ``target``."""
        return self._move(song, target, after=False)

    def move_after(self, song: Song, target: Song) -> bool:
        """Move ``song`` directly behind ``target``."""
        return self._move(song, target, after=True)

    # Import

    def _accept(
        self,
        song: Song,
        on_added: Optional[OnAdded],
        skip_metadata: bool,
        index: int,
        total: int,
    ) -> int:
        if song.hash in self._by_hash:
            logger.info(f"{song.name} is already in the library")
            return 0

        song.status = SongStatus.AVAILABLE
        if not skip_metadata:
            self._refresh_song(song, force=True)

        self.add_song(song)
        logger.info(f"Added {song.name} to the library")

        if on_added is not None:
            on_added(song, index, total)
        return 1

    def add_by_file(
        self,
        path: str | Path,
        on_added: Optional[OnAdded] = None,
        check: CheckMode = CheckMode.NONE,
        skip_metadata: bool = False,
        skip_dotfiles: bool = False,
        index: int = 0,
        total: int = 0,
    ) -> int:
        """
        Import a file, or a directory when a check mode is given.

        Args:
            path: File or directory to import
            on_added: Called as (song, index, total) for every accepted song
            check: Gate files by type; directories are only walked when set
            skip_metadata: Do not read tags while importing
            skip_dotfiles: Ignore files whose name starts with a dot
            index: Position of this item in the caller's batch
            total: Size of the caller's batch (0 when unknown)

        Returns:
            Number of songs added
        """
        path = Path(path)
        if skip_dotfiles and path.name.startswith("."):
            logger.debug(f"Skipping hidden file {path}")
            return 0

        if check != CheckMode.NONE:
            file_type = get_file_type(path)

            if file_type == FileType.DIRECTORY:
                added = 0
                for child in list_directory(path):
                    added += self.add_by_file(
                        child, on_added, check, skip_metadata, skip_dotfiles
                    )
                return added

            if not is_accepted(file_type, check):
                logger.info(f"Not adding {path}: {file_type.value} file")
                return 0

        return self._accept(Song.from_path(path), on_added, skip_metadata, index, total)

    def add_by_uri(
        self,
        uri: str,
        on_added: Optional[OnAdded] = None,
        check: CheckMode = CheckMode.NONE,
        skip_metadata: bool = False,
        skip_dotfiles: bool = False,
        index: int = 0,
        total: int = 0,
    ) -> int:
        """Import a URI; local ``file://`` URIs go through ``add_by_file``."""
        path = uri_to_path(unquote(uri))
        if path is not None:
            return self.add_by_file(
                path, on_added, check, skip_metadata, skip_dotfiles, index, total
            )
        return self._accept(Song.from_uri(uri), on_added, True, index, total)

    def add_files(
        self,
        paths: Iterable[str | Path],
        on_added: Optional[OnAdded] = None,
        check: CheckMode = CheckMode.AUDIO,
        skip_metadata: bool = False,
        skip_dotfiles: bool = True,
    ) -> int:
        """Import a batch of files and directories; returns the number added."""
        paths = list(paths)
        total = len(paths)
        added = 0
        for index, path in enumerate(paths):
            added += self.add_by_file(
                path, on_added, check, skip_metadata, skip_dotfiles, index, total
            )
        logger.info(f"Imported {added} songs from {total} items")
        return added

    def add_uris(
        self,
        uris: Iterable[str],
        on_added: Optional[OnAdded] = None,
        check: CheckMode = CheckMode.AUDIO,
        skip_metadata: bool = False,
        skip_dotfiles: bool = True,
    ) -> int:
        """Import a batch of URIs; returns the number added."""
        uris = list(uris)
        total = len(uris)
        added = 0
        for index, uri in enumerate(uris):
            added += self.add_by_uri(
                uri, on_added, check, skip_metadata, skip_dotfiles, index, total
            )
        logger.info(f"Imported {added} songs from {total} URIs")
        return added

    # Column summaries

    def has_any(self, column: Column) -> bool:
        """Whether at least one song has a value for ``column``."""
        return any(_has_value(song, column) for song in self._songs)

    def has_all(self, column: Column) -> bool:
        """Whether every song has a value for ``column`` (False when empty)."""
        return bool(self._songs) and all(_has_value(song, column) for song in self._songs)

    # Metadata

    def _refresh_song(self, song: Song, force: bool) -> bool:
        song.update_fs_info()
        if not song.needs_metadata_update(force):
            return False

        path = song.path
        if path is None:
            return False

        metadata = self._extractor(path, self.metadata_timeout)
        if metadata is None:
            logger.debug(f"Metadata of {song.name} not updated")
            return False

        song.apply_metadata(metadata)
        return True

    def update_metadata(self, force: bool = True) -> int:
        """
        Refresh filesystem info and, where needed, tags of every song.

        Args:
            force: Read tags even if the file did not change since last time

        Returns:
            Number of songs whose metadata was refreshed
        """
        count = 0
        for song in list(self._songs):
            if self._refresh_song(song, force):
                count += 1

        if count > 0:
            self.queue_write()
        logger.info(f"Refreshed metadata of {count} songs")
        return count

    # Persistence

    def queue_write(self) -> None:
        self._write_queued = True

    @property
    def write_queued(self) -> bool:
        return self._write_queued

    def read(self, path: Optional[Path] = None) -> bool:
        """
        Replace the library contents with the library file.

        After parsing, metadata of changed files is refreshed and the file is
        rewritten if anything needs upgrading.

        Returns:
            True if the file was read (or did not exist yet)
        """
        if path is not None:
            self.path = path
        if self.path is None:
            logger.warning("No library file to read")
            return False

        self.clear()

        if not self.path.exists():
            logger.info(f"No library file at {self.path}, starting empty")
            return True

        loaded = load_library_file(self.path)
        if loaded is None:
            # Never overwrite a file that could not be understood
            self._refuse_write = True
            return False

        for song in loaded.songs:
            if not self.add_song(song):
                logger.debug(f"Skipping duplicate entry for {song.uri}")

        self._refuse_write = False
        self._write_queued = loaded.needs_rewrite

        self.update_metadata(force=False)
        self.write(force=False)
        return True

    def write(self, force: bool = False) -> bool:
        """
        Write the library file if a write is queued (or ``force``).

        Returns:
            True on success or when there was nothing to write
        """
        if not force and not self._write_queued:
            return True
        if self._refuse_write:
            logger.warning(f"Not overwriting unreadable library file {self.path}")
            return False
        if self.path is None:
            logger.warning("No library file to write")
            return False

        if not dump_library_file(self.path, self._songs):
            return False

        self._write_queued = False
        return True
