"""Tests for the ordered, persistent library."""

import os
from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from jukebox.domain.library import (
    CheckMode,
    Column,
    Library,
    Song,
    SongMetadata,
    SongStatus,
    path_to_escaped_uri,
    path_to_uri,
)
from jukebox.domain.library.storage import FILE_VERSION, dump_library_file

OLD_MTIME = 1_000_000_000


def fake_extractor(path: str, timeout: float) -> Optional[SongMetadata]:
    """Tag every file with its stem as title."""
    return SongMetadata(title=Path(path).stem, artist="Artist", duration=180)


@pytest.fixture
def library(tmp_path: Path) -> Library:
    """Empty library backed by a file in tmp_path."""
    return Library(tmp_path / "library.toml", extractor=fake_extractor)


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    """Directory with two audio files, a text file and a hidden file."""
    root = tmp_path / "music"
    (root / "album").mkdir(parents=True)
    (root / "album" / "01.ogg").write_bytes(b"ogg")
    (root / "album" / "02.flac").write_bytes(b"flac")
    (root / "notes.txt").write_text("not music")
    (root / ".hidden.ogg").write_bytes(b"ogg")
    # Old modification times so tags read now count as up to date
    for path in root.rglob("*"):
        os.utime(path, (OLD_MTIME, OLD_MTIME))
    return root


def songs_named(*names: str) -> List[Song]:
    return [Song.from_uri(f"file:///music/{name}") for name in names]


class TestMembership:
    """Test adding, removing and looking up songs."""

    def test_add_song(self, library: Library):
        song = songs_named("a.ogg")[0]
        assert library.add_song(song) is True
        assert len(library) == 1
        assert song in library
        assert song.in_library is True
        assert library.write_queued

    def test_duplicate_uri_is_noop(self, library: Library):
        """Test a second record with the same URI is not added."""
        first, duplicate = Song.from_uri("file:///x.ogg"), Song.from_uri("file:///x.ogg")
        library.add_song(first)

        assert library.add_song(duplicate) is False
        assert len(library) == 1
        assert duplicate not in library
        assert library.get(first.hash) is first

    def test_remove_song(self, library: Library):
        song = songs_named("a.ogg")[0]
        library.add_song(song)

        assert library.remove_song(song) is True
        assert song not in library
        assert song.in_library is False
        assert library.remove_song(song) is False

    def test_get_by_uri_accepts_escapes(self, library: Library):
        song = Song.from_uri("file:///music/a b.ogg")
        library.add_song(song)
        assert library.get_by_uri("file:///music/a%20b.ogg") is song
        assert library.get_by_uri("file:///music/other.ogg") is None

    def test_iteration_is_a_snapshot(self, library: Library):
        """Test removing while iterating does not skip songs."""
        for song in songs_named("a.ogg", "b.ogg", "c.ogg"):
            library.add_song(song)

        seen = []
        for song in library:
            seen.append(song.name)
            library.remove_song(song)

        assert seen == ["a.ogg", "b.ogg", "c.ogg"]
        assert len(library) == 0


class TestOrdering:
    """Test moving songs within the library."""

    def test_move_before_and_after(self, library: Library):
        a, b, c = songs_named("a.ogg", "b.ogg", "c.ogg")
        for song in (a, b, c):
            library.add_song(song)

        assert library.move_before(c, a) is True
        assert library.songs() == [c, a, b]

        assert library.move_after(c, b) is True
        assert library.songs() == [a, b, c]
        assert library.index(b) == 1

    def test_move_requires_members(self, library: Library):
        a, b = songs_named("a.ogg", "b.ogg")
        library.add_song(a)
        assert library.move_before(b, a) is False
        assert library.move_after(a, a) is False
        assert library.index(b) == -1


class TestImport:
    """Test importing files, directories and URIs."""

    def test_add_files_walks_directories(self, library: Library, music_dir: Path):
        """Test only audio files are imported, hidden files are skipped."""
        added = library.add_files([music_dir])

        assert added == 2
        assert [song.name for song in library] == ["01.ogg", "02.flac"]
        assert all(song.status == SongStatus.AVAILABLE for song in library)

    def test_metadata_read_on_import(self, library: Library, music_dir: Path):
        library.add_files([music_dir / "album" / "01.ogg"])
        song = library.songs()[0]
        assert song.title == "01"
        assert song.duration == 180
        assert song.last_metadata_update > 0

    def test_skip_metadata(self, library: Library, music_dir: Path):
        library.add_files([music_dir / "album" / "01.ogg"], skip_metadata=True)
        assert library.songs()[0].title is None

    def test_on_added_receives_batch_position(self, library: Library, music_dir: Path):
        on_added = MagicMock()
        files = [music_dir / "album" / "01.ogg", music_dir / "album" / "02.flac"]
        library.add_files(files, on_added)

        assert on_added.call_count == 2
        _, index, total = on_added.call_args_list[1].args
        assert (index, total) == (1, 2)

    def test_irrelevant_file_rejected(self, library: Library, music_dir: Path):
        assert library.add_files([music_dir / "notes.txt"]) == 0

    def test_no_check_accepts_anything(self, library: Library, music_dir: Path):
        assert library.add_by_file(music_dir / "notes.txt", check=CheckMode.NONE) == 1

    def test_importing_twice_adds_once(self, library: Library, music_dir: Path):
        library.add_files([music_dir])
        assert library.add_files([music_dir]) == 0
        assert len(library) == 2

    def test_add_by_uri_local_file(self, library: Library, music_dir: Path):
        uri = path_to_escaped_uri(music_dir / "album" / "01.ogg")
        assert library.add_by_uri(uri) == 1
        assert library.get_by_uri(uri) is not None

    def test_percent_in_file_name(self, library: Library, music_dir: Path):
        """Test a literal escape sequence in a file name is kept."""
        path = music_dir / "a%20b.ogg"
        path.write_bytes(b"ogg")

        assert library.add_by_file(path, check=CheckMode.AUDIO) == 1

        song = library.songs()[0]
        assert song.uri == path_to_uri(path)
        assert song.status == SongStatus.AVAILABLE

    def test_add_by_uri_decodes_once(self, library: Library, music_dir: Path):
        path = music_dir / "What?.ogg"
        path.write_bytes(b"ogg")

        assert library.add_by_uri(path_to_escaped_uri(path), check=CheckMode.AUDIO) == 1
        assert library.songs()[0].path == str(path)

    def test_add_by_uri_remote(self, library: Library):
        """Test remote URIs are added without reading tags."""
        extractor = MagicMock()
        library._extractor = extractor

        assert library.add_by_uri("http://example.com/stream.mp3") == 1
        extractor.assert_not_called()


class TestColumns:
    """Test column summaries."""

    def test_has_any_and_has_all(self, library: Library):
        a, b = songs_named("a.ogg", "b.ogg")
        a.title = "A"
        a.duration = 1
        b.duration = 200
        library.add_song(a)
        library.add_song(b)

        assert library.has_any(Column.TITLE) is True
        assert library.has_all(Column.TITLE) is False
        assert library.has_any(Column.DURATION) is True
        assert library.has_all(Column.DURATION) is False
        assert library.has_any(Column.ALBUM) is False

    def test_empty_library_has_nothing(self, library: Library):
        assert library.has_any(Column.ARTIST) is False
        assert library.has_all(Column.ARTIST) is False


class TestMetadataRefresh:
    """Test refreshing filesystem info and tags."""

    def test_missing_file_becomes_not_found(self, library: Library, music_dir: Path):
        """Test a vanished file is marked but stays in the written library."""
        path = music_dir / "album" / "01.ogg"
        library.add_files([path])
        library.write()
        path.unlink()

        library.update_metadata()
        song = library.songs()[0]
        assert song.status == SongStatus.NOT_FOUND

        library.write(force=True)
        reloaded = Library(library.path, extractor=fake_extractor)
        reloaded.read()
        assert len(reloaded) == 1

    def test_count_of_refreshed_songs(self, library: Library, music_dir: Path):
        library.add_files([music_dir])
        library.write()

        assert library.update_metadata(force=True) == 2
        assert library.write_queued
        assert library.update_metadata(force=False) == 0


class TestPersistence:
    """Test lazy reads and writes of the library file."""

    def test_missing_file_reads_empty(self, library: Library):
        assert library.read() is True
        assert len(library) == 0

    def test_write_is_lazy(self, library: Library):
        assert library.write() is True
        assert not library.path.exists()

        library.add_song(songs_named("a.ogg")[0])
        assert library.write() is True
        assert library.path.exists()
        assert not library.write_queued

    def test_round_trip_keeps_order_and_stats(self, library: Library):
        a, b = songs_named("b.ogg", "a.ogg")
        a.rating = 90
        b.play_count = 5
        library.add_song(a)
        library.add_song(b)
        library.write()

        reloaded = Library(library.path, extractor=fake_extractor)
        assert reloaded.read() is True
        assert [song.uri for song in reloaded] == [a.uri, b.uri]
        assert reloaded.songs()[0].rating == 90
        assert reloaded.songs()[1].play_count == 5

    def test_newer_file_is_never_overwritten(self, library: Library):
        """Test a refused file survives later mutations and writes."""
        library.path.write_text(
            f"[Properties]\nFileVersion = {FILE_VERSION + 1}\n\n"
            '[song-1]\nURI = "file:///music/a.ogg"\n'
        )
        original = library.path.read_text()

        assert library.read() is False
        library.add_song(songs_named("b.ogg")[0])
        assert library.write() is False
        assert library.path.read_text() == original

    def test_read_upgrades_unversioned_file(self, library: Library):
        library.path.write_text('[song-1]\nURI = "file:///music/a.ogg"\n')

        assert library.read() is True
        assert "FileVersion" in library.path.read_text()

    def test_read_replaces_contents(self, library: Library):
        dump_library_file(library.path, songs_named("a.ogg"))
        library.add_song(songs_named("other.ogg")[0])

        library.read()
        assert [song.name for song in library] == ["a.ogg"]
