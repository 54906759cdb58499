"""Tests for the Song model."""

from pathlib import Path

import pytest

from jukebox.core.hashing import folded_hash, raw_hash
from jukebox.domain.library.metadata import SongMetadata
from jukebox.domain.library.models import (
    Song,
    SongStatus,
    path_to_escaped_uri,
    path_to_uri,
    uri_to_path,
)


class TestUris:
    """Test conversion between paths and URIs."""

    def test_path_to_uri_is_unescaped(self, tmp_path: Path):
        uri = path_to_uri(tmp_path / "a b.ogg")
        assert uri == f"file://{tmp_path}/a b.ogg"

    def test_path_to_escaped_uri(self, tmp_path: Path):
        uri = path_to_escaped_uri(tmp_path / "a b.ogg")
        assert uri.endswith("/a%20b.ogg")

    def test_uri_to_path_keeps_characters(self):
        """Test the stored URI is not decoded again."""
        assert uri_to_path("file:///music/a b.ogg") == "/music/a b.ogg"
        assert uri_to_path("file:///music/a%20b.ogg") == "/music/a%20b.ogg"

    def test_uri_to_path_localhost(self):
        assert uri_to_path("file://localhost/music/a.ogg") == "/music/a.ogg"

    def test_remote_uri_has_no_path(self):
        assert uri_to_path("http://example.com/stream.mp3") is None

    @pytest.mark.parametrize("name", ["Track #1.mp3", "What?.flac", "a%20b.mp3"])
    def test_from_path_round_trips_file_name(self, tmp_path: Path, name: str):
        path = tmp_path / name
        path.write_bytes(b"audio")

        song = Song.from_path(path)

        assert song.path == str(path)
        assert song.name == name
        assert song.uri == f"file://{path}"
        assert song.hash == raw_hash(f"file://{path}")
        song.update_fs_info()
        assert song.status == SongStatus.AVAILABLE

    def test_from_unescaped_uri_keeps_escapes(self):
        song = Song.from_unescaped_uri("file:///music/a%20b.ogg")
        assert song.uri == "file:///music/a%20b.ogg"
        assert song.name == "a%20b.ogg"


class TestSongIdentity:
    """Test hashes and names derived from the URI."""

    def test_from_uri_decodes_escapes(self):
        song = Song.from_uri("file:///music/a%20b.ogg")
        assert song.uri == "file:///music/a b.ogg"
        assert song.hash == raw_hash("file:///music/a b.ogg")
        assert song.name == "a b.ogg"

    def test_tag(self):
        song = Song.from_uri("file:///music/track.ogg")
        assert song.tag == f"song-{song.hash:x}"

    def test_equal_uris_are_distinct_records(self):
        """Test songs compare by identity, not by value."""
        first = Song.from_uri("file:///music/track.ogg")
        second = Song.from_uri("file:///music/track.ogg")
        assert first.hash == second.hash
        assert first != second

    def test_artist_hash_prefers_album_artist(self):
        song = Song.from_uri("file:///music/track.ogg")
        song.artist = "Guest"
        song.album_artist = "Beyoncé"
        assert song.artist_hash == folded_hash("beyonce")

    def test_artist_hash_falls_back_to_artist(self):
        song = Song.from_uri("file:///music/track.ogg")
        song.artist = "Björk"
        assert song.artist_hash == folded_hash("BJORK")

    def test_no_artist_has_zero_hash(self):
        assert Song.from_uri("file:///music/track.ogg").artist_hash == 0


class TestDisplayTitle:
    """Test the printable title."""

    def test_artist_and_title(self):
        song = Song.from_uri("file:///music/track.ogg")
        song.artist = "Artist"
        song.title = "Title"
        assert song.display_title == "Artist - Title"

    def test_file_name_without_tags(self):
        assert Song.from_uri("file:///music/track.ogg").display_title == "track.ogg"


class TestFilesystemInfo:
    """Test status changes driven by the filesystem."""

    def test_missing_file_is_not_found(self, tmp_path: Path):
        song = Song.from_path(tmp_path / "gone.ogg")
        assert song.update_fs_info() is False
        assert song.status == SongStatus.NOT_FOUND
        assert song.modified == -1

    def test_existing_file_becomes_available(self, tmp_path: Path):
        path = tmp_path / "track.ogg"
        path.write_bytes(b"data")
        song = Song.from_path(path)
        song.status = SongStatus.NOT_FOUND

        assert song.update_fs_info() is True
        assert song.status == SongStatus.AVAILABLE
        assert song.modified > 0
        assert song.display_name == "track.ogg"

    def test_remote_uri_not_queried(self):
        song = Song.from_uri("http://example.com/stream.mp3")
        assert song.update_fs_info() is False
        assert song.status == SongStatus.UNKNOWN


class TestMetadataRefresh:
    """Test when tags are (re)read."""

    def test_needs_update_when_file_changed(self):
        song = Song.from_uri("file:///music/track.ogg")
        song.modified = 2000
        song.last_metadata_update = 1000
        assert song.needs_metadata_update() is True

        song.last_metadata_update = 3000
        assert song.needs_metadata_update() is False
        assert song.needs_metadata_update(force=True) is True

    def test_missing_file_never_updates(self):
        song = Song.from_uri("file:///music/track.ogg")
        song.modified = -1
        assert song.needs_metadata_update(force=True) is False

    def test_apply_metadata(self):
        song = Song.from_uri("file:///music/track.ogg")
        song.apply_metadata(
            SongMetadata(title="T", artist="A", album="B", track_number=3, duration=200),
            now=1234,
        )
        assert (song.title, song.artist, song.album) == ("T", "A", "B")
        assert song.track_number == 3
        assert song.duration == 200
        assert song.last_metadata_update == 1234
