"""Tests for the library key file."""

import tomllib
from pathlib import Path

import pytest
import tomli_w

from jukebox.domain.library.models import Song, SongStatus, path_to_uri
from jukebox.domain.library.storage import (
    FILE_VERSION,
    dump_library_file,
    load_library_file,
    song_from_table,
    song_to_table,
)


@pytest.fixture
def library_path(tmp_path: Path) -> Path:
    return tmp_path / "library.toml"


def make_song(name: str, **fields) -> Song:
    song = Song.from_uri(f"file:///music/{name}")
    for key, value in fields.items():
        setattr(song, key, value)
    return song


def write_document(path: Path, document: dict) -> None:
    with open(path, "wb") as f:
        tomli_w.dump(document, f)


class TestSongTables:
    """Test conversion of single songs."""

    def test_table_carries_all_fields(self):
        song = make_song("a.ogg", title="A", rating=80, score=61.5, play_count=2)
        table = song_to_table(song)

        assert table["URI"] == "file:///music/a.ogg"
        assert table["Title"] == "A"
        assert table["Rating"] == 80
        assert table["Score"] == 61.5
        assert table["PlayCount"] == 2
        assert "Artist" not in table

    def test_location_converted_to_uri(self):
        """Test a group with only a path is upgraded to a URI."""
        song, converted = song_from_table("song-1", {"Location": "/music/old.ogg"})
        assert converted is True
        assert song.uri == path_to_uri("/music/old.ogg")

    def test_group_without_location_skipped(self):
        song, converted = song_from_table("song-1", {"Title": "Lost"})
        assert song is None
        assert converted is False

    def test_out_of_range_values_keep_defaults(self):
        song, _ = song_from_table(
            "song-1",
            {
                "URI": "file:///music/a.ogg",
                "Rating": 250,
                "Score": -3.0,
                "PlayCount": -1,
                "SkipCount": "many",
                "Title": 42,
            },
        )
        assert song.rating == 0
        assert song.score == 50.0
        assert song.play_count == 0
        assert song.skip_count == 0
        assert song.title is None

    def test_loaded_song_is_available(self):
        song, _ = song_from_table("song-1", {"URI": "file:///music/a.ogg"})
        assert song.status == SongStatus.AVAILABLE


class TestLibraryFile:
    """Test whole file reads and writes."""

    def test_round_trip(self, library_path: Path):
        """Test URIs and statistics survive a write and read."""
        songs = [
            make_song("a.ogg", title="A", artist="X", rating=80, score=70.0, play_count=3),
            make_song("b b.flac", album="B", skip_count=4, last_played=1_700_000_000),
            make_song("c.mp3", duration=215, track_number=7, last_metadata_update=99),
        ]
        assert dump_library_file(library_path, songs) is True

        loaded = load_library_file(library_path)
        assert loaded is not None
        assert loaded.version == FILE_VERSION
        assert loaded.needs_rewrite is False

        def stats(song: Song) -> tuple:
            return (
                song.uri,
                song.title,
                song.artist,
                song.album,
                song.rating,
                song.score,
                song.play_count,
                song.skip_count,
                song.last_played,
                song.duration,
                song.track_number,
                song.last_metadata_update,
            )

        assert [stats(song) for song in loaded.songs] == [stats(song) for song in songs]

    def test_groups_named_after_tags(self, library_path: Path):
        song = make_song("a.ogg")
        dump_library_file(library_path, [song])

        with open(library_path, "rb") as f:
            document = tomllib.load(f)

        assert document["Properties"]["FileVersion"] == FILE_VERSION
        assert document[song.tag]["URI"] == song.uri

    def test_unknown_keys_ignored(self, library_path: Path):
        write_document(
            library_path,
            {
                "Properties": {"FileVersion": FILE_VERSION, "Extra": 1},
                "song-1": {"URI": "file:///music/a.ogg", "Rating": 60, "Mood": "happy"},
                "stray": 5,
            },
        )

        loaded = load_library_file(library_path)
        assert len(loaded.songs) == 1
        assert loaded.songs[0].rating == 60

    def test_newer_version_refused(self, library_path: Path):
        write_document(
            library_path,
            {
                "Properties": {"FileVersion": FILE_VERSION + 1},
                "song-1": {"URI": "file:///music/a.ogg"},
            },
        )
        assert load_library_file(library_path) is None

    def test_missing_version_accepted(self, library_path: Path):
        write_document(library_path, {"song-1": {"URI": "file:///music/a.ogg"}})

        loaded = load_library_file(library_path)
        assert loaded is not None
        assert loaded.version is None
        assert loaded.needs_rewrite is True
        assert len(loaded.songs) == 1

    def test_older_version_needs_rewrite(self, library_path: Path):
        write_document(library_path, {"Properties": {"FileVersion": FILE_VERSION - 1}})
        assert load_library_file(library_path).needs_rewrite is True

    def test_location_marks_rewrite(self, library_path: Path):
        write_document(
            library_path,
            {
                "Properties": {"FileVersion": FILE_VERSION},
                "song-1": {"Location": "/music/a.ogg"},
            },
        )
        assert load_library_file(library_path).needs_rewrite is True

    def test_unparseable_file(self, library_path: Path):
        library_path.write_text("[[[")
        assert load_library_file(library_path) is None

    def test_not_found_songs_are_written(self, library_path: Path):
        song = make_song("gone.ogg", status=SongStatus.NOT_FOUND)
        dump_library_file(library_path, [song])
        assert len(load_library_file(library_path).songs) == 1
