"""Shared fixtures for song selection tests."""

from typing import Callable

import pytest

from jukebox.domain.library.models import Song, SongStatus


@pytest.fixture
def make_song() -> Callable[..., Song]:
    """Factory for available songs with the given fields."""
    counter = iter(range(1_000_000))

    def factory(**fields) -> Song:
        song = Song.from_uri(f"file:///music/song-{next(counter)}.ogg")
        song.status = SongStatus.AVAILABLE
        for key, value in fields.items():
            setattr(song, key, value)
        return song

    return factory
