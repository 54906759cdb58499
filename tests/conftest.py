"""Shared fixtures: a fake audio backend and a wired-up core."""

import random
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from jukebox.context import CoreContext
from jukebox.core.events import Event, EventBus, EventKind
from jukebox.core.settings import Settings
from jukebox.domain.library import Library, Song, SongStatus
from jukebox.domain.playback import BackendEvent, Player, SongManager


class FakeBackend:
    """In-memory stand-in for the mpv backend."""

    def __init__(self) -> None:
        self.loaded: Optional[str] = None
        self.load_ok = True
        self.playing = False
        self.stopped = 0
        self.seeks: List[float] = []
        self.volume: Optional[float] = None
        self.position = 0.0
        self.duration = 200.0
        self.pending: List[BackendEvent] = []
        self.shut_down = False

    def load(self, uri: str) -> bool:
        if not self.load_ok:
            return False
        self.loaded = uri
        self.playing = True
        self.position = 0.0
        return True

    def play(self) -> bool:
        self.playing = True
        return True

    def pause(self) -> bool:
        self.playing = False
        return True

    def stop(self) -> bool:
        self.playing = False
        self.loaded = None
        self.stopped += 1
        return True

    def seek(self, seconds: float) -> bool:
        self.seeks.append(seconds)
        return True

    def set_volume(self, percentage: float) -> bool:
        self.volume = percentage
        return True

    def get_position(self) -> float:
        return self.position

    def get_duration(self) -> float:
        return self.duration

    def poll(self) -> List[BackendEvent]:
        events, self.pending = self.pending, []
        return events

    def shutdown(self) -> None:
        self.shut_down = True


class EventRecorder:
    """Collects events emitted on a bus."""

    def __init__(self, events: EventBus) -> None:
        self.received: List[Event] = []
        events.subscribe(self.received.append)

    def of_kind(self, kind: EventKind) -> List[Event]:
        return [event for event in self.received if event.kind == kind]

    def messages(self) -> List[str]:
        return [event.message for event in self.of_kind(EventKind.MESSAGE)]

    def clear(self) -> None:
        self.received.clear()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(events: EventBus) -> EventRecorder:
    return EventRecorder(events)


@pytest.fixture
def library(tmp_path: Path) -> Library:
    return Library(tmp_path / "library.toml")


@pytest.fixture
def add_song(library: Library) -> Callable[..., Song]:
    """Add an available song named ``name`` to the library."""

    def factory(name: str, **fields) -> Song:
        song = Song.from_uri(f"file:///music/{name}.ogg")
        song.status = SongStatus.AVAILABLE
        song.artist = name.upper()
        for key, value in fields.items():
            setattr(song, key, value)
        library.add_song(song)
        return song

    return factory


@pytest.fixture
def manager(library: Library, settings: Settings, events: EventBus) -> SongManager:
    return SongManager(library, settings, events, random.Random(42))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def player(
    manager: SongManager, settings: Settings, events: EventBus, backend: FakeBackend
) -> Player:
    return Player(manager, settings, events, backend)


@pytest.fixture
def ctx(
    settings: Settings,
    library: Library,
    manager: SongManager,
    player: Player,
    events: EventBus,
) -> CoreContext:
    """Core context around the fake backend."""
    return CoreContext(
        settings=settings,
        library=library,
        manager=manager,
        player=player,
        events=events,
    )
