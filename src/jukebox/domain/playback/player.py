"""
Playback controller.

Drives a playback backend (mpv in production) and turns the backend's
messages into song manager calls: a started stream makes the song current,
an ended stream records the play and moves on, an error updates the song's
status. All calls happen on the main thread.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from loguru import logger

from jukebox.core.events import Event, EventBus, EventKind
from jukebox.core.settings import Settings
from jukebox.domain.library.models import Song, SongStatus

from .manager import SongManager


class PlaybackState(Enum):
    STOPPED = "Stopped"
    PLAYING = "Playing"
    PAUSED = "Paused"


class BackendMessage(Enum):
    STREAM_START = "stream-start"
    END_OF_STREAM = "end-of-stream"
    ERROR = "error"
    STATE_CHANGED = "state-changed"


class BackendError(Enum):
    NOT_FOUND = "not-found"
    OPEN_READ = "open-read"
    READ = "read"
    NOT_AUTHORIZED = "not-authorized"
    OTHER = "other"


# Errors meaning the file itself is missing or unreadable
RESOURCE_ERRORS = (
    BackendError.NOT_FOUND,
    BackendError.OPEN_READ,
    BackendError.READ,
    BackendError.NOT_AUTHORIZED,
)


@dataclass(frozen=True)
class BackendEvent:
    """A message reported by the backend."""

    message: BackendMessage
    error: Optional[BackendError] = None
    text: Optional[str] = None
    state: Optional[PlaybackState] = None


class PlaybackBackend(Protocol):
    """What the controller needs from an audio engine."""

    def load(self, uri: str) -> bool: ...

    def play(self) -> bool: ...

    def pause(self) -> bool: ...

    def stop(self) -> bool: ...

    def seek(self, seconds: float) -> bool: ...

    def set_volume(self, percentage: float) -> bool: ...

    def get_position(self) -> float: ...

    def get_duration(self) -> float: ...

    def poll(self) -> List[BackendEvent]: ...

    def shutdown(self) -> None: ...


class Player:
    """Playback controller over a ``PlaybackBackend``."""

    def __init__(
        self,
        manager: SongManager,
        settings: Settings,
        events: EventBus,
        backend: PlaybackBackend,
    ):
        self.manager = manager
        self.settings = settings
        self.events = events
        self.backend = backend

        self._state = PlaybackState.STOPPED
        self._song: Optional[Song] = None
        self._play_msg = "Now playing"

    # State

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def song(self) -> Optional[Song]:
        """Song loaded in the backend."""
        return self._song

    def _set_state(self, state: PlaybackState) -> None:
        if state == self._state:
            return
        self._state = state
        logger.info(f"Player is now {state.value.lower()}")
        self.events.emit(Event(EventKind.STATE_CHANGED, state=state.value))

    def songs_updated(self) -> None:
        self.manager.songs_updated(self._state != PlaybackState.STOPPED)

    # Position and volume

    @property
    def position(self) -> float:
        """Playback position in seconds."""
        if self._song is None:
            return 0.0
        return max(self.backend.get_position(), 0.0)

    @position.setter
    def position(self, seconds: float) -> None:
        self.seek_seconds(seconds)

    @property
    def volume(self) -> float:
        """Volume percentage, remembered in the settings."""
        return self.settings.volume

    @volume.setter
    def volume(self, percentage: float) -> None:
        percentage = min(max(float(percentage), 0.0), 100.0)
        self.backend.set_volume(percentage)
        self.settings.set("UsedVolume", percentage)

    def played_fraction(self) -> float:
        """
        Part of the current song that was heard.

        An unknown duration counts as fully played; positions past the end
        are capped at 1.0.
        """
        duration = self.backend.get_duration()
        if duration <= 0:
            return 1.0

        position = self.backend.get_position()
        if position <= 0:
            return 0.0
        if position >= duration:
            return 1.0
        return position / duration

    # Song life cycle

    def _finish_song(self) -> None:
        song = self._song
        if song is None:
            return

        self.manager.add_played(song, self.played_fraction())
        if song.status == SongStatus.PLAYING:
            song.status = SongStatus.AVAILABLE
        self._song = None

    def _finish_song_error(self) -> None:
        song = self._song
        if song is None:
            return

        fraction = self.played_fraction()
        # Failures at the very start or end say nothing about the song
        if 0.0 < fraction < 1.0:
            self.manager.add_played(song, fraction)
        else:
            self.manager.set_current(None)
        self._song = None

    def _open(self, song: Song, play_msg: str) -> bool:
        self._finish_song()

        self._play_msg = play_msg
        self._song = song
        logger.info(f"Opening {song.uri}")

        if not self.backend.load(song.uri):
            logger.error(f"Backend failed to load {song.uri}")
            self._song = None
            self._set_state(PlaybackState.STOPPED)
            self.events.message(f"Failed to play {song.display_title}")
            return False

        self.backend.set_volume(self.settings.volume)
        return True

    def _play_next_song(self, play_msg: str) -> bool:
        song = self.manager.pop_queue()

        if song is None:
            song = self.manager.get_next_song()
            if song is not None:
                self.manager.remove_next(song)

        if song is None:
            self._finish_song()
            self.backend.stop()
            self._set_state(PlaybackState.STOPPED)
            self.events.message("No qualified songs to play")
            self.songs_updated()
            return False

        return self._open(song, play_msg)

    # Controls

    def play(self) -> None:
        if self._state == PlaybackState.PLAYING:
            self.events.message("Already playing")
        elif self._state == PlaybackState.PAUSED:
            if self.backend.play():
                self._set_state(PlaybackState.PLAYING)
                self.songs_updated()
        else:
            self._play_next_song("Now playing")

    def pause(self) -> None:
        if self._state == PlaybackState.PAUSED:
            self.events.message("Already paused")
        elif self._state == PlaybackState.PLAYING:
            if self.backend.pause():
                self._set_state(PlaybackState.PAUSED)
                self.events.message("Paused")
                self.songs_updated()
        else:
            self.events.message("Not yet playing")

    def play_pause(self) -> None:
        if self._state == PlaybackState.PLAYING:
            self.pause()
        else:
            self.play()

    def stop(self) -> None:
        """Finish the current song and stop playback."""
        was_active = self._state != PlaybackState.STOPPED

        self._finish_song()
        self.backend.stop()
        self._set_state(PlaybackState.STOPPED)

        if was_active:
            self.events.message("Stopped")
        self.events.emit(Event(EventKind.NOTIFICATION))
        self.events.emit(Event(EventKind.POSITION_UPDATED))
        self.songs_updated()
        self.manager.sync()

    def forward(self) -> None:
        """Finish the current song and play the next one."""
        self._play_next_song("Skipped forward")

    def backward(self) -> None:
        """Play the previously played song again."""
        song = self.manager.revert_to_previous()
        if song is None:
            self.events.message("No previous songs to play")
            return
        self._open(song, "Skipped backward")

    def play_song(self, song: Song) -> bool:
        """Start playing ``song`` right away."""
        return self._open(song, "Now playing")

    def seek_seconds(self, seconds: float) -> bool:
        if self._song is None:
            logger.info("No playback active")
            return False
        if seconds < 0:
            logger.warning(f"Invalid seek position {seconds}")
            return False

        self._play_msg = "Seeked"
        return self.backend.seek(seconds)

    def seek(self, percentage: float) -> bool:
        """Seek to ``percentage`` (0 to 100) of the current song."""
        if not 0.0 <= percentage <= 100.0:
            logger.warning(f"Invalid seek percentage {percentage}")
            return False

        duration = self.backend.get_duration()
        if duration <= 0:
            logger.info("Duration unknown, cannot seek")
            return False
        return self.seek_seconds(duration * percentage / 100.0)

    def stop_after_song(self, song: Optional[Song] = None) -> None:
        """Toggle the stop flag of ``song`` (default: the playing song)."""
        target = song if song is not None else self._song
        if target is None:
            logger.info("No song to set stop flag")
            return

        target.stop_flag = not target.stop_flag
        self.songs_updated()

    def set_queued(self, song: Song, queued: bool) -> None:
        self.manager.set_queued(song, queued)
        self.songs_updated()

    def toggle_queue(self, song: Song) -> None:
        self.set_queued(song, not song.queued)

    # Backend messages

    def _on_stream_start(self) -> None:
        song = self._song
        if song is None:
            logger.warning("Stream started without a song")
            return

        song.status = SongStatus.PLAYING
        self.manager.set_current(song)
        self._set_state(PlaybackState.PLAYING)

        self.manager.sync()

        self.events.message(f"{self._play_msg}: {song.display_title}")
        self.events.emit(
            Event(
                EventKind.NOTIFICATION,
                songs=(song,),
                duration=self.backend.get_duration(),
            )
        )
        self.songs_updated()

    def _on_end_of_stream(self) -> None:
        logger.info("Reached end of stream")
        song = self._song

        if song is not None and song.stop_flag:
            song.stop_flag = False
            self.stop()
        else:
            self._play_next_song("Going forward")

    def _on_error(self, event: BackendEvent) -> None:
        song = self._song
        logger.warning(f"Playback error ({event.error}): {event.text}")

        self._finish_song_error()
        self.backend.stop()
        self._set_state(PlaybackState.STOPPED)

        resource_error = event.error in RESOURCE_ERRORS
        if song is not None:
            if resource_error:
                song.status = SongStatus.NOT_FOUND
            elif song.status == SongStatus.PLAYING:
                song.status = SongStatus.AVAILABLE

        self.events.message(event.text or "A playback error occurred, see the log for details")
        self.songs_updated()
        self.manager.sync()

        # Missing songs drop out of selection, so moving on always ends
        if resource_error:
            self._play_next_song("Going forward")

    def handle(self, event: BackendEvent) -> None:
        """React to a single backend message."""
        if event.message == BackendMessage.STREAM_START:
            self._on_stream_start()
        elif event.message == BackendMessage.END_OF_STREAM:
            self._on_end_of_stream()
        elif event.message == BackendMessage.ERROR:
            self._on_error(event)
        elif event.message == BackendMessage.STATE_CHANGED and event.state is not None:
            self._set_state(event.state)

    def poll(self) -> None:
        """Process pending backend messages and report progress."""
        for event in self.backend.poll():
            self.handle(event)

        if self._state == PlaybackState.PLAYING:
            duration = self.backend.get_duration()
            position = self.backend.get_position()
            if duration > 0 and position >= 0:
                self.events.emit(
                    Event(
                        EventKind.POSITION_UPDATED,
                        position=position,
                        duration=duration,
                    )
                )

    def shutdown(self) -> None:
        """Stop playback (recording the current song) and release the backend."""
        self.stop()
        self.backend.shutdown()
