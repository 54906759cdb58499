"""
Song manager: keeps track of what played, what plays and what plays next.

The manager owns the play history, the precomputed up-next list, the user
queue and the recent-artists list. It asks the intelligence engine for a new
song when up-next runs dry and applies the statistics rules when a song
finishes.
"""

import random
from typing import List, Optional, Tuple

from loguru import logger

from jukebox.core.events import Event, EventBus, EventKind
from jukebox.core.settings import Settings
from jukebox.domain.intelligence import (
    choose_new_song,
    song_filter_from_settings,
    song_modifiers_from_settings,
)
from jukebox.domain.library.library import Library
from jukebox.domain.library.models import Song
from jukebox.domain.statistics import (
    update_last_played_on_play,
    update_play_count_on_play,
    update_score_on_play,
    update_skip_count_on_play,
)

HISTORY_LIMIT = 100
RECENT_ARTISTS_LIMIT = 50

SongTrio = Tuple[Optional[Song], Optional[Song], Optional[Song]]


class SongManager:
    """History, up-next, queue and recent artists of one playback session."""

    def __init__(
        self,
        library: Library,
        settings: Settings,
        events: EventBus,
        rng: Optional[random.Random] = None,
    ):
        self.library = library
        self.settings = settings
        self.events = events
        self._rng = rng

        self._current: Optional[Song] = None
        self.history: List[Song] = []
        self.up_next: List[Song] = []
        self.queue: List[Song] = []
        self.recent_artists: List[int] = []
        self._incognito = False
        self.reported: SongTrio = (None, None, None)

    # Current song

    @property
    def current(self) -> Optional[Song]:
        return self._current

    def set_current(self, song: Optional[Song]) -> None:
        """Mark ``song`` as the one playing now."""
        self._current = song

    @property
    def previous(self) -> Optional[Song]:
        """Most recently played song."""
        return self.history[0] if self.history else None

    # Incognito

    @property
    def incognito(self) -> bool:
        return self._incognito

    @incognito.setter
    def incognito(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled == self._incognito:
            return

        self._incognito = enabled
        self.events.emit(
            Event(EventKind.STATE_CHANGED, state="incognito" if enabled else "recording")
        )
        self.events.message(
            "Incognito mode enabled" if enabled else "Incognito mode disabled"
        )

    # Selection

    def _choose_new_song(self) -> Optional[Song]:
        current = self._current
        songs = [song for song in self.library.songs() if song is not current]
        if not songs:
            logger.debug("No songs left to choose from")
            return None

        artists = list(self.recent_artists)
        if current is not None and current.artist_hash != 0:
            artists.insert(0, current.artist_hash)

        # Rebuilt on every run so settings changes never apply halfway
        song_filter = song_filter_from_settings(self.settings)
        modifiers = song_modifiers_from_settings(self.settings)

        return choose_new_song(
            songs,
            self.history,
            self.up_next,
            artists,
            song_filter,
            modifiers,
            self._rng,
        )

    def get_next_song(self) -> Optional[Song]:
        """
        Get the song that plays after the current one.

        Songs in up-next that left the library are dropped. When up-next is
        empty a new song is chosen and appended.

        Returns:
            Head of up-next, or None if no song qualifies
        """
        while self.up_next:
            song = self.up_next[0]
            if song in self.library:
                return song
            logger.debug(f"Dropping {song.name} from up next: no longer in the library")
            self.up_next.pop(0)

        song = self._choose_new_song()
        if song is not None:
            self.up_next.append(song)
        return song

    def remove_next(self, song: Song) -> None:
        if song in self.up_next:
            self.up_next.remove(song)

    def clear_next(self) -> None:
        self.up_next.clear()

    def refresh_next(self) -> None:
        """Drop up-next and choose again (e.g. after settings changed)."""
        self.clear_next()
        self.sync()
        self.songs_updated()

    def settings_updated(self) -> None:
        self.refresh_next()

    # Queue

    def get_queue_song(self) -> Optional[Song]:
        return self.queue[0] if self.queue else None

    def add_to_queue(self, song: Song) -> None:
        """Append ``song`` to the end of the queue."""
        self.queue.append(song)
        song.queued = True

    def remove_from_queue(self, song: Song) -> None:
        if song in self.queue:
            self.queue.remove(song)
        song.queued = song in self.queue

    def pop_queue(self) -> Optional[Song]:
        """Remove and return the head of the queue."""
        if not self.queue:
            return None
        song = self.queue.pop(0)
        song.queued = song in self.queue
        return song

    def set_queued(self, song: Song, queued: bool) -> None:
        if queued:
            self.add_to_queue(song)
        else:
            self.remove_from_queue(song)

    def toggle_queue(self, song: Song) -> None:
        self.set_queued(song, not song.queued)

    # Played songs

    def add_played(self, song: Song, fraction: float, skip_score: bool = False) -> None:
        """
        Record that ``song`` finished playing.

        Statistics are updated in the order score, play count, skip count,
        last played, unless incognito mode is on.

        Args:
            song: Song that finished
            fraction: Part of the song that was heard, 0.0 to 1.0
            skip_score: Leave the score untouched
        """
        if not 0.0 <= fraction <= 1.0:
            logger.warning(f"Ignoring played fraction {fraction} for {song.name}")
            return

        self.history.insert(0, song)

        artist = song.artist_hash
        if artist != 0:
            self.recent_artists.insert(0, artist)

        self._trim()

        if not self._incognito:
            min_fraction = self.settings.min_played_fraction
            full_fraction = self.settings.full_played_fraction

            if not skip_score:
                update_score_on_play(song, fraction, full_fraction)
            update_play_count_on_play(song, fraction, min_fraction)
            update_skip_count_on_play(song, fraction, full_fraction)
            update_last_played_on_play(song, fraction, min_fraction)

            self.library.queue_write()
            logger.debug(f"Updated statistics of {song.name} (played {fraction:.2f})")

        self.events.emit(Event(EventKind.STATS_UPDATED, songs=(song,)))

        self._current = None

    def revert_to_previous(self) -> Optional[Song]:
        """
        Take the most recently played song off the history.

        The current song, if any, goes back to the front of up-next so it
        plays again after the reverted one.

        Returns:
            The song to play again, or None if the history is empty
        """
        if not self.history:
            return None

        song = self.history.pop(0)
        if self._current is not None:
            self.up_next.insert(0, self._current)
        return song

    # Housekeeping

    def _trim(self) -> None:
        del self.history[HISTORY_LIMIT:]
        del self.recent_artists[RECENT_ARTISTS_LIMIT:]

    def sync(self) -> None:
        """Fill up-next, flush the library if needed and trim the lists."""
        if not self.up_next:
            song = self._choose_new_song()
            if song is not None:
                self.up_next.append(song)

        self.library.write(force=False)
        self._trim()

    def songs_updated(self, playback_active: Optional[bool] = None) -> SongTrio:
        """
        Report the (previous, current, next) trio.

        The next song is only looked up while playing; a queued song takes
        priority, and a current song with its stop flag set has no next.

        Args:
            playback_active: Whether playback runs (default: a song is current)

        Returns:
            The reported trio
        """
        if playback_active is None:
            playback_active = self._current is not None

        next_song = self.get_next_song() if playback_active else None

        queued = self.get_queue_song()
        if queued is not None:
            next_song = queued

        if self._current is not None and self._current.stop_flag:
            next_song = None

        trio: SongTrio = (self.previous, self._current, next_song)
        self.reported = trio
        self.events.emit(Event(EventKind.SONGS_CHANGED, songs=trio))
        return trio
