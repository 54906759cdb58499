"""Intelligence domain - choosing the next song.

Selection runs in two stages:
- filtering removes songs that should not play now
- a weighted random draw picks one of the remaining songs
"""

import random
from typing import Iterable, Optional, Sequence

from loguru import logger

from jukebox.domain.library.models import Song

from .filtering import (
    filter_by_stats,
    filter_songs,
    recents_to_remove,
    remove_invalid_songs,
    remove_recent_artists,
    remove_recents,
)
from .models import (
    SongFilter,
    SongModifiers,
    song_filter_from_settings,
    song_modifiers_from_settings,
)
from .weighting import (
    ONE_YEAR,
    calculate_entries,
    count_entries,
    draw_song,
    fraction_shape,
    pick_winner,
    song_entries,
    sqrt_shape,
    time_since_entries,
)


def choose_new_song(
    library: Iterable[Song],
    history: Sequence[Song],
    up_next: Sequence[Song],
    recent_artists: Sequence[int],
    song_filter: Optional[SongFilter],
    modifiers: Optional[SongModifiers],
    rng: Optional[random.Random] = None,
) -> Optional[Song]:
    """
    Run the complete selection over a library snapshot.

    Args:
        library: Candidate songs
        history: Previously played songs, most recent first
        up_next: Songs already chosen to play next
        recent_artists: Artist hashes, most recent first
        song_filter: Filter parameters (None skips filtering)
        modifiers: Draw parameters (None means no song is drawn)
        rng: Random source (default: module level random)

    Returns:
        The chosen song, or None if nothing qualifies
    """
    songs = list(library)
    if not songs:
        logger.info("No songs to choose from")
        return None

    if song_filter is not None:
        songs = filter_songs(songs, history, up_next, recent_artists, song_filter)

    if modifiers is None or not songs:
        return None

    return draw_song(songs, modifiers, rng)


__all__ = [
    # Models
    "SongFilter",
    "SongModifiers",
    "song_filter_from_settings",
    "song_modifiers_from_settings",
    # Filtering
    "filter_songs",
    "remove_invalid_songs",
    "remove_recent_artists",
    "filter_by_stats",
    "recents_to_remove",
    "remove_recents",
    # Weighting
    "ONE_YEAR",
    "fraction_shape",
    "sqrt_shape",
    "count_entries",
    "time_since_entries",
    "song_entries",
    "calculate_entries",
    "pick_winner",
    "draw_song",
    # Selection
    "choose_new_song",
]
