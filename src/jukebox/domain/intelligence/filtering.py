"""
Filter stage of song selection.

The steps run in a fixed order and the order is part of the contract:

1. songs that are not AVAILABLE are removed
2. songs by one of the most recent artists are removed
3. songs outside the configured statistic ranges are removed
4. recently played songs are removed

Recent removal is sized as a percentage of what is left after steps 1-3, so
a library dominated by a few artists is not emptied by the percentage. Up
next and history entries count against the removal budget whether or not
an earlier step already removed them.
"""

import time
from typing import Iterable, List, Optional, Sequence

from loguru import logger

from jukebox.domain.library.models import Song, SongStatus
from jukebox.domain.statistics import (
    last_played_is_valid,
    play_count_is_valid,
    rating_is_valid,
    score_is_valid,
    skip_count_is_valid,
)

from .models import SongFilter


def remove_invalid_songs(songs: Iterable[Song]) -> List[Song]:
    """Keep only songs that can be played right now."""
    result = []
    for song in songs:
        if song.status != SongStatus.AVAILABLE:
            logger.debug(f"Filtered out {song.name} because it is not available")
            continue
        result.append(song)
    return result


def remove_recent_artists(
    songs: Iterable[Song], recent_artists: Sequence[int], amount: int
) -> List[Song]:
    """Remove songs whose artist is among the first ``amount`` recent artists."""
    blocked = set(recent_artists[:amount]) if amount > 0 else set()
    blocked.discard(0)

    if not blocked:
        return list(songs)

    result = []
    for song in songs:
        artist_hash = song.artist_hash
        if artist_hash != 0 and artist_hash in blocked:
            logger.debug(f"Filtered out {song.name} by artist {song.artist}")
            continue
        result.append(song)
    return result


def _use_rating_filter(song_filter: SongFilter) -> bool:
    if not song_filter.use_rating:
        return False
    if song_filter.rating_min <= 0 or song_filter.rating_max <= 0:
        return False
    return rating_is_valid(song_filter.rating_min) and rating_is_valid(song_filter.rating_max)


def _use_score_filter(song_filter: SongFilter) -> bool:
    if not song_filter.use_score:
        return False
    if song_filter.score_min <= 0.0 or song_filter.score_max <= 0.0:
        return False
    return score_is_valid(song_filter.score_min) and score_is_valid(song_filter.score_max)


def _outside_threshold(value: int, threshold: int, invert: bool) -> bool:
    if invert:
        return value > threshold
    return value < threshold


def _rejected_by_stats(
    song: Song,
    song_filter: SongFilter,
    now: int,
    rating_on: bool,
    score_on: bool,
    play_count_on: bool,
    skip_count_on: bool,
    last_played_on: bool,
) -> Optional[str]:
    if rating_on:
        rating = song.rating
        keep_unrated = song_filter.rating_include_zero and rating == 0
        if not rating_is_valid(rating) or (
            not keep_unrated
            and not song_filter.rating_min <= rating <= song_filter.rating_max
        ):
            return f"rating {rating}"

    if score_on:
        score = song.score
        if not score_is_valid(score) or not song_filter.score_min <= score <= song_filter.score_max:
            return f"score {score:.2f}"

    if play_count_on:
        play_count = song.play_count
        if not play_count_is_valid(play_count) or _outside_threshold(
            play_count, song_filter.play_count_threshold, song_filter.play_count_invert
        ):
            return f"play count {play_count}"

    if skip_count_on:
        skip_count = song.skip_count
        if not skip_count_is_valid(skip_count) or _outside_threshold(
            skip_count, song_filter.skip_count_threshold, song_filter.skip_count_invert
        ):
            return f"skip count {skip_count}"

    if last_played_on:
        last_played = song.last_played
        time_since = abs(now - last_played)
        if not last_played_is_valid(last_played) or _outside_threshold(
            time_since, song_filter.last_played_threshold, song_filter.last_played_invert
        ):
            return f"last played {last_played}"

    return None


def filter_by_stats(
    songs: Iterable[Song], song_filter: SongFilter, now: Optional[int] = None
) -> List[Song]:
    """
    Remove songs outside the enabled statistic ranges.

    Args:
        songs: Songs to filter
        song_filter: Filter parameters
        now: Unix time shared by all last played checks (default: current time)

    Returns:
        Songs passing every enabled predicate
    """
    rating_on = _use_rating_filter(song_filter)
    score_on = _use_score_filter(song_filter)
    play_count_on = song_filter.use_play_count and song_filter.play_count_threshold > 0
    skip_count_on = song_filter.use_skip_count and song_filter.skip_count_threshold > 0
    last_played_on = song_filter.use_last_played and song_filter.last_played_threshold > 0

    if not any((rating_on, score_on, play_count_on, skip_count_on, last_played_on)):
        return list(songs)

    # One clock sample so every song is judged against the same moment
    if now is None:
        now = int(time.time())

    result = []
    for song in songs:
        reason = _rejected_by_stats(
            song,
            song_filter,
            now,
            rating_on,
            score_on,
            play_count_on,
            skip_count_on,
            last_played_on,
        )
        if reason:
            logger.debug(f"Song {song.name} filtered out by {reason}")
            continue
        result.append(song)
    return result


def recents_to_remove(count: int, percentage: float, amount: int) -> int:
    """
    Number of recently played songs to remove from a list of ``count`` songs.

    Examples:
        >>> recents_to_remove(6, 50.0, 0)
        3
        >>> recents_to_remove(7, 50.0, 2)
        5
        >>> recents_to_remove(7, 150.0, 0)
        7
    """
    if count <= 0 or percentage <= 0.0:
        removed = 0
    elif percentage >= 100.0:
        removed = count
    else:
        removed = int(count * percentage / 100.0)
    return removed + amount


def remove_recents(
    songs: Iterable[Song],
    history: Sequence[Song],
    up_next: Sequence[Song],
    amount: int,
) -> List[Song]:
    """
    Remove up to ``amount`` recently played songs.

    Precedence: songs already chosen to play next, then history (most recent
    first), then the most recently played of the remaining songs. Songs that
    were never played are skipped without using up the budget.
    """
    result = list(songs)
    if not result or amount <= 0:
        logger.info("No recent items to remove")
        return result

    logger.info(f"Removing {amount} recently played songs")

    excluded = set()
    removed = 0

    for source, label in ((up_next, "previously selected"), (history, "recently played")):
        for song in source:
            if removed >= amount:
                break
            logger.debug(f"Filtered out {label} {song.name}")
            excluded.add(id(song))
            removed += 1

    if removed < amount:
        # sorted() is stable, so equally old songs keep their library order
        by_last_played = sorted(
            (song for song in result if id(song) not in excluded),
            key=lambda song: song.last_played,
            reverse=True,
        )
        for song in by_last_played:
            if removed >= amount:
                break
            if song.last_played <= 0:
                continue
            logger.debug(f"Filtered out {song.name} by last played {song.last_played}")
            excluded.add(id(song))
            removed += 1

    if removed == 0:
        logger.info("Did not remove any recently played songs")
    elif removed < amount:
        logger.info(f"Only removed {removed} of the recently played songs")

    return [song for song in result if id(song) not in excluded]


def filter_songs(
    available: Iterable[Song],
    history: Sequence[Song],
    up_next: Sequence[Song],
    recent_artists: Sequence[int],
    song_filter: SongFilter,
    now: Optional[int] = None,
) -> List[Song]:
    """
    Run the complete filter stage.

    Args:
        available: Candidate songs (a snapshot; never mutated)
        history: Previously played songs, most recent first
        up_next: Songs already chosen to play next
        recent_artists: Artist hashes, most recent first
        song_filter: Filter parameters
        now: Unix time used for last played checks

    Returns:
        The filtered songs, possibly empty
    """
    songs = remove_invalid_songs(available)
    songs = remove_recent_artists(songs, recent_artists, song_filter.recent_artists)
    songs = filter_by_stats(songs, song_filter, now)

    amount = recents_to_remove(
        len(songs), song_filter.remove_recents_percentage, song_filter.remove_recents_amount
    )
    songs = remove_recents(songs, history, up_next, amount)

    if not songs:
        logger.info("All songs are filtered out")

    return songs
