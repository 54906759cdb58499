"""
Weighted draw stage of song selection.

Every song earns a number of entries from its statistics; the winner is
drawn with probability proportional to its entries. Rating and score count
linearly; play count, skip count and time since last played are bent
through shape functions that bound each contribution to [0, 100] before the
multiplier is applied.
"""

import math
import random
import time
from typing import Iterable, List, Optional, Tuple

from loguru import logger

from jukebox.domain.library.models import Song
from jukebox.domain.statistics import (
    last_played_is_valid,
    play_count_is_valid,
    rating_invert,
    rating_is_valid,
    score_invert,
    score_is_valid,
    skip_count_is_valid,
)

from .models import SongModifiers

# Internal factor on top of the user multiplier so fractional multipliers
# still produce whole entry counts
ENTRY_FACTOR = 1000

MAX_SHAPE_ENTRIES = 100
COUNT_SHAPE = 100
TIME_SHAPE = 5616  # ~sqrt(ONE_YEAR)

ONE_YEAR = 365 * 24 * 60 * 60

SongEntries = List[Tuple[Song, int]]


def fraction_shape(x: int, a: int, r: int, invert: bool) -> int:
    """
    Rational curve through the origin approaching ``r``.

    Formula:
        not inverted: f(x) = (-a * r) / (x + a) + r
        inverted:     f(x) = (a * r) / (x + a)

    ``f(a) == r / 2``. Results are truncated toward zero, so an inverted and
    a plain value for the same ``x`` add up to ``r`` or ``r - 1``.

    Examples:
        >>> fraction_shape(0, 100, 100, False)
        0
        >>> fraction_shape(100, 100, 100, False)
        50
        >>> fraction_shape(100, 100, 100, True)
        50
    """
    if a <= 0 or r <= 0 or x < 0:
        logger.warning(f"Invalid fraction shape input x={x}, a={a}, r={r}")
        return 0

    if invert:
        return int((a * r) / (x + a))
    return int((-a * r) / (x + a)) + r


def sqrt_shape(x: int, a: int, r: int, invert: bool) -> int:
    """
    Square root curve through the origin reaching ``r`` at ``x == a ** 2``.

    Formula:
        not inverted: f(x) = r * sqrt(x) / a
        inverted:     f(x) = -r * sqrt(x) / a + r

    Results are rounded to the nearest entry so the curve saturates at ``r``
    for one year when ``a`` is 5616.

    Examples:
        >>> sqrt_shape(0, 5616, 100, False)
        0
        >>> sqrt_shape(ONE_YEAR, 5616, 100, False)
        100
        >>> sqrt_shape(ONE_YEAR, 5616, 100, True)
        0
    """
    if a <= 0 or r <= 0 or x < 0:
        logger.warning(f"Invalid sqrt shape input x={x}, a={a}, r={r}")
        return 0

    value = round(r * math.sqrt(x) / a)
    if invert:
        return r - value
    return value


def count_entries(count: int, invert: bool = False) -> int:
    """Entries (0-100) for a play or skip count."""
    return fraction_shape(count, COUNT_SHAPE, MAX_SHAPE_ENTRIES, invert)


def time_since_entries(time_since: int, invert: bool = False) -> int:
    """Entries (0-100) for seconds since last played, capped at one year."""
    return sqrt_shape(min(time_since, ONE_YEAR), TIME_SHAPE, MAX_SHAPE_ENTRIES, invert)


def _factor(use: bool, multiplier: float) -> int:
    if not use or multiplier <= 0.0:
        return 0
    return int(multiplier * ENTRY_FACTOR)


def song_entries(song: Song, modifiers: SongModifiers, now: int) -> int:
    """
    Total entries of a single song; may be negative.

    Args:
        song: Song to weigh
        modifiers: Draw parameters
        now: Unix time used for the time since last played

    Returns:
        Raw entry count (before disqualification and the minimum of one)
    """
    entries = 0

    rating_factor = _factor(modifiers.use_rating, modifiers.rating_multiplier)
    if rating_factor and rating_is_valid(song.rating):
        rating = song.rating
        if modifiers.invert_rating:
            rating = rating_invert(rating)
        elif rating == 0:
            rating = modifiers.default_rating
        entries += rating * rating_factor

    score_factor = _factor(modifiers.use_score, modifiers.score_multiplier)
    if score_factor and score_is_valid(song.score):
        score = song.score
        if modifiers.invert_score:
            score = score_invert(score)
        entries += int(score * score_factor)

    play_count_factor = _factor(modifiers.use_play_count, modifiers.play_count_multiplier)
    if play_count_factor and play_count_is_valid(song.play_count):
        entries += count_entries(song.play_count, modifiers.invert_play_count) * play_count_factor

    skip_count_factor = _factor(modifiers.use_skip_count, modifiers.skip_count_multiplier)
    if skip_count_factor and skip_count_is_valid(song.skip_count):
        entries += count_entries(song.skip_count, modifiers.invert_skip_count) * skip_count_factor

    last_played_factor = _factor(modifiers.use_last_played, modifiers.last_played_multiplier)
    if last_played_factor and last_played_is_valid(song.last_played):
        time_since = abs(now - song.last_played)
        entries += (
            time_since_entries(time_since, modifiers.invert_last_played) * last_played_factor
        )

    return entries


def calculate_entries(
    songs: Iterable[Song], modifiers: SongModifiers, now: Optional[int] = None
) -> SongEntries:
    """
    Entry counts for every qualifying song, in input order.

    Songs with a negative total are disqualified; songs with no entries at
    all get exactly one so they can still be drawn.
    """
    if now is None:
        now = int(time.time())

    result = []
    for song in songs:
        entries = song_entries(song, modifiers, now)

        if entries < 0:
            logger.debug(f"{song.name} disqualified")
            continue
        if entries == 0:
            entries = 1

        logger.debug(f"Song <{song.name}> has {entries} entries")
        result.append((song, entries))

    return result


def pick_winner(entries: SongEntries, rng: Optional[random.Random] = None) -> Optional[Song]:
    """
    Draw one song with probability proportional to its entries.

    A number k is drawn uniformly from [1, total]; the first song whose
    running entry sum reaches k wins.
    """
    total = sum(count for _, count in entries if count > 0)
    if total <= 0:
        logger.info("No qualified songs")
        return None

    rng = rng or random
    draw = rng.randint(1, total)

    running = 0
    for song, count in entries:
        if count <= 0:
            continue
        running += count
        if running >= draw:
            logger.info(f"Winner (entry {draw}/{total}): {song.name}")
            return song

    logger.warning(f"Failed to draw a winner (entry {draw}/{total})")
    return None


def draw_song(
    songs: Iterable[Song],
    modifiers: SongModifiers,
    rng: Optional[random.Random] = None,
    now: Optional[int] = None,
) -> Optional[Song]:
    """Weigh ``songs`` and draw a winner."""
    return pick_winner(calculate_entries(songs, modifiers, now), rng)
