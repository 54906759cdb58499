"""
Song statistics rules.

Pure functions over a song's counters: validation, range-checked updates and
the rules applied when a song finishes playing. An update that would leave a
value out of range is rejected, logged, and the previous value is kept.

Callers applying the on-play rules must use the order score, play count,
skip count, last played: the score update averages over the play count as
it was before this play.
"""

import time
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from jukebox.domain.library.models import Song

RATING_MIN = 0
RATING_MAX = 100
SCORE_MIN = 0.0
SCORE_MAX = 100.0
COUNT_MIN = 0
LAST_PLAYED_MIN = 0

RESET = -1

DEFAULT_MIN_PLAYED_FRACTION = 0.2
DEFAULT_FULL_PLAYED_FRACTION = 0.8


def rating_is_valid(rating: int) -> bool:
    return RATING_MIN <= rating <= RATING_MAX


def score_is_valid(score: float) -> bool:
    return SCORE_MIN <= score <= SCORE_MAX


def play_count_is_valid(play_count: int) -> bool:
    return play_count >= COUNT_MIN


def skip_count_is_valid(skip_count: int) -> bool:
    return skip_count >= COUNT_MIN


def last_played_is_valid(last_played: int) -> bool:
    return last_played >= LAST_PLAYED_MIN


def rating_invert(rating: int) -> int:
    """
    Invert a rating within its range; unrated (0) stays unrated.

    Examples:
        >>> rating_invert(80)
        20
        >>> rating_invert(0)
        0
    """
    if rating == 0:
        return 0
    return RATING_MAX - rating


def score_invert(score: float) -> float:
    """Invert a score within its range."""
    return SCORE_MAX - score


def update_rating(song: "Song", rating: int, increase: int = 0) -> bool:
    """
    Set or change the rating of a song.

    Args:
        song: Song to modify
        rating: New rating, -1 to reset, 0 to apply ``increase`` instead
        increase: Amount to add to the current rating when ``rating`` is 0

    Returns:
        True if the update was applied
    """
    if rating == RESET:
        song.rating = 0
        return True

    if rating != 0 and rating_is_valid(rating):
        song.rating = rating
        return True

    if increase != 0 and -RATING_MAX <= increase <= RATING_MAX:
        new_rating = song.rating + increase
        if not rating_is_valid(new_rating):
            logger.warning(
                f"Rating of {song.name} would become {new_rating}, keeping {song.rating}"
            )
            return False
        song.rating = new_rating
        return True

    logger.warning(f"Invalid rating update for {song.name}: {rating} (+{increase})")
    return False


def update_score(song: "Song", score: float, increase: float = 0.0) -> bool:
    """Set or change the score of a song; same policy as ``update_rating``."""
    if score == RESET:
        song.score = 0.0
        return True

    if score != 0.0 and score_is_valid(score):
        song.score = float(score)
        return True

    if increase != 0.0 and -SCORE_MAX <= increase <= SCORE_MAX:
        new_score = song.score + increase
        if not score_is_valid(new_score):
            logger.warning(
                f"Score of {song.name} would become {new_score:.2f}, keeping {song.score:.2f}"
            )
            return False
        song.score = new_score
        return True

    logger.warning(f"Invalid score update for {song.name}: {score} (+{increase})")
    return False


def _update_counter(song: "Song", field_name: str, value: int, increase: int) -> bool:
    if value == RESET:
        setattr(song, field_name, 0)
        return True

    if increase == 0:
        new_value = value
    else:
        new_value = getattr(song, field_name) + increase

    if new_value < 0:
        logger.warning(f"Invalid {field_name} for {song.name}: {new_value}")
        return False

    setattr(song, field_name, new_value)
    return True


def update_play_count(song: "Song", play_count: int, increase: int = 0) -> bool:
    """
    Set or change the play count of a song.

    Args:
        song: Song to modify
        play_count: New value when ``increase`` is 0, -1 to reset
        increase: Amount to add to the current count

    Returns:
        True if the update was applied
    """
    return _update_counter(song, "play_count", play_count, increase)


def update_skip_count(song: "Song", skip_count: int, increase: int = 0) -> bool:
    """Set or change the skip count of a song; same policy as play count."""
    return _update_counter(song, "skip_count", skip_count, increase)


def update_last_played(song: "Song", last_played: int, increase: int = 0) -> bool:
    """Set or shift the last played timestamp (Unix seconds) of a song."""
    return _update_counter(song, "last_played", last_played, increase)


def clamp_played_fraction(fraction: float, full_played_fraction: float) -> float:
    """Treat anything above the full played fraction as a full play."""
    if fraction > full_played_fraction:
        return 1.0
    return fraction


def _fraction_is_valid(song: "Song", fraction: float) -> bool:
    if 0.0 <= fraction <= 1.0:
        return True
    logger.warning(f"Invalid played fraction {fraction} for {song.name}")
    return False


def update_score_on_play(
    song: "Song",
    fraction: float,
    full_played_fraction: float = DEFAULT_FULL_PLAYED_FRACTION,
    incognito: bool = False,
) -> bool:
    """
    Move the score towards the observed played fraction.

    The first play averages the old score with the fraction; later plays keep
    a running mean weighted by the play count before this play.

    Formula:
        play_count == 0: (score + f * 100) / 2
        otherwise:       (score * play_count + f * 100) / (play_count + 1)

    Examples:
        >>> from jukebox.domain.library import Song
        >>> song = Song.from_uri("file:///a.ogg")
        >>> update_score_on_play(song, 1.0)
        True
        >>> song.score
        75.0
    """
    if incognito or not _fraction_is_valid(song, fraction):
        return False

    fraction = clamp_played_fraction(fraction, full_played_fraction)
    play_count = song.play_count

    if play_count == 0:
        new_score = (song.score + fraction * 100.0) / 2.0
    else:
        new_score = (song.score * play_count + fraction * 100.0) / (play_count + 1)

    song.score = min(max(new_score, SCORE_MIN), SCORE_MAX)
    logger.debug(f"Score of {song.name} is now {song.score:.2f}")
    return True


def update_play_count_on_play(
    song: "Song",
    fraction: float,
    min_played_fraction: float = DEFAULT_MIN_PLAYED_FRACTION,
    incognito: bool = False,
    increase: int = 1,
) -> bool:
    """Count a play unless less than the minimum fraction was heard."""
    if incognito or not _fraction_is_valid(song, fraction):
        return False
    if fraction < min_played_fraction:
        return False
    return update_play_count(song, 0, increase)


def update_skip_count_on_play(
    song: "Song",
    fraction: float,
    full_played_fraction: float = DEFAULT_FULL_PLAYED_FRACTION,
    incognito: bool = False,
    increase: int = 1,
) -> bool:
    """Count a skip unless the song was (nearly) fully played."""
    if incognito or not _fraction_is_valid(song, fraction):
        return False
    if fraction > full_played_fraction:
        return False
    return update_skip_count(song, 0, increase)


def update_last_played_on_play(
    song: "Song",
    fraction: float,
    min_played_fraction: float = DEFAULT_MIN_PLAYED_FRACTION,
    incognito: bool = False,
    timestamp: int = 0,
) -> bool:
    """Stamp the song as played at ``timestamp`` (0 means now)."""
    if incognito or not _fraction_is_valid(song, fraction):
        return False
    if fraction < min_played_fraction:
        return False
    if timestamp == 0:
        timestamp = int(time.time())
    return update_last_played(song, timestamp, 0)
