"""Statistics domain - validation and updates of per-song counters."""

from .rules import (
    COUNT_MIN,
    DEFAULT_FULL_PLAYED_FRACTION,
    DEFAULT_MIN_PLAYED_FRACTION,
    RATING_MAX,
    RATING_MIN,
    SCORE_MAX,
    SCORE_MIN,
    clamp_played_fraction,
    last_played_is_valid,
    play_count_is_valid,
    rating_invert,
    rating_is_valid,
    score_invert,
    score_is_valid,
    skip_count_is_valid,
    update_last_played,
    update_last_played_on_play,
    update_play_count,
    update_play_count_on_play,
    update_rating,
    update_score,
    update_score_on_play,
    update_skip_count,
    update_skip_count_on_play,
)

__all__ = [
    # Ranges
    "COUNT_MIN",
    "DEFAULT_FULL_PLAYED_FRACTION",
    "DEFAULT_MIN_PLAYED_FRACTION",
    "RATING_MAX",
    "RATING_MIN",
    "SCORE_MAX",
    "SCORE_MIN",
    # Validation
    "rating_is_valid",
    "score_is_valid",
    "play_count_is_valid",
    "skip_count_is_valid",
    "last_played_is_valid",
    "rating_invert",
    "score_invert",
    # Updates
    "update_rating",
    "update_score",
    "update_play_count",
    "update_skip_count",
    "update_last_played",
    # On-play rules
    "clamp_played_fraction",
    "update_score_on_play",
    "update_play_count_on_play",
    "update_skip_count_on_play",
    "update_last_played_on_play",
]
