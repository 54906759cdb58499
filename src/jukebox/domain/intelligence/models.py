"""
Parameters of the two song selection stages.

Both records are plain values rebuilt from settings at the start of each
selection run by ``song_filter_from_settings`` and
``song_modifiers_from_settings``.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jukebox.core.settings import Settings


@dataclass
class SongFilter:
    """Parameters of the filter stage.

    Attributes:
        recent_artists: How many of the most recent artists exclude their songs
        remove_recents_amount: Fixed number of recently played songs to remove
        remove_recents_percentage: Share (0-100) of the filtered list to remove
        rating_include_zero: Keep unrated songs regardless of the rating range
        *_invert: Flip the comparison of the respective threshold
        last_played_threshold: Seconds since last played
    """

    recent_artists: int = 0
    remove_recents_amount: int = 0
    remove_recents_percentage: float = 50.0

    use_rating: bool = True
    use_score: bool = True
    use_play_count: bool = False
    use_skip_count: bool = False
    use_last_played: bool = False

    rating_include_zero: bool = True

    play_count_invert: bool = False
    skip_count_invert: bool = False
    last_played_invert: bool = False

    rating_min: int = 50
    rating_max: int = 100
    score_min: float = 25.0
    score_max: float = 100.0
    play_count_threshold: int = 0
    skip_count_threshold: int = 0
    last_played_threshold: int = 0


@dataclass
class SongModifiers:
    """Parameters of the weighted draw stage.

    For each statistic: whether it contributes entries, whether low values
    are favoured, and a user multiplier (0-10) on top of the internal factor.
    ``default_rating`` replaces the rating of unrated songs.
    """

    use_rating: bool = True
    use_score: bool = False
    use_play_count: bool = False
    use_skip_count: bool = False
    use_last_played: bool = True

    invert_rating: bool = False
    invert_score: bool = False
    invert_play_count: bool = False
    invert_skip_count: bool = True
    invert_last_played: bool = False

    rating_multiplier: float = 1.0
    score_multiplier: float = 1.0
    play_count_multiplier: float = 1.0
    skip_count_multiplier: float = 1.0
    last_played_multiplier: float = 1.0

    default_rating: int = 0


def song_filter_from_settings(settings: "Settings") -> SongFilter:
    """Build the filter parameters from the FilterOptions group."""
    get = settings.get
    return SongFilter(
        recent_artists=get("RemoveSameRecentArtist"),
        remove_recents_amount=get("AmountOfRecentsToRemove"),
        remove_recents_percentage=get("PercentageOfRecentsToRemove"),
        use_rating=get("EnableRating"),
        use_score=get("EnableScore"),
        use_play_count=get("EnablePlayCount"),
        use_skip_count=get("EnableSkipCount"),
        use_last_played=get("EnableLastPlayed"),
        rating_include_zero=get("RatingIncludeZero"),
        play_count_invert=get("PlayCountInvertThreshold"),
        skip_count_invert=get("SkipCountInvertThreshold"),
        last_played_invert=get("LastPlayedInvertThreshold"),
        rating_min=get("RatingMin"),
        rating_max=get("RatingMax"),
        score_min=get("ScoreMin"),
        score_max=get("ScoreMax"),
        play_count_threshold=get("PlayCountThreshold"),
        skip_count_threshold=get("SkipCountThreshold"),
        last_played_threshold=get("LastPlayedThreshold"),
    )


def song_modifiers_from_settings(settings: "Settings") -> SongModifiers:
    """Build the draw parameters from the ProbabilityModifiers group."""
    get = settings.get
    return SongModifiers(
        use_rating=get("RatingModifiesProbability"),
        use_score=get("ScoreModifiesProbability"),
        use_play_count=get("PlayCountModifiesProbability"),
        use_skip_count=get("SkipCountModifiesProbability"),
        use_last_played=get("LastPlayedModifiesProbability"),
        invert_rating=get("RatingInvertedProbability"),
        invert_score=get("ScoreInvertedProbability"),
        invert_play_count=get("PlayCountInvertedProbability"),
        invert_skip_count=get("SkipCountInvertedProbability"),
        invert_last_played=get("LastPlayedInvertedProbability"),
        rating_multiplier=get("RatingMultiplier"),
        score_multiplier=get("ScoreMultiplier"),
        play_count_multiplier=get("PlayCountMultiplier"),
        skip_count_multiplier=get("SkipCountMultiplier"),
        last_played_multiplier=get("LastPlayedMultiplier"),
        default_rating=get("DefaultRating"),
    )
