"""Tests for the filter stage of song selection."""

from typing import Callable

from jukebox.core.hashing import folded_hash
from jukebox.domain.intelligence import (
    SongFilter,
    filter_by_stats,
    filter_songs,
    recents_to_remove,
    remove_invalid_songs,
    remove_recent_artists,
    remove_recents,
)
from jukebox.domain.library.models import Song, SongStatus

NOW = 1_700_000_000

# Every predicate switched off
NO_FILTER = SongFilter(
    use_rating=False,
    use_score=False,
    remove_recents_percentage=0.0,
)


class TestRemoveInvalidSongs:
    def test_only_available_songs_kept(self, make_song: Callable[..., Song]):
        ok = make_song()
        missing = make_song(status=SongStatus.NOT_FOUND)
        playing = make_song(status=SongStatus.PLAYING)
        unknown = make_song(status=SongStatus.UNKNOWN)

        assert remove_invalid_songs([ok, missing, playing, unknown]) == [ok]


class TestRemoveRecentArtists:
    """Test exclusion of the most recent artists."""

    def test_first_n_artists_removed(self, make_song: Callable[..., Song]):
        """Test only artists within the window are excluded."""
        songs = {name: make_song(artist=name) for name in ("A", "B", "C", "D")}
        recent = [folded_hash(name) for name in ("A", "B", "C", "D")]

        result = remove_recent_artists(songs.values(), recent, 3)

        assert result == [songs["D"]]

    def test_artist_match_ignores_case_and_accents(self, make_song: Callable[..., Song]):
        song = make_song(artist="Beyoncé")
        assert remove_recent_artists([song], [folded_hash("BEYONCE")], 1) == []

    def test_songs_without_artist_kept(self, make_song: Callable[..., Song]):
        song = make_song()
        assert remove_recent_artists([song], [0, folded_hash("x")], 2) == [song]

    def test_zero_amount_is_identity(self, make_song: Callable[..., Song]):
        song = make_song(artist="A")
        assert remove_recent_artists([song], [folded_hash("A")], 0) == [song]


class TestFilterByStats:
    """Test the statistic range predicates."""

    def test_rating_range_with_unrated(self, make_song: Callable[..., Song]):
        low = make_song(rating=20)
        high = make_song(rating=80)
        unrated = make_song(rating=0)
        song_filter = SongFilter(use_score=False, rating_min=50, rating_max=100)

        assert filter_by_stats([low, high, unrated], song_filter, NOW) == [high, unrated]

        song_filter.rating_include_zero = False
        assert filter_by_stats([low, high, unrated], song_filter, NOW) == [high]

    def test_score_range(self, make_song: Callable[..., Song]):
        bad = make_song(score=10.0)
        good = make_song(score=60.0)
        song_filter = SongFilter(use_rating=False, score_min=25.0, score_max=100.0)

        assert filter_by_stats([bad, good], song_filter, NOW) == [good]

    def test_zero_bounds_disable_predicate(self, make_song: Callable[..., Song]):
        song = make_song(score=10.0)
        song_filter = SongFilter(use_rating=False, score_min=0.0)
        assert filter_by_stats([song], song_filter, NOW) == [song]

    def test_play_count_threshold(self, make_song: Callable[..., Song]):
        fresh = make_song(play_count=1)
        worn = make_song(play_count=10)
        song_filter = SongFilter(
            use_rating=False, use_score=False, use_play_count=True, play_count_threshold=5
        )

        assert filter_by_stats([fresh, worn], song_filter, NOW) == [worn]

        song_filter.play_count_invert = True
        assert filter_by_stats([fresh, worn], song_filter, NOW) == [fresh]

    def test_skip_count_threshold(self, make_song: Callable[..., Song]):
        skipped = make_song(skip_count=8)
        liked = make_song(skip_count=0)
        song_filter = SongFilter(
            use_rating=False,
            use_score=False,
            use_skip_count=True,
            skip_count_threshold=3,
            skip_count_invert=True,
        )

        assert filter_by_stats([skipped, liked], song_filter, NOW) == [liked]

    def test_last_played_threshold(self, make_song: Callable[..., Song]):
        """Test songs played within the threshold are removed."""
        recent = make_song(last_played=NOW - 60)
        old = make_song(last_played=NOW - 86_400)
        song_filter = SongFilter(
            use_rating=False, use_score=False, use_last_played=True, last_played_threshold=3600
        )

        assert filter_by_stats([recent, old], song_filter, NOW) == [old]

    def test_everything_disabled_is_identity(self, make_song: Callable[..., Song]):
        songs = [make_song(rating=5, score=1.0), make_song(play_count=100)]
        assert filter_by_stats(songs, NO_FILTER, NOW) == songs


class TestRecentsToRemove:
    def test_percentage_plus_amount(self):
        assert recents_to_remove(6, 50.0, 0) == 3
        assert recents_to_remove(7, 50.0, 2) == 5

    def test_bounds(self):
        assert recents_to_remove(7, 0.0, 0) == 0
        assert recents_to_remove(7, 100.0, 0) == 7
        assert recents_to_remove(0, 50.0, 1) == 1


class TestRemoveRecents:
    """Test the precedence of recently played removal."""

    def test_up_next_then_history_then_last_played(self, make_song: Callable[..., Song]):
        queued = make_song(last_played=10)
        played = make_song(last_played=20)
        newest = make_song(last_played=300)
        older = make_song(last_played=200)
        never = make_song(last_played=0)
        songs = [queued, played, newest, older, never]

        assert remove_recents(songs, [played], [queued], 3) == [older, never]

    def test_never_played_songs_not_removed(self, make_song: Callable[..., Song]):
        songs = [make_song(), make_song()]
        assert remove_recents(songs, [], [], 2) == songs

    def test_budget_counts_songs_outside_the_list(self, make_song: Callable[..., Song]):
        """Test history entries already filtered out still use the budget."""
        filtered_earlier = make_song(last_played=500)
        a = make_song(last_played=100)
        b = make_song(last_played=50)

        assert remove_recents([a, b], [filtered_earlier], [], 2) == [b]

    def test_input_not_mutated(self, make_song: Callable[..., Song]):
        songs = [make_song(last_played=5)]
        remove_recents(songs, [], [], 1)
        assert len(songs) == 1


class TestFilterSongs:
    """Test the complete filter stage."""

    def test_identity_when_every_pass_is_off(self, make_song: Callable[..., Song]):
        songs = [make_song(artist=f"artist {i}", last_played=i) for i in range(5)]
        assert filter_songs(songs, [], [], [], NO_FILTER, NOW) == songs

    def test_percentage_applies_after_artist_removal(self, make_song: Callable[..., Song]):
        """Test ten songs, four by a recent artist, half of the rest removed."""
        blocked = [make_song(artist="Recent", last_played=1000 + i) for i in range(4)]
        others = [make_song(artist=f"Other {i}", last_played=100 + i) for i in range(6)]
        song_filter = SongFilter(
            use_rating=False,
            use_score=False,
            recent_artists=1,
            remove_recents_percentage=50.0,
        )

        result = filter_songs(
            blocked + others, [], [], [folded_hash("Recent")], song_filter, NOW
        )

        assert result == others[:3]

    def test_nothing_left(self, make_song: Callable[..., Song]):
        song = make_song(status=SongStatus.NOT_FOUND)
        assert filter_songs([song], [], [], [], NO_FILTER, NOW) == []
