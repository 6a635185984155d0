"""
Score combination for user pairs.

Song overlap is the primary signal: ten points per shared song, minus the
average rank distance over those songs. Artist overlap adds a flat bonus per
shared artist and is penalized by the average rank distance over the
artist-sharing song pairings.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

import pandas as pd

SONG_OVERLAP_WEIGHT = 10.0
ARTIST_BONUS = 3.0
ARTIST_RANK_PENALTY = 0.5

SORT_COLUMNS = ["combined_score", "overlapping_songs", "overlapping_artists"]


def song_relationship_strength(overlapping_songs, song_rank_diff):
    return SONG_OVERLAP_WEIGHT * overlapping_songs - song_rank_diff


def combined_score(song_strength, overlapping_artists, artist_rank_diff):
    return song_strength + overlapping_artists * ARTIST_BONUS - artist_rank_diff * ARTIST_RANK_PENALTY


def score_pairs(stats: pd.DataFrame) -> pd.DataFrame:
    """Add ``song_relationship_strength`` and ``combined_score`` at full precision."""
    scored = stats.copy()
    if scored.empty:
        scored["song_relationship_strength"] = pd.Series(dtype="float64")
        scored["combined_score"] = pd.Series(dtype="float64")
        return scored
    scored["song_relationship_strength"] = song_relationship_strength(
        scored["overlapping_songs"], scored["song_rank_diff"]
    )
    scored["combined_score"] = combined_score(
        scored["song_relationship_strength"],
        scored["overlapping_artists"],
        scored["artist_rank_diff"],
    )
    return scored


def sort_pairs(scored: pd.DataFrame) -> pd.DataFrame:
    """
    Best pairs first.

    Ties on score fall back to more shared songs, then more shared artists,
    then the user ids so the order is total.
    """
    by = SORT_COLUMNS + ["user_id_a", "user_id_b"]
    ascending = [False, False, False, True, True]
    return scored.sort_values(by=by, ascending=ascending, kind="mergesort").reset_index(drop=True)


def round_half_up(value: float, places: int = 2) -> float:
    """Round for display the way SQL ``ROUND`` treats numerics (halves away from zero)."""
    quantum = Decimal(1).scaleb(-places)
    rounded = float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))
    return rounded + 0.0  # -0.0 -> 0.0
