"""
Overlap aggregation between users' ranked song lists.

Two hash-joins over the flat ranking tuples drive everything:

- on ``song_id``: both users ranked the same song
- on ``artist``: both users ranked *some* song by the same artist. Every
  pairing of user A's songs by that artist with user B's songs by that
  artist counts, so an artist with many ranked songs contributes many rows.

Each join row is one rank-distance sample ``|rank_a - rank_b|``. Rows are
then folded per user pair into the raw overlap statistics.

Pair rows always use ``user_id_a``/``user_id_b``. In the all-pairs view side
``a`` is the smaller user id; in the single-user view side ``a`` is the
active user.
"""

from __future__ import annotations

from typing import Any

import pandas as pd
from loguru import logger

PAIR_KEYS = ["user_id_a", "user_id_b"]

SONG_PAIR_COLUMNS = [
    "user_id_a", "user_id_b", "song_id", "song_name", "artist",
    "rank_a", "rank_b", "rank_difference",
]
ARTIST_PAIR_COLUMNS = [
    "user_id_a", "user_id_b", "artist",
    "song_name_a", "rank_a", "song_name_b", "rank_b", "rank_difference",
]
STAT_COLUMNS = [
    "user_id_a", "user_id_b",
    "overlapping_songs", "song_rank_diff",
    "overlapping_artists", "total_songs_shared_artists", "artist_rank_diff",
]


def _song_join(left: pd.DataFrame, right: pd.DataFrame) -> pd.DataFrame:
    if left.empty or right.empty:
        return pd.DataFrame(columns=SONG_PAIR_COLUMNS)
    right = right[["user_id", "song_id", "rank"]]
    rows = left.merge(right, on="song_id", suffixes=("_a", "_b"))
    return rows.assign(rank_difference=(rows["rank_a"] - rows["rank_b"]).abs())


def _artist_join(left: pd.DataFrame, right: pd.DataFrame) -> pd.DataFrame:
    if left.empty or right.empty:
        return pd.DataFrame(columns=ARTIST_PAIR_COLUMNS)
    cols = ["user_id", "artist", "song_name", "rank"]
    rows = left[cols].merge(right[cols], on="artist", suffixes=("_a", "_b"))
    return rows.assign(rank_difference=(rows["rank_a"] - rows["rank_b"]).abs())


def _finish(rows: pd.DataFrame, columns) -> pd.DataFrame:
    if rows.empty:
        return pd.DataFrame(columns=columns)
    return rows[columns].reset_index(drop=True)


def song_pairs(joined: pd.DataFrame) -> pd.DataFrame:
    """Every (pair, shared song) row across all users, smaller user id first."""
    rows = _song_join(joined, joined)
    rows = rows[rows["user_id_a"] < rows["user_id_b"]]
    return _finish(rows, SONG_PAIR_COLUMNS)


def artist_pairs(joined: pd.DataFrame) -> pd.DataFrame:
    """Every (pair, song-by-shared-artist pairing) row across all users."""
    rows = _artist_join(joined, joined)
    rows = rows[rows["user_id_a"] < rows["user_id_b"]]
    return _finish(rows, ARTIST_PAIR_COLUMNS)


def _split(joined: pd.DataFrame, active_user_id: Any):
    is_active = joined["user_id"] == active_user_id
    return joined[is_active], joined[~is_active]


def active_song_pairs(joined: pd.DataFrame, active_user_id: Any) -> pd.DataFrame:
    """Shared-song rows between the active user (side a) and every other user."""
    active, others = _split(joined, active_user_id)
    return _finish(_song_join(active, others), SONG_PAIR_COLUMNS)


def active_artist_pairs(joined: pd.DataFrame, active_user_id: Any) -> pd.DataFrame:
    """Shared-artist rows between the active user (side a) and every other user."""
    active, others = _split(joined, active_user_id)
    return _finish(_artist_join(active, others), ARTIST_PAIR_COLUMNS)


def aggregate_overlap(song_rows: pd.DataFrame, artist_rows: pd.DataFrame) -> pd.DataFrame:
    """
    Fold pair rows into one statistics row per user pair.

    Args:
        song_rows: output of :func:`song_pairs` or :func:`active_song_pairs`
        artist_rows: output of :func:`artist_pairs` or :func:`active_artist_pairs`

    Returns:
        DataFrame with :data:`STAT_COLUMNS`. A pair only appears when it
        shares at least one song or one artist. The side with no rows
        contributes zero counts and a zero average.
    """
    frames = []
    if not song_rows.empty:
        frames.append(
            song_rows.groupby(PAIR_KEYS).agg(
                overlapping_songs=("song_id", "size"),
                song_rank_diff=("rank_difference", "mean"),
            )
        )
    if not artist_rows.empty:
        frames.append(
            artist_rows.groupby(PAIR_KEYS).agg(
                overlapping_artists=("artist", "nunique"),
                total_songs_shared_artists=("artist", "size"),
                artist_rank_diff=("rank_difference", "mean"),
            )
        )
    if not frames:
        return pd.DataFrame(columns=STAT_COLUMNS)

    stats = pd.concat(frames, axis=1, join="outer")
    for col in ("overlapping_songs", "overlapping_artists", "total_songs_shared_artists"):
        stats[col] = stats[col].fillna(0).astype("int64") if col in stats else 0
    for col in ("song_rank_diff", "artist_rank_diff"):
        stats[col] = stats[col].fillna(0.0).astype("float64") if col in stats else 0.0

    stats = stats[(stats["overlapping_songs"] > 0) | (stats["overlapping_artists"] > 0)]
    stats = stats.reset_index()[STAT_COLUMNS]
    logger.debug(
        f"Aggregated {len(song_rows)} song rows and {len(artist_rows)} artist rows into {len(stats)} pairs"
    )
    return stats
