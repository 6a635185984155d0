"""
Compatibility reports built from scored user pairs.

Two views share the same pipeline (join -> aggregate -> score -> sort):

- the overview: the best pairs across all users, at most
  :data:`OVERVIEW_LIMIT` of them
- the per-user matches: every user that overlaps with one active user

Each record carries the songs and artist pairings behind its score, closest
rank agreement first.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from loguru import logger

from tastematch.engine.overlap import (
    PAIR_KEYS,
    active_artist_pairs,
    active_song_pairs,
    aggregate_overlap,
    artist_pairs,
    song_pairs,
)
from tastematch.engine.scoring import round_half_up, score_pairs, sort_pairs
from tastematch.engine.snapshot import RankingSnapshot
from tastematch.errors import UnknownUserError

OVERVIEW_LIMIT = 5

# pair-row column -> output key
OVERVIEW_SONG_FIELDS = {
    "song_name": "song_name",
    "artist": "artist",
    "rank_a": "user1_rank",
    "rank_b": "user2_rank",
    "rank_difference": "rank_difference",
}
OVERVIEW_ARTIST_FIELDS = {
    "artist": "artist",
    "song_name_a": "user1_song",
    "rank_a": "user1_rank",
    "song_name_b": "user2_song",
    "rank_b": "user2_rank",
    "rank_difference": "rank_difference",
}
USER_SONG_FIELDS = {
    "song_name": "song_name",
    "artist": "artist",
    "rank_a": "active_user_rank",
    "rank_b": "other_user_rank",
    "rank_difference": "rank_difference",
}
USER_ARTIST_FIELDS = {
    "artist": "artist",
    "song_name_a": "active_user_song",
    "rank_a": "active_user_rank",
    "song_name_b": "other_user_song",
    "rank_b": "other_user_rank",
    "rank_difference": "rank_difference",
}

_SONG_DETAIL_ORDER = ["rank_difference", "rank_a", "rank_b", "song_name", "artist"]
_ARTIST_DETAIL_ORDER = ["rank_difference", "rank_a", "rank_b", "artist", "song_name_a", "song_name_b"]

Details = Dict[Tuple[Any, Any], List[Dict[str, Any]]]


@dataclass
class MusicTasteOverview:
    """One row of the all-users overview. ``user_1`` has the smaller user id."""

    user_1: str
    user_2: str
    overlapping_songs: int
    song_rank_diff: float
    song_relationship_strength: float
    overlapping_artists: int
    total_songs_shared_artists: int
    artist_rank_diff: float
    combined_score: float
    overlapping_song_details: List[Dict[str, Any]] = field(default_factory=list)
    overlapping_artist_details: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MusicTasteIndividual:
    """One match of the active user."""

    other_user_name: str
    overlapping_songs: int
    song_rank_diff: float
    song_relationship_strength: float
    overlapping_artists: int
    total_songs_shared_artists: int
    artist_rank_diff: float
    combined_score: float
    overlapping_song_details: List[Dict[str, Any]] = field(default_factory=list)
    overlapping_artist_details: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _details(rows: pd.DataFrame, fields: Dict[str, str], order: List[str]) -> Details:
    """Group pair rows into ordered detail dicts keyed by (user_id_a, user_id_b)."""
    if rows.empty:
        return {}
    rows = rows.sort_values(by=PAIR_KEYS + order, kind="mergesort")
    out: Details = {}
    for key, group in rows.groupby(PAIR_KEYS, sort=False):
        out[tuple(key)] = group[list(fields)].rename(columns=fields).to_dict(orient="records")
    return out


def _restrict(rows: pd.DataFrame, ranked: pd.DataFrame) -> pd.DataFrame:
    if rows.empty:
        return rows
    keep = pd.MultiIndex.from_frame(ranked[PAIR_KEYS])
    return rows[pd.MultiIndex.from_frame(rows[PAIR_KEYS]).isin(keep)]


def _scores(row, song_details: Details, artist_details: Details) -> Dict[str, Any]:
    key = (row.user_id_a, row.user_id_b)
    return dict(
        overlapping_songs=int(row.overlapping_songs),
        song_rank_diff=round_half_up(row.song_rank_diff),
        song_relationship_strength=round_half_up(row.song_relationship_strength),
        overlapping_artists=int(row.overlapping_artists),
        total_songs_shared_artists=int(row.total_songs_shared_artists),
        artist_rank_diff=round_half_up(row.artist_rank_diff),
        combined_score=round_half_up(row.combined_score),
        overlapping_song_details=song_details.get(key, []),
        overlapping_artist_details=artist_details.get(key, []),
    )


def _pipeline(snapshot: RankingSnapshot, active_user_id: Optional[Any] = None):
    joined = snapshot.joined(active_user_id)
    if active_user_id is None:
        songs, artists = song_pairs(joined), artist_pairs(joined)
    else:
        songs = active_song_pairs(joined, active_user_id)
        artists = active_artist_pairs(joined, active_user_id)
    ranked = sort_pairs(score_pairs(aggregate_overlap(songs, artists)))
    return songs, artists, ranked


def score_table(snapshot: RankingSnapshot, active_user_id: Optional[Any] = None) -> pd.DataFrame:
    """
    Sorted, unrounded pair statistics.

    With ``active_user_id`` only pairs involving that user are returned and
    the active user is always ``user_id_a``.
    """
    return _pipeline(snapshot, active_user_id)[2]


def music_taste_overview(snapshot: RankingSnapshot, limit: int = OVERVIEW_LIMIT) -> List[MusicTasteOverview]:
    """
    Top user pairs across the whole ranking table.

    Args:
        snapshot: validated ranking data
        limit: maximum number of pairs returned

    Returns:
        At most ``limit`` records, best ``combined_score`` first.
    """
    logger.info("Building music taste overview")
    songs, artists, ranked = _pipeline(snapshot)
    ranked = ranked.head(limit)
    if ranked.empty:
        logger.warning("No overlapping users found")
        return []

    # details only for the pairs that made the cut
    song_details = _details(_restrict(songs, ranked), OVERVIEW_SONG_FIELDS, _SONG_DETAIL_ORDER)
    artist_details = _details(_restrict(artists, ranked), OVERVIEW_ARTIST_FIELDS, _ARTIST_DETAIL_ORDER)

    names = snapshot.display_names()
    report = [
        MusicTasteOverview(
            user_1=names[row.user_id_a],
            user_2=names[row.user_id_b],
            **_scores(row, song_details, artist_details),
        )
        for row in ranked.itertuples(index=False)
    ]
    logger.success(f"Overview built: {len(report)} pairs")
    return report


def music_taste_for_user(snapshot: RankingSnapshot, active_user_id: Any) -> List[MusicTasteIndividual]:
    """Every user overlapping with ``active_user_id``, best match first. Not truncated."""
    snapshot.require_user(active_user_id)
    logger.info(f"Building music taste matches for user {active_user_id}")
    songs, artists, ranked = _pipeline(snapshot, active_user_id)
    if ranked.empty:
        logger.warning(f"No matches for user {active_user_id}")
        return []

    song_details = _details(songs, USER_SONG_FIELDS, _SONG_DETAIL_ORDER)
    artist_details = _details(artists, USER_ARTIST_FIELDS, _ARTIST_DETAIL_ORDER)

    names = snapshot.display_names()
    report = [
        MusicTasteIndividual(
            other_user_name=names[row.user_id_b],
            **_scores(row, song_details, artist_details),
        )
        for row in ranked.itertuples(index=False)
    ]
    logger.success(f"Matches built for user {active_user_id}: {len(report)} users")
    return report


class CompatibilityEngine:
    """
    Stateless entry point for the reports.

    Holds no data between calls; every method takes the snapshot to score.
    """

    overview_limit = OVERVIEW_LIMIT

    def overview(self, snapshot: RankingSnapshot) -> List[MusicTasteOverview]:
        return music_taste_overview(snapshot, limit=self.overview_limit)

    def matches_for_user(self, snapshot: RankingSnapshot, active_user_id: Any) -> List[MusicTasteIndividual]:
        return music_taste_for_user(snapshot, active_user_id)

    def matches_for_user_name(self, snapshot: RankingSnapshot, display_name: str) -> List[MusicTasteIndividual]:
        user_id = snapshot.user_id_for(display_name)
        if user_id is None:
            raise UnknownUserError(f"no user named {display_name!r}")
        return music_taste_for_user(snapshot, user_id)

    def score_table(self, snapshot: RankingSnapshot, active_user_id: Optional[Any] = None) -> pd.DataFrame:
        return score_table(snapshot, active_user_id)
