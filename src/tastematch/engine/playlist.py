"""
Song ordering for the shared group playlist.

Each song gets ``rankers + 0.15 * (11 - avg_rank)`` where ``rankers`` is the
number of users who ranked it; unranked songs score zero. Songs are returned
lowest score first, ties by name, matching the order the playlist endpoint
has always inserted them in.
"""

from __future__ import annotations

from typing import List

import pandas as pd
from loguru import logger

from tastematch.engine.snapshot import RankingSnapshot

RANK_BONUS = 0.15
RANK_CEILING = 11


def song_popularity(snapshot: RankingSnapshot) -> pd.DataFrame:
    """All songs with ``rankers``, ``avg_rank`` and ``popularity``, in playlist order."""
    songs = snapshot.songs.copy()
    if snapshot.rankings.empty:
        songs["rankers"] = 0
        songs["avg_rank"] = float("nan")
    else:
        per_song = snapshot.rankings.groupby("song_id").agg(
            rankers=("user_id", "size"),
            avg_rank=("rank", "mean"),
        )
        songs = songs.merge(per_song, left_on="song_id", right_index=True, how="left")
        songs["rankers"] = songs["rankers"].fillna(0).astype("int64")

    songs["popularity"] = songs["rankers"] + (RANK_BONUS * (RANK_CEILING - songs["avg_rank"])).fillna(0.0)
    return songs.sort_values(["popularity", "name", "song_id"], kind="mergesort").reset_index(drop=True)


def playlist_order(snapshot: RankingSnapshot) -> List[str]:
    """Song URIs in playlist order. Songs without a URI are skipped."""
    ordered = song_popularity(snapshot)
    uris = [uri for uri in ordered["source_uri"].tolist() if pd.notna(uri) and uri]
    logger.info(f"Playlist order: {len(uris)} songs")
    return uris
