"""
Immutable view of the ranking table handed to the compatibility engine.

The engine never talks to a database. Callers (usually
:class:`tastematch.store.RankingStore`) materialize users, songs and rankings
into a :class:`RankingSnapshot`, which validates the data once on the way in.
Anything that would make the report meaningless is rejected here with a
:class:`MalformedRankingError` instead of being dropped or coerced later.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
from loguru import logger

from tastematch.errors import MalformedRankingError, UnknownUserError

RANKING_COLUMNS = ["user_id", "song_id", "rank"]
SONG_COLUMNS = ["song_id", "name", "artist", "source_uri", "cover_image_uri"]
USER_COLUMNS = ["user_id", "display_name"]
JOINED_COLUMNS = ["user_id", "song_id", "rank", "song_name", "artist"]

_OPTIONAL_SONG_COLUMNS = {"source_uri", "cover_image_uri"}


def _frame(df: pd.DataFrame, columns: List[str], label: str, optional: Iterable[str] = ()) -> pd.DataFrame:
    """Select the expected columns, filling optional ones with None."""
    df = df.copy()
    for col in optional:
        if col not in df.columns:
            df[col] = None
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise MalformedRankingError(f"{label} table is missing columns: {', '.join(missing)}")
    return df[columns].reset_index(drop=True)


def _sample(df: pd.DataFrame, limit: int = 3) -> str:
    return ", ".join(str(r) for r in df.head(limit).to_dict(orient="records"))


class RankingSnapshot:
    """
    Users, songs and rankings as three DataFrames.

    Args:
        rankings: columns ``user_id, song_id, rank``
        songs: columns ``song_id, name, artist`` (``source_uri`` and
            ``cover_image_uri`` optional)
        users: columns ``user_id, display_name``
    """

    def __init__(self, rankings: pd.DataFrame, songs: pd.DataFrame, users: pd.DataFrame):
        self.rankings = _frame(rankings, RANKING_COLUMNS, "rankings")
        self.songs = _frame(songs, SONG_COLUMNS, "songs", optional=_OPTIONAL_SONG_COLUMNS)
        self.users = _frame(users, USER_COLUMNS, "users")
        self._validate()
        logger.debug(
            f"Snapshot: {len(self.users)} users, {len(self.songs)} songs, {len(self.rankings)} rankings"
        )

    @classmethod
    def from_records(cls, rankings: List[Dict[str, Any]], songs: List[Dict[str, Any]],
                     users: List[Dict[str, Any]]) -> "RankingSnapshot":
        """Build a snapshot from plain lists of dicts."""
        return cls(
            pd.DataFrame(rankings, columns=RANKING_COLUMNS),
            pd.DataFrame(songs) if songs else pd.DataFrame(columns=SONG_COLUMNS),
            pd.DataFrame(users, columns=USER_COLUMNS),
        )

    @classmethod
    def from_parquet(cls, directory: str | Path) -> "RankingSnapshot":
        directory = Path(directory)
        return cls(
            pd.read_parquet(directory / "rankings.parquet"),
            pd.read_parquet(directory / "songs.parquet"),
            pd.read_parquet(directory / "users.parquet"),
        )

    def to_parquet(self, directory: str | Path) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        self.rankings.to_parquet(directory / "rankings.parquet", index=False)
        self.songs.to_parquet(directory / "songs.parquet", index=False)
        self.users.to_parquet(directory / "users.parquet", index=False)
        logger.info(f"Snapshot written to {directory}")
        return directory

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------

    def _validate(self):
        songs, users, rankings = self.songs, self.users, self.rankings

        if songs["song_id"].isna().any() or songs["song_id"].duplicated().any():
            raise MalformedRankingError("songs table has missing or duplicate song_id values")
        dup_identity = songs.duplicated(["name", "artist"], keep=False)
        if dup_identity.any():
            raise MalformedRankingError(
                f"songs share a (name, artist) identity: {_sample(songs[dup_identity])}"
            )
        # pandas joins match missing keys with each other, SQL never does
        missing_identity = songs[["name", "artist"]].isna().any(axis=1)
        if missing_identity.any():
            raise MalformedRankingError(
                f"songs are missing a name or artist: {_sample(songs[missing_identity])}"
            )
        if users["user_id"].isna().any() or users["user_id"].duplicated().any():
            raise MalformedRankingError("users table has missing or duplicate user_id values")

        if rankings.empty:
            self.rankings = rankings.astype({"rank": "int64"})
            return

        ranks = pd.to_numeric(rankings["rank"], errors="coerce")
        bad_rank = ranks.isna() | (ranks % 1 != 0) | (ranks <= 0)
        if bad_rank.any():
            raise MalformedRankingError(
                f"ranks must be positive integers: {_sample(rankings[bad_rank])}"
            )
        rankings = rankings.assign(rank=ranks.astype("int64"))

        unknown_song = ~rankings["song_id"].isin(songs["song_id"])
        if unknown_song.any():
            raise MalformedRankingError(
                f"rankings reference nonexistent songs: {_sample(rankings[unknown_song])}"
            )
        unknown_user = ~rankings["user_id"].isin(users["user_id"])
        if unknown_user.any():
            raise MalformedRankingError(
                f"rankings reference nonexistent users: {_sample(rankings[unknown_user])}"
            )

        dup_rank = rankings.duplicated(["user_id", "rank"], keep=False)
        if dup_rank.any():
            raise MalformedRankingError(
                f"users have duplicate ranks: {_sample(rankings[dup_rank])}"
            )
        dup_song = rankings.duplicated(["user_id", "song_id"], keep=False)
        if dup_song.any():
            raise MalformedRankingError(
                f"users rank the same song more than once: {_sample(rankings[dup_song])}"
            )

        self.rankings = rankings

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------

    def joined(self, active_user_id: Optional[Any] = None) -> pd.DataFrame:
        """
        The flat ``(user_id, song_id, rank, song_name, artist)`` tuples.

        Every user's tuples are returned either way; passing ``active_user_id``
        only checks that the user exists (raising :class:`UnknownUserError`).
        """
        if active_user_id is not None:
            self.require_user(active_user_id)
        songs = self.songs[["song_id", "name", "artist"]].rename(columns={"name": "song_name"})
        if self.rankings.empty:
            return pd.DataFrame(columns=JOINED_COLUMNS)
        joined = self.rankings.merge(songs, on="song_id", how="inner", validate="many_to_one")
        return joined[JOINED_COLUMNS]

    def display_names(self) -> Dict[Any, str]:
        return dict(zip(self.users["user_id"], self.users["display_name"]))

    def require_user(self, user_id: Any):
        if not self.users["user_id"].eq(user_id).any():
            raise UnknownUserError(f"user {user_id!r} is not in the snapshot")

    def user_id_for(self, display_name: str) -> Optional[Any]:
        match = self.users.loc[self.users["display_name"] == display_name, "user_id"]
        if match.empty:
            return None
        return match.iloc[0]
