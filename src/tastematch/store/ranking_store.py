"""
SQLAlchemy-backed store for users, songs and per-user rankings.

This is the collaborator that feeds the engine: it owns persistence and
transactions, and hands out :class:`RankingSnapshot` objects. A user's song
list is always written in one transaction so a snapshot never sees half of a
batch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd
import sqlalchemy as sa
from loguru import logger
from sqlalchemy import text

from tastematch.config import engine_from_env
from tastematch.engine.snapshot import RankingSnapshot
from tastematch.errors import MalformedRankingError, UnknownUserError

metadata = sa.MetaData()

users_table = sa.Table(
    "users", metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("display_name", sa.Text, nullable=False, unique=True),
)

songs_table = sa.Table(
    "songs", metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("name", sa.Text, nullable=False),
    sa.Column("artist", sa.Text, nullable=False),
    sa.Column("uri", sa.Text),
    sa.Column("album_cover_url", sa.Text),
    sa.UniqueConstraint("name", "artist", name="uq_songs_name_artist"),
)

rankings_table = sa.Table(
    "rankings", metadata,
    sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), primary_key=True),
    sa.Column("rank", sa.Integer, primary_key=True),
    sa.Column("song_id", sa.Integer, sa.ForeignKey("songs.id"), nullable=False),
    sa.UniqueConstraint("user_id", "song_id", name="uq_rankings_user_song"),
    sa.CheckConstraint("rank > 0", name="ck_rankings_rank_positive"),
)

UPSERT_SONG = text("""
    INSERT INTO songs (name, artist, uri, album_cover_url)
    VALUES (:name, :artist, :uri, :album_cover_url)
    ON CONFLICT (name, artist) DO UPDATE SET
        uri = EXCLUDED.uri,
        album_cover_url = EXCLUDED.album_cover_url
""")

UPSERT_RANKING = text("""
    INSERT INTO rankings (user_id, song_id, rank)
    VALUES (:user_id, :song_id, :rank)
    ON CONFLICT (user_id, rank) DO UPDATE SET
        song_id = EXCLUDED.song_id
""")


@dataclass
class User:
    id: int
    display_name: str


@dataclass
class SongInput:
    """One entry of a user's ranked list as submitted by the client."""

    name: str
    artist: str
    rank: int
    source_uri: Optional[str] = None
    cover_image_uri: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SongInput":
        """Accepts both our field names and the client's ``uri``/``album_cover_url``."""
        return cls(
            name=data["name"],
            artist=data["artist"],
            rank=data.get("rank"),
            source_uri=data.get("source_uri", data.get("uri")),
            cover_image_uri=data.get("cover_image_uri", data.get("album_cover_url")),
        )


def _check_batch(songs: List[SongInput]):
    ranks = set()
    identities = set()
    for song in songs:
        if isinstance(song.rank, bool) or not isinstance(song.rank, int) or song.rank <= 0:
            raise MalformedRankingError(f"rank must be a positive integer, got {song.rank!r} for {song.name!r}")
        if song.rank in ranks:
            raise MalformedRankingError(f"rank {song.rank} is used more than once")
        identity = (song.name, song.artist)
        if identity in identities:
            raise MalformedRankingError(f"song {song.name!r} by {song.artist!r} is ranked more than once")
        ranks.add(song.rank)
        identities.add(identity)


class RankingStore:
    """
    Ranking persistence over any SQLAlchemy engine (PostgreSQL in production,
    SQLite for tests and local runs).

    Args:
        engine: SQLAlchemy engine
    """

    def __init__(self, engine: sa.Engine):
        self.engine = engine

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "RankingStore":
        return cls(engine_from_env(cfg))

    @classmethod
    def from_url(cls, url: str) -> "RankingStore":
        return cls(sa.create_engine(url, pool_pre_ping=True))

    def create_schema(self):
        metadata.create_all(self.engine)
        logger.info("Ranking schema ensured (users/songs/rankings)")

    def close(self):
        self.engine.dispose()

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------

    def get_user(self, display_name: str) -> Optional[User]:
        with self.engine.connect() as cx:
            row = cx.execute(
                text("SELECT id, display_name FROM users WHERE display_name = :name"),
                {"name": display_name},
            ).fetchone()
        return User(id=row.id, display_name=row.display_name) if row else None

    def get_or_create_user(self, display_name: str) -> User:
        user = self.get_user(display_name)
        if user:
            return user

        with self.engine.begin() as cx:
            cx.execute(
                text("""
                    INSERT INTO users (display_name) VALUES (:name)
                    ON CONFLICT (display_name) DO NOTHING
                """),
                {"name": display_name},
            )
        logger.debug(f"Created user {display_name!r}")
        return self.get_user(display_name)

    # ------------------------------------------------------------------
    # rankings
    # ------------------------------------------------------------------

    def save_songs(self, user_id: int, songs: Iterable[SongInput | Dict[str, Any]]) -> int:
        """
        Apply a user's ranked song list as one all-or-nothing batch.

        Songs are upserted by ``(name, artist)``, refreshing their URIs. Each
        ranking is upserted on ``(user_id, rank)``; a song the user already
        ranked elsewhere is moved rather than duplicated. Ranks not mentioned
        in the batch are left alone.

        Returns:
            number of rankings written
        """
        batch = [s if isinstance(s, SongInput) else SongInput.from_dict(s) for s in songs]
        _check_batch(batch)

        with self.engine.begin() as cx:
            exists = cx.execute(text("SELECT 1 FROM users WHERE id = :id"), {"id": user_id}).fetchone()
            if not exists:
                raise UnknownUserError(f"user {user_id!r} does not exist")

            for song in batch:
                cx.execute(UPSERT_SONG, {
                    "name": song.name,
                    "artist": song.artist,
                    "uri": song.source_uri,
                    "album_cover_url": song.cover_image_uri,
                })
                song_id = cx.execute(
                    text("SELECT id FROM songs WHERE name = :name AND artist = :artist"),
                    {"name": song.name, "artist": song.artist},
                ).scalar_one()

                cx.execute(
                    text("DELETE FROM rankings WHERE user_id = :user_id AND song_id = :song_id AND rank <> :rank"),
                    {"user_id": user_id, "song_id": song_id, "rank": song.rank},
                )
                cx.execute(UPSERT_RANKING, {"user_id": user_id, "song_id": song_id, "rank": song.rank})

        logger.success(f"Saved {len(batch)} rankings for user {user_id}")
        return len(batch)

    def get_songs_for_user(self, display_name: str) -> List[Dict[str, Any]]:
        """The user's ranked songs, best rank first."""
        with self.engine.connect() as cx:
            rows = cx.execute(
                text("""
                    SELECT s.name, s.artist, s.uri, s.album_cover_url, r.rank
                    FROM songs s
                    JOIN rankings r ON s.id = r.song_id
                    JOIN users u ON r.user_id = u.id
                    WHERE u.display_name = :name
                    ORDER BY r.rank
                """),
                {"name": display_name},
            ).fetchall()

        return [
            dict(
                key=f"{row.name}{row.artist}",
                name=row.name,
                artist=row.artist,
                source_uri=row.uri,
                cover_image_uri=row.album_cover_url,
                rank=row.rank,
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> RankingSnapshot:
        """Read users, songs and rankings inside one transaction."""
        with self.engine.begin() as cx:
            users = pd.read_sql(text("SELECT id AS user_id, display_name FROM users ORDER BY id"), cx)
            songs = pd.read_sql(text("""
                SELECT id AS song_id, name, artist,
                       uri AS source_uri, album_cover_url AS cover_image_uri
                FROM songs ORDER BY id
            """), cx)
            rankings = pd.read_sql(
                text("SELECT user_id, song_id, rank FROM rankings ORDER BY user_id, rank"), cx
            )
        logger.debug(f"Read snapshot: {len(users)} users, {len(songs)} songs, {len(rankings)} rankings")
        return RankingSnapshot(rankings, songs, users)

    def get_stats(self) -> Dict[str, int]:
        with self.engine.connect() as cx:
            return {
                table: cx.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()
                for table in ("users", "songs", "rankings")
            }
