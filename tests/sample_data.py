"""Small ranking datasets shared by the engine tests."""

from tastematch.engine.snapshot import RankingSnapshot

USERS = [
    {"user_id": 1, "display_name": "alice"},
    {"user_id": 2, "display_name": "bob"},
    {"user_id": 3, "display_name": "carol"},
    {"user_id": 4, "display_name": "dave"},
]

SONGS = [
    {"song_id": 1, "name": "Song A", "artist": "Artist X", "source_uri": "spotify:track:1"},
    {"song_id": 2, "name": "Song B", "artist": "Artist X", "source_uri": "spotify:track:2"},
    {"song_id": 3, "name": "Song C", "artist": "Artist Y", "source_uri": "spotify:track:3"},
    {"song_id": 6, "name": "Song F", "artist": "Artist Y", "source_uri": "spotify:track:6"},
    {"song_id": 7, "name": "Song G", "artist": "Artist Q", "source_uri": "spotify:track:7"},
    {"song_id": 8, "name": "Song H", "artist": "Artist Z", "source_uri": "spotify:track:8"},
    {"song_id": 9, "name": "Unranked", "artist": "Nobody", "source_uri": "spotify:track:9"},
]

# alice and bob share an identical top 3; carol only shares Artist Y;
# dave shares nothing with anyone.
RANKINGS = [
    {"user_id": 1, "song_id": 1, "rank": 1},
    {"user_id": 1, "song_id": 2, "rank": 2},
    {"user_id": 1, "song_id": 3, "rank": 3},
    {"user_id": 2, "song_id": 1, "rank": 1},
    {"user_id": 2, "song_id": 2, "rank": 2},
    {"user_id": 2, "song_id": 3, "rank": 3},
    {"user_id": 3, "song_id": 6, "rank": 1},
    {"user_id": 3, "song_id": 7, "rank": 2},
    {"user_id": 4, "song_id": 8, "rank": 1},
]


def base_snapshot() -> RankingSnapshot:
    return RankingSnapshot.from_records(RANKINGS, SONGS, USERS)


def crowd_snapshot(n_users: int = 7) -> RankingSnapshot:
    """Every user ranks the same single song first."""
    users = [{"user_id": i, "display_name": f"user{i}"} for i in range(1, n_users + 1)]
    songs = [{"song_id": 1, "name": "Anthem", "artist": "Band"}]
    rankings = [{"user_id": i, "song_id": 1, "rank": 1} for i in range(1, n_users + 1)]
    return RankingSnapshot.from_records(rankings, songs, users)
