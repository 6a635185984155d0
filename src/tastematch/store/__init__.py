"""
Store module for tastematch.

Persists users, songs and rankings and produces snapshots for the engine.
"""

from .ranking_store import RankingStore, SongInput, User

__all__ = ["RankingStore", "SongInput", "User"]
