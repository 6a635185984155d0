"""
Music-taste compatibility engine.

Pure functions over a :class:`RankingSnapshot`; no database access.
"""

from .snapshot import RankingSnapshot
from .report import (
    CompatibilityEngine,
    MusicTasteIndividual,
    MusicTasteOverview,
    music_taste_for_user,
    music_taste_overview,
    score_table,
)
from .playlist import playlist_order, song_popularity

__all__ = [
    "RankingSnapshot",
    "CompatibilityEngine",
    "MusicTasteIndividual",
    "MusicTasteOverview",
    "music_taste_for_user",
    "music_taste_overview",
    "score_table",
    "playlist_order",
    "song_popularity",
]
