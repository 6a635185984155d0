#!/usr/bin/env python
"""
Print music-taste compatibility as JSON.

Usage:
    # Top 5 pairs across all users
    python scripts/music_taste.py

    # Every match for one user
    USER_NAME=alice python scripts/music_taste.py

    # Score an exported snapshot instead of the database
    SNAPSHOT_DIR=data/snapshots/latest python scripts/music_taste.py
"""

from __future__ import annotations
import json
import os
import sys
from loguru import logger

from tastematch.config import load_config
from tastematch.engine import CompatibilityEngine, RankingSnapshot
from tastematch.errors import TasteMatchError
from tastematch.store import RankingStore


def load_snapshot(cfg) -> RankingSnapshot:
    snapshot_dir = os.getenv("SNAPSHOT_DIR")
    if snapshot_dir:
        return RankingSnapshot.from_parquet(snapshot_dir)
    store = RankingStore.from_config(cfg)
    try:
        return store.snapshot()
    finally:
        store.close()


def main():
    cfg = load_config()
    user_name = os.getenv("USER_NAME")
    engine = CompatibilityEngine()

    try:
        snapshot = load_snapshot(cfg)
        if user_name:
            report = engine.matches_for_user_name(snapshot, user_name)
        else:
            report = engine.overview(snapshot)
    except TasteMatchError as e:
        logger.error(f"Failed to build music taste report: {e}")
        sys.exit(1)

    print(json.dumps([r.to_dict() for r in report], indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
