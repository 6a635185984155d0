#!/usr/bin/env python
"""
Save a user's ranked song list.

Usage:
    USER_NAME=alice SONGS_JSON=data/alice_top10.json python scripts/save_songs.py

SONGS_JSON holds a list of {"name", "artist", "uri", "album_cover_url", "rank"}
objects, the same shape the web client posts.
"""

from __future__ import annotations
import json
import os
import sys
from pathlib import Path
from loguru import logger

from tastematch.config import load_config
from tastematch.errors import TasteMatchError
from tastematch.store import RankingStore


def main():
    cfg = load_config()

    user_name = os.getenv("USER_NAME")
    songs_path = os.getenv("SONGS_JSON")
    if not user_name or not songs_path:
        logger.error("USER_NAME and SONGS_JSON environment variables are required")
        sys.exit(1)

    songs = json.loads(Path(songs_path).read_text(encoding="utf-8"))
    store = RankingStore.from_config(cfg)
    try:
        user = store.get_or_create_user(user_name)
        store.save_songs(user.id, songs)
    except TasteMatchError as e:
        logger.error(f"Could not save songs for {user_name}: {e}")
        sys.exit(1)
    finally:
        store.close()


if __name__ == "__main__":
    main()
