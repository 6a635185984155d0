from __future__ import annotations
from tastematch.config import load_config
from tastematch.store import RankingStore

if __name__ == "__main__":
    cfg = load_config()
    store = RankingStore.from_config(cfg)
    store.create_schema()
    print("Schema ensured (users/songs/rankings).")
    store.close()
