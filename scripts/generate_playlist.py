from __future__ import annotations
import json
from tastematch.config import load_config
from tastematch.engine import playlist_order
from tastematch.store import RankingStore

# Creating the playlist at the music service is left to the caller;
# this prints the URIs in insertion order.
if __name__ == "__main__":
    cfg = load_config()
    store = RankingStore.from_config(cfg)
    uris = playlist_order(store.snapshot())
    store.close()
    print(json.dumps(uris, indent=2))
