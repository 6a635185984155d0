from __future__ import annotations
import os
from datetime import datetime, timezone
from pathlib import Path
from tastematch.config import load_config
from tastematch.store import RankingStore

if __name__ == "__main__":
    cfg = load_config()
    store = RankingStore.from_config(cfg)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    out = Path(os.getenv("OUT_DIR", Path(cfg["store"]["snapshot_dir"]) / stamp))
    store.snapshot().to_parquet(out)
    store.close()
    print("wrote snapshot", out)
