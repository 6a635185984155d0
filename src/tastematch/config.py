# src/tastematch/config.py
from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any, Dict

import sqlalchemy as sa
import yaml
from dotenv import load_dotenv
from loguru import logger

from tastematch.errors import TasteMatchError

DEFAULT_CONFIG: Dict[str, Any] = {
    "db": {
        "url_env": "DATABASE_URL",
        "driver": "postgresql+psycopg2",
        "host_env": "PGHOST",
        "port_env": "PGPORT",
        "user_env": "PGUSER",
        "pwd_env": "PGPASSWORD",
        "db_env": "PGDATABASE",
    },
    "store": {
        "snapshot_dir": "data/snapshots",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, val in (override or {}).items():
        if isinstance(val, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], val)
        else:
            out[key] = val
    return out


def load_config(path: str | Path = "configs/config.yaml", env_file: str | None = ".env") -> Dict[str, Any]:
    """
    Load configs/config.yaml on top of the built-in defaults.

    A missing file is not an error; the defaults are returned. The .env file,
    when present, is loaded first so the env var names in the config resolve.
    """
    if env_file:
        load_dotenv(env_file)

    path = Path(path)
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    with path.open(encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    return _merge(DEFAULT_CONFIG, cfg)


def engine_from_env(cfg: Dict[str, Any]) -> sa.Engine:
    """
    Build a SQLAlchemy engine from env variables pointed to by configs/config.yaml.

    config.yaml:
      db:
        url_env:  DATABASE_URL      # full URL, wins when set
        driver:   postgresql+psycopg2
        host_env: PGHOST
        port_env: PGPORT
        user_env: PGUSER
        pwd_env:  PGPASSWORD
        db_env:   PGDATABASE
    """
    db = cfg["db"]
    url = os.getenv(db.get("url_env") or "DATABASE_URL")
    if not url:
        host = os.getenv(db["host_env"])
        port = os.getenv(db["port_env"])
        user = os.getenv(db["user_env"])
        pwd = os.getenv(db["pwd_env"])
        name = os.getenv(db["db_env"])
        if not (host and name):
            raise TasteMatchError(
                f"Missing database settings: set {db.get('url_env')} or {db['host_env']}/{db['db_env']}"
            )
        url = f"{db['driver']}://{user}:{pwd}@{host}:{port}/{name}"

    return sa.create_engine(url, pool_pre_ping=True)
