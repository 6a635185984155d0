"""
Tests for configuration loading and engine construction.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from tastematch.config import DEFAULT_CONFIG, engine_from_env, load_config
from tastematch.errors import TasteMatchError


class TestLoadConfig:

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_missing_file_gives_defaults(self):
        cfg = load_config(Path(self.temp_dir) / "nope.yaml", env_file=None)
        assert cfg == DEFAULT_CONFIG
        assert cfg is not DEFAULT_CONFIG

    def test_yaml_overrides_merge(self):
        path = Path(self.temp_dir) / "config.yaml"
        path.write_text("db:\n  url_env: MY_DB_URL\nstore:\n  snapshot_dir: /tmp/snaps\n", encoding="utf-8")
        cfg = load_config(path, env_file=None)
        assert cfg["db"]["url_env"] == "MY_DB_URL"
        assert cfg["db"]["host_env"] == "PGHOST"
        assert cfg["store"]["snapshot_dir"] == "/tmp/snaps"


class TestEngineFromEnv:

    def test_url_env_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'x.db'}")
        engine = engine_from_env(DEFAULT_CONFIG)
        assert engine.url.get_backend_name() == "sqlite"

    def test_missing_settings(self, monkeypatch):
        for var in ("DATABASE_URL", "PGHOST", "PGDATABASE"):
            monkeypatch.delenv(var, raising=False)
        with pytest.raises(TasteMatchError, match="Missing database settings"):
            engine_from_env(DEFAULT_CONFIG)
