"""Tests for configuration loading."""
import sys
from pathlib import Path

import pytest

from kiro_notes.config import (
    EXPORT_DIR_NAME,
    KiroConfig,
    default_data_dir,
    load_config,
)
from kiro_notes.exceptions import ConfigurationError, ErrorCode


class TestKiroConfig:
    """Tests for KiroConfig defaults and overrides."""

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("KIRO_DATABASE_PATH", str(tmp_path / "custom.db"))
        monkeypatch.setenv("KIRO_EXPORT_DIR", str(tmp_path / "exports"))
        monkeypatch.setenv("KIRO_SEARCH_LIMIT", "25")
        monkeypatch.setenv("KIRO_LOCK_TIMEOUT", "-1")

        cfg = KiroConfig()
        assert cfg.database_path == tmp_path / "custom.db"
        assert cfg.get_export_dir() == tmp_path / "exports"
        assert cfg.search_limit == 25
        assert cfg.lock_timeout == -1

    def test_default_export_dir_under_downloads(self, monkeypatch, tmp_path):
        monkeypatch.delenv("KIRO_EXPORT_DIR", raising=False)
        monkeypatch.setenv("KIRO_DOWNLOADS_DIR", str(tmp_path))
        assert KiroConfig().get_export_dir() == tmp_path / EXPORT_DIR_NAME

    @pytest.mark.skipif(sys.platform in ("win32", "darwin"), reason="XDG layout")
    def test_default_database_follows_xdg(self, monkeypatch, tmp_path):
        monkeypatch.delenv("KIRO_DATABASE_PATH", raising=False)
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert default_data_dir() == tmp_path / "kiro"
        assert KiroConfig().database_path == tmp_path / "kiro" / "notes.db"

    def test_get_database_path_creates_parent(self, tmp_path):
        cfg = KiroConfig(database_path=tmp_path / "new" / "notes.db")
        assert cfg.get_database_path().parent.is_dir()
        assert cfg.get_db_url() == f"sqlite:///{tmp_path / 'new' / 'notes.db'}"

    def test_relative_database_path_is_absolutized(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = KiroConfig(database_path=Path("rel") / "notes.db")
        assert cfg.get_database_path() == tmp_path / "rel" / "notes.db"


class TestLoadConfig:
    """Tests for rejecting bad environment values."""

    @pytest.mark.parametrize(
        "name,value",
        [
            ("KIRO_SEARCH_LIMIT", "0"),
            ("KIRO_SEARCH_LIMIT", "lots"),
            ("KIRO_LOCK_TIMEOUT", "0"),
            ("KIRO_LOCK_TIMEOUT", "-5"),
        ],
    )
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError) as exc_info:
            load_config()
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID

    def test_valid_environment(self, monkeypatch):
        monkeypatch.setenv("KIRO_SEARCH_LIMIT", "5")
        assert load_config().search_limit == 5
