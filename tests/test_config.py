"""Tests for configuration."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from folio.config import AppConfig, load_config

FOLIO_VARS = ("FOLIO_WIDTH", "FOLIO_MOUSE", "FOLIO_LOG_LEVEL")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path: Path):
    for name in FOLIO_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    yield
    # load_dotenv writes straight into os.environ
    for name in FOLIO_VARS:
        os.environ.pop(name, None)


class TestAppConfig:
    def test_defaults(self, tmp_path: Path):
        config = AppConfig(data_dir=tmp_path / "data", config_dir=tmp_path / "config")
        assert config.default_width == 75
        assert config.mouse is True
        assert config.log_level == "INFO"
        assert config.db_path == tmp_path / "data" / "folio.db"
        assert config.log_path == tmp_path / "data" / "folio.log"

    def test_dirs_created(self, tmp_path: Path):
        data = tmp_path / "data"
        conf = tmp_path / "config"
        AppConfig(data_dir=data, config_dir=conf)
        assert data.exists()
        assert conf.exists()

    def test_xdg_data_home(self, tmp_path: Path):
        config = AppConfig()
        assert config.data_dir == tmp_path / "xdg-data" / "folio"


class TestLoadConfig:
    def test_load_from_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("FOLIO_WIDTH=60\nFOLIO_MOUSE=off\nFOLIO_LOG_LEVEL=debug\n")
        config = load_config(env_path=env_file)
        assert config.default_width == 60
        assert config.mouse is False
        assert config.log_level == "DEBUG"

    def test_empty_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("")
        config = load_config(env_path=env_file)
        assert config.default_width == 75
        assert config.mouse is True

    @pytest.mark.parametrize("value", ["wide", "0", "-3"])
    def test_bad_width_falls_back(self, tmp_path: Path, value: str):
        env_file = tmp_path / ".env"
        env_file.write_text(f"FOLIO_WIDTH={value}\n")
        config = load_config(env_path=env_file)
        assert config.default_width == 75

    def test_environment_wins_over_file(self, tmp_path: Path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("FOLIO_WIDTH=60\n")
        monkeypatch.setenv("FOLIO_WIDTH", "90")
        config = load_config(env_path=env_file)
        assert config.default_width == 90
