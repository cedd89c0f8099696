"""Configuration from the environment and an optional .env file.

Recognised variables: ``FOLIO_WIDTH`` (maximum text columns),
``FOLIO_MOUSE`` (capture mouse clicks and scrolling) and
``FOLIO_LOG_LEVEL``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_WIDTH = 75


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_width(name: str, default: int) -> int:
    try:
        width = int(os.getenv(name, default))
    except ValueError:
        return default
    return width if width >= 1 else default


@dataclass
class AppConfig:
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "folio")
    config_dir: Path = field(default_factory=lambda: _xdg_config_home() / "folio")

    # Reader
    default_width: int = DEFAULT_WIDTH
    mouse: bool = True

    log_level: str = "INFO"

    # Derived from data_dir
    db_path: Path = field(init=False)
    log_path: Path = field(init=False)

    def __post_init__(self) -> None:
        for d in (self.data_dir, self.config_dir):
            d.mkdir(parents=True, exist_ok=True)
        self.db_path = self.data_dir / "folio.db"
        self.log_path = self.data_dir / "folio.log"


def _find_env_file(env_path: Optional[Path]) -> Optional[Path]:
    candidates = (
        env_path,
        Path.cwd() / ".env",
        _xdg_config_home() / "folio" / ".env",
    )
    return next((p for p in candidates if p and p.exists()), None)


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Build the config; variables already set in the environment win over the file."""
    env_file = _find_env_file(env_path)
    if env_file is not None:
        load_dotenv(env_file)

    return AppConfig(
        default_width=_env_width("FOLIO_WIDTH", DEFAULT_WIDTH),
        mouse=_env_bool("FOLIO_MOUSE", True),
        log_level=os.getenv("FOLIO_LOG_LEVEL", "INFO").strip().upper(),
    )
