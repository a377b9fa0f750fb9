"""Location of the reconciliation state database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "template-teleporter"
DEFAULT_DB_FILENAME: Final[str] = "teleporter.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_data_dir() -> Path:
    """``TELEPORTER_DATA_DIR``, else the XDG data home."""

    env_dir = os.getenv("TELEPORTER_DATA_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()
    xdg_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".local" / "share"
    return (base / APP_DIR_NAME).expanduser().resolve()


def get_database_config() -> DatabaseConfig:
    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{data_dir / DEFAULT_DB_FILENAME}")
