from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from teleporter.config import get_data_dir, get_database_config

if TYPE_CHECKING:
    from pathlib import Path


def test_database_uri_from_environment_wins(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://db/teleporter")
    monkeypatch.setenv("TELEPORTER_DATA_DIR", str(tmp_path / "unused"))

    assert get_database_config().uri == "postgresql+psycopg://db/teleporter"
    assert not (tmp_path / "unused").exists()


def test_database_defaults_to_sqlite_file_in_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("TELEPORTER_DATA_DIR", str(tmp_path / "state"))

    config = get_database_config()

    assert config.uri == f"sqlite+pysqlite:///{tmp_path.resolve() / 'state' / 'teleporter.db'}"
    assert (tmp_path / "state").is_dir()


def test_data_dir_falls_back_to_xdg_data_home(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert get_data_dir() == tmp_path.resolve() / "template-teleporter"
