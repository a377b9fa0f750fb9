from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from teleporter.adapters.sqlalchemy import SqlAlchemyStateStore
from teleporter.adapters.sqlalchemy.lifecycle import shutdown
from teleporter.adapters.sqlalchemy.migrations import upgrade_head

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

_TELEPORTER_ENV = (
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "TELEPORTER_MASTER_REPOSITORY",
    "TELEPORTER_TEMPLATES_ROOT",
    "TELEPORTER_BRANCH_PREFIX",
    "TELEPORTER_BINDINGS",
    "TELEPORTER_MAX_WORKERS",
    "TELEPORTER_REPOSITORY_TIMEOUT",
    "TELEPORTER_MAX_CONFLICT_RETRIES",
    "TELEPORTER_LOG_LEVEL",
    "TELEPORTER_DATA_DIR",
)


@pytest.fixture(autouse=True)
def clean_teleporter_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _TELEPORTER_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # file-backed so worker threads share one database
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'teleporter.db'}", future=True)
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=sqlite_engine, expire_on_commit=False)


@pytest.fixture
def sqlite_state_store(sqlite_session_factory: sessionmaker[Session]) -> SqlAlchemyStateStore:
    return SqlAlchemyStateStore(sqlite_session_factory)


@pytest.fixture
def reset_adapter_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()
