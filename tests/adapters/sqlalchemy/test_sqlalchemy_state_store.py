from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker

from teleporter.adapters.sqlalchemy import (
    SqlAlchemyStateStore,
    StartupError,
    configured_engine,
    is_started,
    startup,
    state_store,
)
from teleporter.domain.model import RecordStatus, TemplateRecord, new_record
from teleporter.domain.ports import ConflictError, StateStore, StoreError
from teleporter.domain.reconciliation import OutcomeStatus

from tests.helpers.gateways import FakeGateway
from tests.helpers.reconciliation import make_engine, make_trigger

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

NOW = datetime(2026, 10, 18, 12, 30, tzinfo=UTC)


def _record(
    repository: str = "acme/api",
    path: str = "ci.yml",
    **kwargs: object,
) -> TemplateRecord:
    return TemplateRecord(
        repository=repository,
        template_path=path,
        category="python-service",
        last_updated=NOW,
        **kwargs,  # type: ignore[arg-type]
    )


def test_schema_is_created_by_migrations(sqlite_engine: Engine) -> None:
    inspector = inspect(sqlite_engine)

    assert "template_record" in inspector.get_table_names()
    assert "alembic_version" in inspector.get_table_names()
    indexes = {index["name"] for index in inspector.get_indexes("template_record")}
    assert "ix_template_record_category" in indexes


def test_store_satisfies_port(sqlite_state_store: SqlAlchemyStateStore) -> None:
    assert isinstance(sqlite_state_store, StateStore)


def test_round_trips_every_field(sqlite_state_store: SqlAlchemyStateStore) -> None:
    record = _record(master_checksum="a" * 64, deployed_checksum="b" * 64, target_checksum=None)

    stored = sqlite_state_store.put(record, expected_version=None)
    loaded = sqlite_state_store.get("acme/api", "ci.yml")

    assert stored.version == 1
    assert loaded == stored
    assert loaded is not None
    assert loaded.last_updated == NOW
    assert loaded.last_updated.tzinfo is not None


def test_timestamps_are_normalised_to_utc(sqlite_state_store: SqlAlchemyStateStore) -> None:
    local = datetime(2026, 10, 18, 14, 30, tzinfo=timezone(timedelta(hours=2)))
    sqlite_state_store.put(
        new_record("acme/api", "ci.yml", "python-service").observe_target("h1", at=local),
        expected_version=None,
    )

    loaded = sqlite_state_store.get("acme/api", "ci.yml")

    assert loaded is not None
    assert loaded.last_updated == NOW


def test_missing_record_reads_as_none(sqlite_state_store: SqlAlchemyStateStore) -> None:
    assert sqlite_state_store.get("acme/api", "ci.yml") is None


def test_conditional_update_bumps_version(sqlite_state_store: SqlAlchemyStateStore) -> None:
    created = sqlite_state_store.put(_record(), expected_version=None)

    updated = sqlite_state_store.put(
        created.mark_deployed("c" * 64, at=NOW), expected_version=created.version
    )

    assert updated.version == 2
    loaded = sqlite_state_store.get("acme/api", "ci.yml")
    assert loaded is not None
    assert loaded.version == 2
    assert loaded.status is RecordStatus.DEPLOYED


def test_duplicate_create_raises_conflict(sqlite_state_store: SqlAlchemyStateStore) -> None:
    sqlite_state_store.put(_record(), expected_version=None)

    with pytest.raises(ConflictError) as excinfo:
        sqlite_state_store.put(_record(), expected_version=None)

    assert excinfo.value.actual_version == 1


def test_stale_update_raises_conflict(sqlite_state_store: SqlAlchemyStateStore) -> None:
    created = sqlite_state_store.put(_record(), expected_version=None)
    sqlite_state_store.put(created.observe_target("h1", at=NOW), expected_version=1)

    with pytest.raises(ConflictError) as excinfo:
        sqlite_state_store.put(created.observe_target("h2", at=NOW), expected_version=1)

    assert excinfo.value.expected_version == 1
    assert excinfo.value.actual_version == 2
    loaded = sqlite_state_store.get("acme/api", "ci.yml")
    assert loaded is not None
    assert loaded.target_checksum == "h1"


def test_update_of_deleted_record_raises_conflict(
    sqlite_state_store: SqlAlchemyStateStore,
) -> None:
    created = sqlite_state_store.put(_record(), expected_version=None)
    sqlite_state_store.delete("acme/api", "ci.yml")

    with pytest.raises(ConflictError) as excinfo:
        sqlite_state_store.put(created, expected_version=1)

    assert excinfo.value.actual_version is None


def test_list_by_category_orders_by_key(sqlite_state_store: SqlAlchemyStateStore) -> None:
    sqlite_state_store.put(_record("acme/web"), expected_version=None)
    sqlite_state_store.put(_record("acme/api", "lint.yml"), expected_version=None)
    sqlite_state_store.put(_record("acme/api"), expected_version=None)
    sqlite_state_store.put(
        new_record("acme/site", "ci.yml", "frontend"), expected_version=None
    )

    keys = [record.key for record in sqlite_state_store.list_by_category("python-service")]

    assert keys == [("acme/api", "ci.yml"), ("acme/api", "lint.yml"), ("acme/web", "ci.yml")]


def test_racing_writers_have_exactly_one_winner(
    sqlite_state_store: SqlAlchemyStateStore,
) -> None:
    sqlite_state_store.put(_record(), expected_version=None)
    barrier = threading.Barrier(4)
    winners: list[int] = []
    conflicts: list[int] = []
    lock = threading.Lock()

    def writer(index: int) -> None:
        record = _record().observe_target(f"h{index}", at=NOW)
        barrier.wait()
        try:
            sqlite_state_store.put(record, expected_version=1)
        except ConflictError:
            with lock:
                conflicts.append(index)
        else:
            with lock:
                winners.append(index)

    threads = [threading.Thread(target=writer, args=(index,)) for index in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1
    assert len(conflicts) == 3
    loaded = sqlite_state_store.get("acme/api", "ci.yml")
    assert loaded is not None
    assert loaded.version == 2
    assert loaded.target_checksum == f"h{winners[0]}"


def test_database_failure_surfaces_as_store_error() -> None:
    # no migrations ran, so the table is missing
    broken = create_engine("sqlite+pysqlite:///:memory:", future=True)
    store = SqlAlchemyStateStore(sessionmaker(bind=broken))

    with pytest.raises(StoreError):
        store.get("acme/api", "ci.yml")


def test_engine_runs_against_sqlite_store(sqlite_state_store: SqlAlchemyStateStore) -> None:
    gateway = FakeGateway()
    engine = make_engine(store=sqlite_state_store, gateway=gateway)

    first = engine.reconcile(make_trigger({"a.yml": b"X"}))
    second = engine.reconcile(make_trigger({"a.yml": b"X"}))

    assert first.repositories["r1"].deployed_paths == ("a.yml",)
    assert second.repositories["r1"].paths["a.yml"].status is OutcomeStatus.IN_SYNC
    assert len(gateway.submissions) == 1
    loaded = sqlite_state_store.get("r1", "a.yml")
    assert loaded is not None
    assert loaded.status is RecordStatus.IN_SYNC


@pytest.mark.usefixtures("reset_adapter_state")
def test_state_store_requires_startup() -> None:
    with pytest.raises(StartupError):
        state_store()


@pytest.mark.usefixtures("reset_adapter_state")
def test_startup_requires_force_for_reconfiguration(sqlite_engine: Engine) -> None:
    other = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=sqlite_engine)
    with pytest.raises(StartupError):
        startup(engine=other)
    startup(engine=other, force=True)

    assert configured_engine() is other
    assert is_started()
    assert isinstance(state_store(), SqlAlchemyStateStore)
