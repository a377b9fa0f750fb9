from __future__ import annotations

import threading
from datetime import UTC, datetime

import pytest

from teleporter.adapters.memory import InMemoryStateStore
from teleporter.domain.model import new_record
from teleporter.domain.ports import ConflictError, StateStore

NOW = datetime(2026, 10, 18, tzinfo=UTC)


def test_memory_store_satisfies_port() -> None:
    assert isinstance(InMemoryStateStore(), StateStore)


def test_create_then_conditional_update_bumps_version() -> None:
    store = InMemoryStateStore()

    created = store.put(new_record("r1", "a.yml", "c1"), expected_version=None)
    updated = store.put(created.observe_target("h1", at=NOW), expected_version=1)

    assert created.version == 1
    assert updated.version == 2
    assert store.get("r1", "a.yml") == updated


def test_create_over_existing_record_conflicts() -> None:
    store = InMemoryStateStore()
    store.put(new_record("r1", "a.yml", "c1"), expected_version=None)

    with pytest.raises(ConflictError) as excinfo:
        store.put(new_record("r1", "a.yml", "c1"), expected_version=None)

    assert excinfo.value.expected_version is None
    assert excinfo.value.actual_version == 1


def test_stale_version_conflicts_and_keeps_stored_record() -> None:
    store = InMemoryStateStore()
    first = store.put(new_record("r1", "a.yml", "c1"), expected_version=None)
    store.put(first, expected_version=1)

    with pytest.raises(ConflictError):
        store.put(first, expected_version=1)

    assert store.get("r1", "a.yml").version == 2  # type: ignore[union-attr]


def test_update_of_missing_record_conflicts() -> None:
    store = InMemoryStateStore()

    with pytest.raises(ConflictError) as excinfo:
        store.put(new_record("r1", "a.yml", "c1"), expected_version=3)

    assert excinfo.value.actual_version is None


def test_list_by_category_is_sorted_and_filtered() -> None:
    store = InMemoryStateStore()
    store.put(new_record("r2", "a.yml", "c1"), expected_version=None)
    store.put(new_record("r1", "b.yml", "c1"), expected_version=None)
    store.put(new_record("r1", "a.yml", "c1"), expected_version=None)
    store.put(new_record("r3", "a.yml", "c2"), expected_version=None)

    keys = [record.key for record in store.list_by_category("c1")]

    assert keys == [("r1", "a.yml"), ("r1", "b.yml"), ("r2", "a.yml")]


def test_delete_is_idempotent() -> None:
    store = InMemoryStateStore()
    store.put(new_record("r1", "a.yml", "c1"), expected_version=None)

    store.delete("r1", "a.yml")
    store.delete("r1", "a.yml")

    assert store.get("r1", "a.yml") is None
    assert len(store) == 0


def test_racing_writers_with_same_expected_version_have_one_winner() -> None:
    store = InMemoryStateStore()
    store.put(new_record("r1", "a.yml", "c1"), expected_version=None)
    barrier = threading.Barrier(8)
    outcomes: list[str] = []
    outcomes_lock = threading.Lock()

    def writer(index: int) -> None:
        record = new_record("r1", "a.yml", "c1").observe_target(f"h{index}", at=NOW)
        barrier.wait()
        try:
            store.put(record, expected_version=1)
        except ConflictError:
            result = "conflict"
        else:
            result = "won"
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=writer, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("won") == 1
    assert outcomes.count("conflict") == 7
    assert store.get("r1", "a.yml").version == 2  # type: ignore[union-attr]
