"""Thread-safe in-process state store for tests and local dry runs."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from teleporter.domain.ports import ConflictError

if TYPE_CHECKING:
    from teleporter.domain.model import RecordKey, TemplateRecord


class InMemoryStateStore:
    def __init__(self) -> None:
        self._records: dict[RecordKey, TemplateRecord] = {}
        self._lock = threading.Lock()

    def get(self, repository: str, template_path: str) -> TemplateRecord | None:
        with self._lock:
            return self._records.get((repository, template_path))

    def put(self, record: TemplateRecord, *, expected_version: int | None) -> TemplateRecord:
        with self._lock:
            current = self._records.get(record.key)
            current_version = current.version if current is not None else None
            if current_version != expected_version:
                raise ConflictError(
                    record.repository,
                    record.template_path,
                    expected_version=expected_version,
                    actual_version=current_version,
                )
            stored = record.stored_as(1 if expected_version is None else expected_version + 1)
            self._records[record.key] = stored
            return stored

    def delete(self, repository: str, template_path: str) -> None:
        with self._lock:
            self._records.pop((repository, template_path), None)

    def list_by_category(self, category: str) -> list[TemplateRecord]:
        with self._lock:
            records = [record for record in self._records.values() if record.category == category]
        return sorted(records, key=lambda record: record.key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
