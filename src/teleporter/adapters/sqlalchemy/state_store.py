"""State store backed by a SQL database."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from teleporter.adapters.sqlalchemy.mappings import template_record_table
from teleporter.domain.model import TemplateRecord
from teleporter.domain.ports import ConflictError, StoreError

if TYPE_CHECKING:
    from sqlalchemy import Row
    from sqlalchemy.engine import CursorResult
    from sqlalchemy.orm import Session, sessionmaker

_table = template_record_table


class SqlAlchemyStateStore:
    """Conditional-write store over the ``template_record`` table.

    Every call runs in its own short transaction so the store can be shared by
    worker threads.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def get(self, repository: str, template_path: str) -> TemplateRecord | None:
        stmt = select(_table).where(
            _table.c.repository == repository,
            _table.c.template_path == template_path,
        )
        try:
            with self.session_factory() as session:
                row = session.execute(stmt).one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read {repository}:{template_path}") from exc
        return _to_record(row) if row is not None else None

    def put(self, record: TemplateRecord, *, expected_version: int | None) -> TemplateRecord:
        values = {
            "category": record.category,
            "master_checksum": record.master_checksum,
            "deployed_checksum": record.deployed_checksum,
            "target_checksum": record.target_checksum,
            "last_updated": record.last_updated,
        }
        new_version = 1 if expected_version is None else expected_version + 1
        applied = True
        try:
            with self.session_factory.begin() as session:
                if expected_version is None:
                    session.execute(
                        insert(_table).values(
                            repository=record.repository,
                            template_path=record.template_path,
                            version=new_version,
                            **values,
                        )
                    )
                else:
                    result = cast(
                        "CursorResult[Any]",
                        session.execute(
                            update(_table)
                            .where(
                                _table.c.repository == record.repository,
                                _table.c.template_path == record.template_path,
                                _table.c.version == expected_version,
                            )
                            .values(version=new_version, **values)
                        ),
                    )
                    applied = result.rowcount == 1
        except IntegrityError as exc:
            raise self._conflict(record, expected_version) from exc
        except SQLAlchemyError as exc:
            raise StoreError(
                f"Failed to write {record.repository}:{record.template_path}"
            ) from exc
        if not applied:
            raise self._conflict(record, expected_version)
        return record.stored_as(new_version)

    def delete(self, repository: str, template_path: str) -> None:
        stmt = delete(_table).where(
            _table.c.repository == repository,
            _table.c.template_path == template_path,
        )
        try:
            with self.session_factory.begin() as session:
                session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to delete {repository}:{template_path}") from exc

    def list_by_category(self, category: str) -> list[TemplateRecord]:
        stmt = (
            select(_table)
            .where(_table.c.category == category)
            .order_by(_table.c.repository, _table.c.template_path)
        )
        try:
            with self.session_factory() as session:
                rows = session.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to list records for category {category}") from exc
        return [_to_record(row) for row in rows]

    def _conflict(self, record: TemplateRecord, expected_version: int | None) -> ConflictError:
        current = self.get(record.repository, record.template_path)
        return ConflictError(
            record.repository,
            record.template_path,
            expected_version=expected_version,
            actual_version=current.version if current is not None else None,
        )


def _to_record(row: Row[Any]) -> TemplateRecord:
    data = row._mapping  # noqa: SLF001
    return TemplateRecord(
        repository=data["repository"],
        template_path=data["template_path"],
        category=data["category"],
        master_checksum=data["master_checksum"],
        deployed_checksum=data["deployed_checksum"],
        target_checksum=data["target_checksum"],
        last_updated=data["last_updated"],
        version=data["version"],
    )
