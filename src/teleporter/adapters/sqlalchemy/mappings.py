"""SQLAlchemy table metadata for template state records."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    orm,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

CHECKSUM_LENGTH = 64


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        # SQLite drops the offset on the way out
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

template_record_table = Table(
    "template_record",
    mapper_registry.metadata,
    Column("repository", String, primary_key=True),
    Column("template_path", String, primary_key=True),
    Column("category", String, nullable=False),
    Column("master_checksum", String(CHECKSUM_LENGTH), nullable=True),
    Column("deployed_checksum", String(CHECKSUM_LENGTH), nullable=True),
    Column("target_checksum", String(CHECKSUM_LENGTH), nullable=True),
    Column("last_updated", UTCDateTime(), nullable=True),
    Column("version", Integer, nullable=False),
    Index("ix_template_record_category", "category", "repository", "template_path"),
)


def create_all_tables(engine: Engine) -> None:
    """Create tables directly from metadata, bypassing migrations."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
