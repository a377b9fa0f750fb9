"""SQLAlchemy adapter package for the template state store."""

from __future__ import annotations

from .lifecycle import (
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
    state_store,
)
from .mappings import create_all_tables, mapper_registry, template_record_table
from .state_store import SqlAlchemyStateStore

__all__ = [
    "SqlAlchemyStateStore",
    "StartupError",
    "configured_engine",
    "create_all_tables",
    "is_started",
    "mapper_registry",
    "shutdown",
    "startup",
    "state_store",
    "template_record_table",
]
