"""Operator-facing queries and maintenance that need no platform access."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .contracts import CategoryStatus

if TYPE_CHECKING:
    from teleporter.domain.model import CategoryBindings
    from teleporter.domain.ports import StateStore

log = getLogger(__name__)


def category_status(
    store: StateStore,
    bindings: CategoryBindings,
    category: str,
) -> CategoryStatus:
    """Count stored records per derived status and list the conflicted ones."""

    bindings.category(category)
    return CategoryStatus.from_records(category, store.list_by_category(category))


def retire_record(store: StateStore, repository: str, template_path: str) -> None:
    """Forget the state of one template path, e.g. after it left its category."""

    store.delete(repository, template_path)
    log.info("Retired template record %s:%s", repository, template_path)
