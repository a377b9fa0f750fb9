"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from teleporter.adapters.github import GitHubGateway
from teleporter.adapters.sqlalchemy import is_started, startup, state_store
from teleporter.config import get_reconcile_config, load_bindings
from teleporter.domain.reconciliation import (
    ReconciliationEngine,
    category_status as query_category_status,
    retire_record,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from teleporter.config import ReconcileConfig
    from teleporter.domain.model import CategoryBindings
    from teleporter.domain.ports import PlatformGateway, StateStore
    from teleporter.domain.reconciliation import CategoryStatus, Trigger, TriggerResult


log = getLogger(__name__)


def default_store() -> StateStore:
    """Return the SQL state store, starting the adapter on first use."""

    if not is_started():
        startup()
    return state_store()


def build_engine(
    *,
    gateway: PlatformGateway,
    store: StateStore | None = None,
    bindings: CategoryBindings | None = None,
    config: ReconcileConfig | None = None,
) -> ReconciliationEngine:
    settings = config or get_reconcile_config()
    return ReconciliationEngine(
        store=store if store is not None else default_store(),
        gateway=gateway,
        bindings=bindings if bindings is not None else load_bindings(),
        max_workers=settings.max_workers,
        repository_timeout=settings.repository_timeout_seconds,
        max_conflict_retries=settings.max_conflict_retries,
    )


async def _with_github[T](operation: Callable[[ReconciliationEngine], Awaitable[T]]) -> T:
    async with GitHubGateway() as gateway:
        return await operation(build_engine(gateway=gateway))


def reconcile_trigger(
    trigger: Trigger,
    *,
    engine: ReconciliationEngine | None = None,
) -> TriggerResult:
    """Reconcile one trigger using the configured adapters unless ``engine`` is given."""

    log.info(
        "Received trigger for category %s with %d path(s) (source=%s)",
        trigger.category,
        len(trigger.changed_paths),
        trigger.source_reference or "-",
    )
    if engine is not None:
        return engine.reconcile(trigger)
    return asyncio.run(_with_github(lambda built: built.reconcile_async(trigger)))


def sync_category(
    category: str,
    *,
    repositories: Sequence[str] | None = None,
    source_reference: str = "full-sync",
    engine: ReconciliationEngine | None = None,
) -> TriggerResult:
    """Re-read every master template of ``category`` and reconcile it."""

    if engine is not None:
        return engine.sync_category(
            category, repositories=repositories, source_reference=source_reference
        )
    return asyncio.run(
        _with_github(
            lambda built: built.sync_category_async(
                category, repositories=repositories, source_reference=source_reference
            )
        )
    )


def category_status(
    category: str,
    *,
    store: StateStore | None = None,
    bindings: CategoryBindings | None = None,
) -> CategoryStatus:
    return query_category_status(
        store if store is not None else default_store(),
        bindings if bindings is not None else load_bindings(),
        category,
    )


def retire_template(
    repository: str,
    template_path: str,
    *,
    store: StateStore | None = None,
) -> None:
    retire_record(store if store is not None else default_store(), repository, template_path)
