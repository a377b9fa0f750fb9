"""Orchestrator turning "master content changed" into per-repository actions.

For every repository bound to the trigger's category the engine classifies each
changed path, batches the paths that need deployment into one gateway update and
records the resulting state transitions with conditional writes. Repositories run
concurrently and fail independently of each other.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from teleporter.domain.model import new_record, normalize_path
from teleporter.domain.ports import ConflictError, FileChange, GatewayError, StoreError

from .classify import decide, observation_update
from .contracts import (
    ChangedTemplate,
    Classification,
    Failure,
    FailureKind,
    OutcomeStatus,
    PathDecision,
    PathOutcome,
    RepositoryOutcome,
    TriggerResult,
)
from .failures import (
    CONCURRENT_UPDATE,
    NOT_APPLIED,
    UNBOUND_REPOSITORY,
    contention_failure,
    gateway_failure,
    store_failure,
    timeout_failure,
)
from .reporting import category_status, retire_record

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from teleporter.domain.model import CategoryBindings, TemplateCategory, TemplateRecord
    from teleporter.domain.ports import PlatformGateway, StateStore

    from .contracts import CategoryStatus, Trigger

log = getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class ReconciliationEngine:
    """Reconcile template changes against every subscribed repository."""

    store: StateStore
    gateway: PlatformGateway
    bindings: CategoryBindings
    max_workers: int = 8
    repository_timeout: float | None = 120.0
    max_conflict_retries: int = 3
    clock: Callable[[], datetime] = _utc_now

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.max_conflict_retries < 0:
            raise ValueError("max_conflict_retries must not be negative")
        if self.repository_timeout is not None and self.repository_timeout <= 0:
            raise ValueError("repository_timeout must be positive")

    def reconcile(self, trigger: Trigger) -> TriggerResult:
        return asyncio.run(self.reconcile_async(trigger))

    async def reconcile_async(self, trigger: Trigger) -> TriggerResult:
        """Reconcile the trigger's changed paths.

        Raises ``UnknownCategoryError`` before touching any repository when the
        category is not defined. Changed paths the category does not list are
        skipped and reported in ``ignored_paths``.
        """

        category = self.bindings.category(trigger.category)
        changes = tuple(change for change in trigger.changed_paths if change.path in category)
        ignored = tuple(
            change.path for change in trigger.changed_paths if change.path not in category
        )
        if ignored:
            log.warning(
                "Ignoring %d path(s) not listed in category %s: %s",
                len(ignored),
                category.name,
                ", ".join(ignored),
            )
        return await self._fan_out(
            category,
            changes,
            path_order=tuple(change.path for change in changes),
            requested=trigger.repositories,
            source_reference=trigger.source_reference,
            ignored_paths=ignored,
        )

    def sync_category(
        self,
        category: str,
        *,
        repositories: Sequence[str] | None = None,
        source_reference: str = "full-sync",
    ) -> TriggerResult:
        return asyncio.run(
            self.sync_category_async(
                category,
                repositories=repositories,
                source_reference=source_reference,
            )
        )

    async def sync_category_async(
        self,
        category: str,
        *,
        repositories: Sequence[str] | None = None,
        source_reference: str = "full-sync",
    ) -> TriggerResult:
        """Fetch current master content for every path of ``category`` and reconcile it.

        Paths whose master content cannot be fetched are reported as failed for every
        repository instead of aborting the whole sync.
        """

        template_category = self.bindings.category(category)
        fetched = await asyncio.gather(
            *(
                self._fetch_master(template_category.name, path)
                for path in template_category.paths
            )
        )
        changes = tuple(item for item in fetched if isinstance(item, ChangedTemplate))
        unavailable = {
            path: item
            for path, item in zip(template_category.paths, fetched, strict=True)
            if isinstance(item, Failure)
        }
        return await self._fan_out(
            template_category,
            changes,
            path_order=template_category.paths,
            requested=tuple(repositories) if repositories is not None else None,
            source_reference=source_reference,
            unavailable=unavailable,
        )

    def retire(self, repository: str, template_path: str) -> None:
        retire_record(self.store, repository, normalize_path(template_path))

    def status(self, category: str) -> CategoryStatus:
        return category_status(self.store, self.bindings, category)

    async def _fetch_master(self, category: str, path: str) -> ChangedTemplate | Failure:
        try:
            content = await self.gateway.fetch_master_content(category, path)
        except GatewayError as exc:
            failure = gateway_failure(exc)
            log.error("Master content for %s/%s unavailable: %s", category, path, failure)
            return failure
        return ChangedTemplate(path=path, content=content)

    def _resolve_repositories(
        self,
        category: str,
        requested: Sequence[str] | None,
    ) -> tuple[list[str], list[str]]:
        if requested is None:
            return list(self.bindings.repositories_for(category)), []
        bound: list[str] = []
        unbound: list[str] = []
        for repository in dict.fromkeys(requested):
            if self.bindings.category_of(repository) == category:
                bound.append(repository)
            else:
                unbound.append(repository)
        return bound, unbound

    async def _fan_out(
        self,
        category: TemplateCategory,
        changes: tuple[ChangedTemplate, ...],
        *,
        path_order: Sequence[str],
        requested: Sequence[str] | None,
        source_reference: str,
        ignored_paths: tuple[str, ...] = (),
        unavailable: Mapping[str, Failure] | None = None,
    ) -> TriggerResult:
        unavailable = unavailable or {}
        bound, unbound = self._resolve_repositories(category.name, requested)
        log.info(
            "Reconciling category %s (source=%s): %d path(s) across %d repositories",
            category.name,
            source_reference or "-",
            len(changes),
            len(bound),
        )

        semaphore = asyncio.Semaphore(self.max_workers)

        async def run(repository: str) -> RepositoryOutcome:
            async with semaphore:
                return await _RepositoryRun(
                    engine=self,
                    repository=repository,
                    category=category.name,
                    changes=changes,
                ).execute()

        async with asyncio.TaskGroup() as group:
            tasks = {repository: group.create_task(run(repository)) for repository in bound}

        for repository in unbound:
            log.error("Repository %s is not bound to category %s", repository, category.name)

        order = dict.fromkeys(requested) if requested is not None else bound
        outcomes: dict[str, RepositoryOutcome] = {}
        for repository in order:
            if repository in tasks:
                outcome = tasks[repository].result()
            else:
                outcome = RepositoryOutcome(repository=repository, failure=UNBOUND_REPOSITORY)
            for path, failure in unavailable.items():
                outcome.paths[path] = PathOutcome(
                    path=path, status=OutcomeStatus.FAILED, failure=failure
                )
            outcomes[repository] = _ordered(outcome, path_order)

        result = TriggerResult(
            category=category.name,
            source_reference=source_reference,
            repositories=outcomes,
            ignored_paths=ignored_paths,
        )
        log.info(
            "Finished category %s (source=%s): %s",
            category.name,
            source_reference or "-",
            result.summary(),
        )
        return result


def _ordered(outcome: RepositoryOutcome, path_order: Sequence[str]) -> RepositoryOutcome:
    """Fill undecided paths from the repository failure and sort into trigger order."""

    paths: dict[str, PathOutcome] = {}
    for path in path_order:
        decided = outcome.paths.get(path)
        if decided is None:
            decided = PathOutcome(
                path=path, status=OutcomeStatus.FAILED, failure=outcome.failure
            )
        paths[path] = decided
    outcome.paths = paths
    return outcome


@dataclass(slots=True, kw_only=True)
class _RepositoryRun:
    """Plan, submit and record one repository's share of a trigger."""

    engine: ReconciliationEngine
    repository: str
    category: str
    changes: tuple[ChangedTemplate, ...]
    outcome: RepositoryOutcome = field(init=False)
    _interrupted: tuple[asyncio.Task[TemplateRecord], PathDecision] | None = field(
        default=None, init=False
    )

    def __post_init__(self) -> None:
        self.outcome = RepositoryOutcome(repository=self.repository)

    async def execute(self) -> RepositoryOutcome:
        engine = self.engine
        pending: list[tuple[ChangedTemplate, PathDecision]] = []
        try:
            async with asyncio.timeout(engine.repository_timeout):
                for change in self.changes:
                    decision = await self._plan(change)
                    if decision is None:
                        continue
                    if decision.classification is Classification.NEEDS_DEPLOY:
                        pending.append((change, decision))
                if not pending:
                    return self.outcome
                result = await engine.gateway.submit_update(
                    self.repository,
                    [
                        FileChange(path=change.path, content=change.content)
                        for change, _ in pending
                    ],
                )
        except TimeoutError:
            await self._settle_interrupted_write()
            failure = timeout_failure(engine.repository_timeout)
            log.warning("Reconciliation of %s timed out: %s", self.repository, failure)
            return self._abort(failure)
        except GatewayError as exc:
            failure = gateway_failure(exc)
            level = log.error if failure.kind is FailureKind.FATAL else log.warning
            level("Gateway failure for %s: %s", self.repository, failure)
            return self._abort(failure)

        self.outcome.reference_id = result.reference_id
        log.info(
            "Submitted %d path(s) to %s (%s)", len(pending), self.repository, result.reference_id
        )
        applied = set(result.affected_paths)
        for change, decision in pending:
            if change.path in applied:
                await self._record_deploy(decision)
            else:
                log.warning("Update for %s did not apply %s", self.repository, change.path)
                self._settle(decision, OutcomeStatus.FAILED, failure=NOT_APPLIED)
        return self.outcome

    async def _plan(self, change: ChangedTemplate) -> PathDecision | None:
        """Classify one path, persisting observations that need no deployment.

        A conflicting observation write re-reads the record and the target and
        classifies again, since a concurrent run may have changed the picture.
        Returns ``None`` when the path already failed.
        """

        engine = self.engine
        digest = change.checksum
        attempts = engine.max_conflict_retries + 1
        try:
            for _ in range(attempts):
                record = await asyncio.to_thread(engine.store.get, self.repository, change.path)
                target = await engine.gateway.fetch_target_content(self.repository, change.path)
                decision = decide(
                    change.path, master_checksum=digest, target_content=target, record=record
                )
                log.debug(
                    "%s:%s classified %s", self.repository, change.path, decision.classification
                )
                if decision.classification is Classification.NEEDS_DEPLOY:
                    return decision
                update = observation_update(
                    decision,
                    repository=self.repository,
                    category=self.category,
                    at=engine.clock(),
                )
                if update is not None:
                    try:
                        await self._write_observation(update, _version_of(record), decision)
                    except ConflictError:
                        log.info(
                            "Concurrent write to %s:%s, classifying again",
                            self.repository,
                            change.path,
                        )
                        continue
                self._settle_observed(decision)
                return decision
        except StoreError as exc:
            log.warning("State store failure for %s:%s: %s", self.repository, change.path, exc)
            self._fail(change.path, store_failure(exc), master_checksum=digest)
            return None
        log.warning(
            "Giving up on %s:%s after %d conflicting writes",
            self.repository,
            change.path,
            attempts,
        )
        self._fail(change.path, contention_failure(attempts), master_checksum=digest)
        return None

    async def _write_observation(
        self,
        update: TemplateRecord,
        expected_version: int | None,
        decision: PathDecision,
    ) -> None:
        """Persist an observation without losing track of it when the timeout fires.

        The store call keeps running in its worker thread after a cancellation, so
        the write is shielded and handed to ``_settle_interrupted_write``.
        """

        write = asyncio.create_task(
            asyncio.to_thread(self.engine.store.put, update, expected_version=expected_version)
        )
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            self._interrupted = (write, decision)
            raise

    async def _settle_interrupted_write(self) -> None:
        if self._interrupted is None:
            return
        write, decision = self._interrupted
        self._interrupted = None
        try:
            await write
        except StoreError as exc:
            log.info(
                "Observation of %s:%s interrupted by the timeout was not stored: %s",
                self.repository,
                decision.path,
                exc,
            )
            return
        self._settle_observed(decision)

    async def _record_deploy(self, decision: PathDecision) -> None:
        """Record an applied deployment; the gateway is never called again for it.

        A conflicting write is retried on top of the reloaded record only while the
        concurrent writer left the checksums as they were when the path was
        classified. Any other concurrent state is kept and the path is reported as
        contended, so the next trigger classifies it from scratch.
        """

        engine = self.engine
        digest = decision.master_checksum
        record = decision.record
        attempts = engine.max_conflict_retries + 1
        try:
            for _ in range(attempts):
                base = record or new_record(self.repository, decision.path, self.category)
                try:
                    await asyncio.to_thread(
                        engine.store.put,
                        base.mark_deployed(digest, at=engine.clock()),
                        expected_version=_version_of(record),
                    )
                except ConflictError:
                    current = await asyncio.to_thread(
                        engine.store.get, self.repository, decision.path
                    )
                    if _records_deployment(current, digest):
                        log.info(
                            "%s:%s already recorded as deployed", self.repository, decision.path
                        )
                        break
                    if _checksums(current) != _checksums(decision.record):
                        log.warning(
                            "Deployed %s:%s but a concurrent run recorded different state; "
                            "keeping it",
                            self.repository,
                            decision.path,
                        )
                        self._settle(decision, OutcomeStatus.FAILED, failure=CONCURRENT_UPDATE)
                        return
                    record = current
                    continue
                break
            else:
                log.warning(
                    "Deployed %s:%s but could not record it after %d conflicting writes",
                    self.repository,
                    decision.path,
                    attempts,
                )
                self._settle(decision, OutcomeStatus.FAILED, failure=contention_failure(attempts))
                return
        except StoreError as exc:
            log.error(
                "Deployed %s:%s but failed to record it: %s", self.repository, decision.path, exc
            )
            self._settle(decision, OutcomeStatus.FAILED, failure=store_failure(exc))
            return
        self._settle(decision, OutcomeStatus.DEPLOYED)

    def _settle_observed(self, decision: PathDecision) -> None:
        if decision.classification is Classification.MANUAL_OVERRIDE:
            log.warning(
                "Manual override in %s:%s, leaving it untouched", self.repository, decision.path
            )
            self._settle(decision, OutcomeStatus.CONFLICTED)
        else:
            self._settle(decision, OutcomeStatus.IN_SYNC)

    def _settle(
        self,
        decision: PathDecision,
        status: OutcomeStatus,
        *,
        failure: Failure | None = None,
    ) -> None:
        self.outcome.paths[decision.path] = PathOutcome(
            path=decision.path,
            status=status,
            master_checksum=decision.master_checksum,
            target_checksum=decision.target_checksum,
            failure=failure,
        )

    def _fail(self, path: str, failure: Failure, *, master_checksum: str | None = None) -> None:
        self.outcome.paths[path] = PathOutcome(
            path=path,
            status=OutcomeStatus.FAILED,
            master_checksum=master_checksum,
            failure=failure,
        )

    def _abort(self, failure: Failure) -> RepositoryOutcome:
        self.outcome.failure = failure
        for change in self.changes:
            if change.path not in self.outcome.paths:
                self._fail(change.path, failure, master_checksum=change.checksum)
        return self.outcome


def _version_of(record: TemplateRecord | None) -> int | None:
    return record.version if record is not None else None


def _checksums(record: TemplateRecord | None) -> tuple[str | None, str | None, str | None]:
    if record is None:
        return (None, None, None)
    return (record.master_checksum, record.deployed_checksum, record.target_checksum)


def _records_deployment(record: TemplateRecord | None, digest: str) -> bool:
    return (
        record is not None
        and record.master_checksum == digest
        and record.deployed_checksum == digest
    )
