"""Inputs and outcomes of a reconciliation run.

This module holds only value types:
- the trigger describing changed master content
- per-path decisions produced by classification
- the per-repository, per-path outcome report returned to callers
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from teleporter.domain.checksum import checksum
from teleporter.domain.model import RecordStatus, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from teleporter.domain.model import TemplateRecord


class Classification(StrEnum):
    """Decision taken for one template path in one repository."""

    ALREADY_IN_SYNC = "already_in_sync"
    MANUAL_OVERRIDE = "manual_override"
    NEEDS_DEPLOY = "needs_deploy"


class OutcomeStatus(StrEnum):
    IN_SYNC = "in_sync"
    DEPLOYED = "deployed"
    CONFLICTED = "conflicted"
    FAILED = "failed"


class FailureKind(StrEnum):
    """Transient failures are safe to resubmit on the next trigger; fatal ones need a human."""

    TRANSIENT = "transient"
    FATAL = "fatal"


class FailureReason(StrEnum):
    RATE_LIMITED = "rate_limited"
    API_ERROR = "api_error"
    STORE_ERROR = "store_error"
    STORE_CONTENTION = "store_contention"
    TIMEOUT = "timeout"
    NOT_APPLIED = "not_applied"
    AUTH_FAILURE = "auth_failure"
    REPO_NOT_FOUND = "repo_not_found"
    TEMPLATE_NOT_FOUND = "template_not_found"
    UNBOUND_REPOSITORY = "unbound_repository"


@dataclass(frozen=True, slots=True, kw_only=True)
class Failure:
    kind: FailureKind
    reason: FailureReason
    detail: str | None = None

    def __str__(self) -> str:
        suffix = f": {self.detail}" if self.detail else ""
        return f"{self.kind}/{self.reason}{suffix}"


@dataclass(frozen=True, slots=True)
class ChangedTemplate:
    """New master content for one template path."""

    path: str
    content: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", normalize_path(self.path))
        if not self.path:
            raise ValueError("Changed template path must not be blank")

    @property
    def checksum(self) -> str:
        return checksum(self.content)


@dataclass(frozen=True, slots=True, kw_only=True)
class Trigger:
    """One change notification from the canonical source.

    ``repositories`` narrows the fan-out to a subset of the category's
    subscribers; ``None`` means every bound repository. ``source_reference`` is
    passed through to logs and results untouched.
    """

    category: str
    changed_paths: tuple[ChangedTemplate, ...]
    source_reference: str = ""
    repositories: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        paths = [change.path for change in self.changed_paths]
        if len(set(paths)) != len(paths):
            raise ValueError("Trigger lists the same template path more than once")


@dataclass(frozen=True, slots=True, kw_only=True)
class PathDecision:
    """Classification of one path together with the observations it was based on."""

    path: str
    classification: Classification
    master_checksum: str
    target_checksum: str | None
    record: TemplateRecord | None


@dataclass(frozen=True, slots=True, kw_only=True)
class PathOutcome:
    path: str
    status: OutcomeStatus
    master_checksum: str | None = None
    target_checksum: str | None = None
    failure: Failure | None = None


@dataclass(slots=True, kw_only=True)
class RepositoryOutcome:
    """Per-path outcomes for one repository plus the update reference, if any."""

    repository: str
    paths: dict[str, PathOutcome] = field(default_factory=dict)
    reference_id: str | None = None
    failure: Failure | None = None

    def paths_with(self, status: OutcomeStatus) -> tuple[str, ...]:
        return tuple(path for path, outcome in self.paths.items() if outcome.status is status)

    @property
    def deployed_paths(self) -> tuple[str, ...]:
        return self.paths_with(OutcomeStatus.DEPLOYED)

    @property
    def conflicted_paths(self) -> tuple[str, ...]:
        return self.paths_with(OutcomeStatus.CONFLICTED)

    @property
    def failed_paths(self) -> tuple[str, ...]:
        return self.paths_with(OutcomeStatus.FAILED)

    @property
    def succeeded(self) -> bool:
        return self.failure is None and not self.failed_paths


@dataclass(slots=True, kw_only=True)
class TriggerResult:
    category: str
    source_reference: str = ""
    repositories: dict[str, RepositoryOutcome] = field(default_factory=dict)
    ignored_paths: tuple[str, ...] = ()

    @property
    def failed_repositories(self) -> tuple[str, ...]:
        return tuple(name for name, outcome in self.repositories.items() if not outcome.succeeded)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed_repositories)

    def status_counts(self) -> Mapping[OutcomeStatus, int]:
        return Counter(
            outcome.status
            for repository in self.repositories.values()
            for outcome in repository.paths.values()
        )

    def summary(self) -> str:
        counts = self.status_counts()
        parts = ", ".join(f"{status}={counts.get(status, 0)}" for status in OutcomeStatus)
        return (
            f"category={self.category} repositories={len(self.repositories)} {parts} "
            f"ignored={len(self.ignored_paths)}"
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class CategoryStatus:
    """Fleet-wide view of the records stored for one category."""

    category: str
    counts: Mapping[RecordStatus, int]
    conflicted: tuple[TemplateRecord, ...] = ()

    @classmethod
    def from_records(cls, category: str, records: Iterable[TemplateRecord]) -> CategoryStatus:
        counts: Counter[RecordStatus] = Counter({status: 0 for status in RecordStatus})
        conflicted: list[TemplateRecord] = []
        for record in records:
            status = record.status
            counts[status] += 1
            if status is RecordStatus.CONFLICTED:
                conflicted.append(record)
        return cls(category=category, counts=dict(counts), conflicted=tuple(conflicted))
