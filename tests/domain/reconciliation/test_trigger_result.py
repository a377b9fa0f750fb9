from __future__ import annotations

import pytest

from teleporter.domain.model import RecordStatus, TemplateRecord
from teleporter.domain.reconciliation import (
    CategoryStatus,
    ChangedTemplate,
    Failure,
    FailureKind,
    FailureReason,
    OutcomeStatus,
    PathOutcome,
    RepositoryOutcome,
    Trigger,
    TriggerResult,
)

TIMEOUT = Failure(kind=FailureKind.TRANSIENT, reason=FailureReason.TIMEOUT, detail="slow")


def _outcome(repository: str, **statuses: OutcomeStatus) -> RepositoryOutcome:
    return RepositoryOutcome(
        repository=repository,
        paths={
            f"{name}.yml": PathOutcome(path=f"{name}.yml", status=status)
            for name, status in statuses.items()
        },
    )


def test_summary_counts_every_outcome_status() -> None:
    result = TriggerResult(
        category="c1",
        source_reference="master@abc123",
        repositories={
            "r1": _outcome("r1", a=OutcomeStatus.DEPLOYED, b=OutcomeStatus.IN_SYNC),
            "r2": _outcome("r2", a=OutcomeStatus.CONFLICTED, b=OutcomeStatus.DEPLOYED),
        },
        ignored_paths=("README.md",),
    )

    assert result.summary() == (
        "category=c1 repositories=2 in_sync=1, deployed=2, conflicted=1, failed=0 ignored=1"
    )
    assert not result.has_failures


def test_conflicts_are_not_failures() -> None:
    outcome = _outcome("r1", a=OutcomeStatus.CONFLICTED)

    assert outcome.succeeded
    assert outcome.conflicted_paths == ("a.yml",)


def test_failed_path_marks_repository_failed() -> None:
    result = TriggerResult(
        category="c1",
        repositories={
            "r1": _outcome("r1", a=OutcomeStatus.DEPLOYED),
            "r2": _outcome("r2", a=OutcomeStatus.FAILED),
        },
    )

    assert result.failed_repositories == ("r2",)
    assert result.has_failures
    assert result.status_counts()[OutcomeStatus.FAILED] == 1


def test_repository_failure_without_paths_is_a_failure() -> None:
    outcome = RepositoryOutcome(repository="r1", failure=TIMEOUT)

    assert not outcome.succeeded


def test_failure_renders_kind_reason_and_detail() -> None:
    assert str(TIMEOUT) == "transient/timeout: slow"
    assert str(Failure(kind=FailureKind.FATAL, reason=FailureReason.AUTH_FAILURE)) == (
        "fatal/auth_failure"
    )


def test_trigger_rejects_duplicate_paths() -> None:
    with pytest.raises(ValueError, match="more than once"):
        Trigger(
            category="c1",
            changed_paths=(
                ChangedTemplate(path="a.yml", content=b"1"),
                ChangedTemplate(path="a.yml", content=b"2"),
            ),
        )


def test_category_status_lists_conflicted_records() -> None:
    conflicted = TemplateRecord(
        repository="r2",
        template_path="a.yml",
        category="c1",
        master_checksum="h1",
        deployed_checksum="h1",
        target_checksum="h3",
    )
    deployed = TemplateRecord(
        repository="r1",
        template_path="a.yml",
        category="c1",
        master_checksum="h1",
        deployed_checksum="h1",
    )

    status = CategoryStatus.from_records("c1", [deployed, conflicted])

    assert status.counts == {
        RecordStatus.NEVER_DEPLOYED: 0,
        RecordStatus.IN_SYNC: 0,
        RecordStatus.DEPLOYED: 1,
        RecordStatus.CONFLICTED: 1,
    }
    assert status.conflicted == (conflicted,)
