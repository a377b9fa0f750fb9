"""Reconciliation core turning master template changes into safe downstream updates.

Layered flow per repository:
1) read the stored record and the target content for each changed path
2) classify the path from checksums alone
3) persist observations that need no deployment
4) submit all paths that need deployment as one update
5) record the deployed state with conditional writes
"""

from __future__ import annotations

from .classify import classify, decide, observation_update
from .contracts import (
    CategoryStatus,
    ChangedTemplate,
    Classification,
    Failure,
    FailureKind,
    FailureReason,
    OutcomeStatus,
    PathDecision,
    PathOutcome,
    RepositoryOutcome,
    Trigger,
    TriggerResult,
)
from .engine import ReconciliationEngine
from .failures import gateway_failure, store_failure
from .reporting import category_status, retire_record

__all__ = [
    "CategoryStatus",
    "ChangedTemplate",
    "Classification",
    "Failure",
    "FailureKind",
    "FailureReason",
    "OutcomeStatus",
    "PathDecision",
    "PathOutcome",
    "ReconciliationEngine",
    "RepositoryOutcome",
    "Trigger",
    "TriggerResult",
    "category_status",
    "classify",
    "decide",
    "gateway_failure",
    "observation_update",
    "retire_record",
    "store_failure",
]
