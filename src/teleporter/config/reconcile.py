"""Reconciliation engine tuning knobs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import positive_float_env, positive_int_env

DEFAULT_MAX_WORKERS = 8
DEFAULT_REPOSITORY_TIMEOUT_SECONDS = 120.0
DEFAULT_MAX_CONFLICT_RETRIES = 3


@dataclass(frozen=True, slots=True)
class ReconcileConfig:
    max_workers: int = DEFAULT_MAX_WORKERS
    repository_timeout_seconds: float = DEFAULT_REPOSITORY_TIMEOUT_SECONDS
    max_conflict_retries: int = DEFAULT_MAX_CONFLICT_RETRIES


def get_reconcile_config() -> ReconcileConfig:
    return ReconcileConfig(
        max_workers=positive_int_env("TELEPORTER_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        repository_timeout_seconds=positive_float_env(
            "TELEPORTER_REPOSITORY_TIMEOUT", DEFAULT_REPOSITORY_TIMEOUT_SECONDS
        ),
        max_conflict_retries=positive_int_env(
            "TELEPORTER_MAX_CONFLICT_RETRIES", DEFAULT_MAX_CONFLICT_RETRIES
        ),
    )
