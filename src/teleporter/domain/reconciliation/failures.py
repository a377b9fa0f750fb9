"""Mapping of port exceptions onto the reported failure taxonomy."""

from __future__ import annotations

from teleporter.domain.ports import (
    ApiError,
    AuthFailure,
    ConflictError,
    GatewayError,
    RateLimited,
    RepoNotFound,
    StoreError,
    TemplateNotFound,
)

from .contracts import Failure, FailureKind, FailureReason

_GATEWAY_REASONS: tuple[tuple[type[GatewayError], FailureKind, FailureReason], ...] = (
    (RateLimited, FailureKind.TRANSIENT, FailureReason.RATE_LIMITED),
    (AuthFailure, FailureKind.FATAL, FailureReason.AUTH_FAILURE),
    (RepoNotFound, FailureKind.FATAL, FailureReason.REPO_NOT_FOUND),
    (TemplateNotFound, FailureKind.FATAL, FailureReason.TEMPLATE_NOT_FOUND),
    (ApiError, FailureKind.TRANSIENT, FailureReason.API_ERROR),
)


def gateway_failure(exc: GatewayError) -> Failure:
    for error_type, kind, reason in _GATEWAY_REASONS:
        if isinstance(exc, error_type):
            return Failure(kind=kind, reason=reason, detail=str(exc))
    # unknown gateway subclasses are treated like an unexpected API response
    return Failure(kind=FailureKind.TRANSIENT, reason=FailureReason.API_ERROR, detail=str(exc))


def store_failure(exc: StoreError) -> Failure:
    reason = (
        FailureReason.STORE_CONTENTION
        if isinstance(exc, ConflictError)
        else FailureReason.STORE_ERROR
    )
    return Failure(kind=FailureKind.TRANSIENT, reason=reason, detail=str(exc))


def timeout_failure(seconds: float | None) -> Failure:
    detail = f"repository exceeded {seconds:g}s" if seconds is not None else None
    return Failure(kind=FailureKind.TRANSIENT, reason=FailureReason.TIMEOUT, detail=detail)


def contention_failure(attempts: int) -> Failure:
    return Failure(
        kind=FailureKind.TRANSIENT,
        reason=FailureReason.STORE_CONTENTION,
        detail=f"gave up after {attempts} conflicting writes",
    )


NOT_APPLIED = Failure(
    kind=FailureKind.TRANSIENT,
    reason=FailureReason.NOT_APPLIED,
    detail="platform did not report the path as applied",
)

UNBOUND_REPOSITORY = Failure(
    kind=FailureKind.FATAL,
    reason=FailureReason.UNBOUND_REPOSITORY,
    detail="repository is not bound to the trigger's category",
)

CONCURRENT_UPDATE = Failure(
    kind=FailureKind.TRANSIENT,
    reason=FailureReason.STORE_CONTENTION,
    detail="a concurrent run recorded a different state for the path",
)
