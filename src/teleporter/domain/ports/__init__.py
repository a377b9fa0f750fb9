"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import ConflictError, StateStore, StoreError
from .platform import (
    ApiError,
    AuthFailure,
    FileChange,
    GatewayError,
    PlatformGateway,
    RateLimited,
    RepoNotFound,
    TemplateNotFound,
    UpdateResult,
)

__all__ = [
    "ApiError",
    "AuthFailure",
    "ConflictError",
    "FileChange",
    "GatewayError",
    "PlatformGateway",
    "RateLimited",
    "RepoNotFound",
    "StateStore",
    "StoreError",
    "TemplateNotFound",
    "UpdateResult",
]
