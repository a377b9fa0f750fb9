"""Port for the developer platform hosting the master and target repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence


class GatewayError(RuntimeError):
    """Base class for failures reported by a platform gateway."""


class AuthFailure(GatewayError):
    """Credentials were rejected by the platform."""


class RateLimited(GatewayError):
    """The platform refused the call because a rate limit is exhausted."""

    def __init__(
        self, message: str = "API rate limit exceeded", *, retry_after: float | None = None
    ) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RepoNotFound(GatewayError):
    def __init__(self, repository: str) -> None:
        super().__init__(f"Repository not found: {repository}")
        self.repository = repository


class TemplateNotFound(GatewayError):
    """The master repository does not contain the requested template path."""

    def __init__(self, category: str, path: str) -> None:
        super().__init__(f"Template not found: {category}/{path}")
        self.category = category
        self.path = path


class ApiError(GatewayError):
    """Network failure or unexpected platform response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class FileChange:
    """One file of a batched update, in submission order."""

    path: str
    content: bytes


@dataclass(frozen=True, slots=True)
class UpdateResult:
    """Platform response to a submitted change set."""

    reference_id: str
    affected_paths: tuple[str, ...]


@runtime_checkable
class PlatformGateway(Protocol):
    """Async access to master content, target content and batched updates."""

    async def fetch_master_content(self, category: str, path: str) -> bytes: ...

    async def fetch_target_content(self, repository: str, path: str) -> bytes | None: ...

    async def submit_update(
        self,
        repository: str,
        change_set: Sequence[FileChange],
    ) -> UpdateResult: ...
