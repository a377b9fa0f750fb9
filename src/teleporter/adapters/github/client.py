"""GitHub REST implementation of the platform gateway."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Unpack
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from teleporter.adapters.http_resilience import ResilientClient
from teleporter.config import GitHubConfig, get_github_config
from teleporter.domain.ports import (
    ApiError,
    AuthFailure,
    GatewayError,
    RateLimited,
    RepoNotFound,
    TemplateNotFound,
    UpdateResult,
)

from .schema import (
    CommitPayload,
    ErrorPayload,
    GitRefPayload,
    PullRequestPayload,
    RepositoryPayload,
    ShaPayload,
    TreeEntry,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from teleporter.adapters.http_resilience import RequestOptions
    from teleporter.config import ResilienceConfig
    from teleporter.domain.ports import FileChange, PlatformGateway

log = getLogger(__name__)

_RAW_CONTENT = {"Accept": "application/vnd.github.raw+json"}


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorPayload.model_validate_json(response.content).message
    except ValidationError:
        return response.text[:200]


def _retry_after(response: httpx.Response) -> float | None:
    header = response.headers.get("retry-after")
    if header is not None:
        try:
            return float(header)
        except ValueError:
            return None
    reset = response.headers.get("x-ratelimit-reset")
    if reset is not None and reset.isdigit():
        return max(0.0, int(reset) - time.time())
    return None


def _is_rate_limited(response: httpx.Response, message: str) -> bool:
    if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
        return True
    return response.headers.get("x-ratelimit-remaining") == "0" or "rate limit" in message.lower()


def _raise_for_status(
    response: httpx.Response,
    *,
    not_found: Callable[[], GatewayError] | None = None,
) -> None:
    """Translate an unsuccessful response into the gateway error taxonomy."""

    if response.is_success:
        return
    status = response.status_code
    message = _error_message(response)
    if status == httpx.codes.UNAUTHORIZED:
        raise AuthFailure(f"GitHub rejected the credentials: {message}")
    if status in (httpx.codes.FORBIDDEN, httpx.codes.TOO_MANY_REQUESTS):
        if _is_rate_limited(response, message):
            raise RateLimited(
                message or "API rate limit exceeded", retry_after=_retry_after(response)
            )
        raise AuthFailure(f"GitHub denied access: {message}")
    if status == httpx.codes.NOT_FOUND and not_found is not None:
        raise not_found()
    request = response.request
    raise ApiError(
        f"GitHub API returned {status} for {request.method} {request.url.path}: {message}",
        status_code=status,
    )


def _parse[ModelT: BaseModel](model: type[ModelT], response: httpx.Response) -> ModelT:
    try:
        return model.model_validate_json(response.content)
    except ValidationError as exc:
        raise ApiError(
            f"Unexpected GitHub payload for {response.request.url.path}",
            status_code=response.status_code,
        ) from exc


@dataclass(slots=True)
class GitHubGateway:
    """Fetch template content and open pull requests through the GitHub REST API.

    Target content is read from the branch of an open template-update pull request
    when one exists, so a pending update is not mistaken for a manual edit. The
    default branch still wins when the file changed there after the pull request
    was opened. New changes for a repository with such a pull request are pushed
    onto its branch instead of opening another one.
    """

    config: GitHubConfig = field(default_factory=get_github_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    clock: Callable[[], datetime] = field(default=_utc_now)
    _client: ResilientClient | None = field(default=None, init=False, repr=False)
    _repositories: dict[str, RepositoryPayload] = field(
        default_factory=dict, init=False, repr=False
    )
    _pending: dict[str, PullRequestPayload | None] = field(
        default_factory=dict, init=False, repr=False
    )

    async def __aenter__(self) -> GitHubGateway:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def fetch_master_content(self, category: str, path: str) -> bytes:
        parts = (self.config.templates_root, category, path)
        master_path = "/".join(part for part in parts if part)
        response = await self._send(
            "GET",
            f"/repos/{self.config.master_repository}/contents/{quote(master_path)}",
            headers=_RAW_CONTENT,
        )
        _raise_for_status(response, not_found=lambda: TemplateNotFound(category, path))
        return response.content

    async def fetch_target_content(self, repository: str, path: str) -> bytes | None:
        await self._repository(repository)
        current = await self._file(repository, path)
        pending = await self._pending_pull(repository)
        if pending is None:
            return current
        # an edit on the default branch after the update branch was cut wins
        if current != await self._file(repository, path, ref=pending.base.sha):
            log.info(
                "%s:%s changed on the default branch since %s was opened",
                repository,
                path,
                pending.html_url,
            )
            return current
        return await self._file(repository, path, ref=pending.head.ref)

    async def submit_update(
        self,
        repository: str,
        change_set: Sequence[FileChange],
    ) -> UpdateResult:
        if not change_set:
            raise ValueError("submit_update requires at least one file change")

        info = await self._repository(repository)
        pending = await self._pending_pull(repository)
        branch = (
            pending.head.ref
            if pending is not None
            else f"{self.config.branch_prefix}-{self.clock():%Y%m%d%H%M%S}"
        )
        base_branch = branch if pending is not None else info.default_branch
        head = await self._ref_sha(repository, base_branch)
        base_commit = _parse(
            CommitPayload,
            await self._checked("GET", f"/repos/{repository}/git/commits/{head}"),
        )

        entries: list[TreeEntry] = []
        for change in change_set:
            blob = _parse(
                ShaPayload,
                await self._checked(
                    "POST",
                    f"/repos/{repository}/git/blobs",
                    json={
                        "content": base64.b64encode(change.content).decode("ascii"),
                        "encoding": "base64",
                    },
                ),
            )
            entries.append(TreeEntry(path=change.path, sha=blob.sha))

        tree = _parse(
            ShaPayload,
            await self._checked(
                "POST",
                f"/repos/{repository}/git/trees",
                json={
                    "base_tree": base_commit.tree.sha,
                    "tree": [entry.model_dump() for entry in entries],
                },
            ),
        )
        paths = [change.path for change in change_set]
        commit = _parse(
            ShaPayload,
            await self._checked(
                "POST",
                f"/repos/{repository}/git/commits",
                json={
                    "message": _commit_message(paths),
                    "tree": tree.sha,
                    "parents": [head],
                },
            ),
        )

        if pending is not None:
            await self._checked(
                "PATCH",
                f"/repos/{repository}/git/refs/heads/{branch}",
                json={"sha": commit.sha, "force": False},
            )
            pull = pending
            log.info("Pushed %d template(s) onto %s (%s)", len(paths), branch, pull.html_url)
        else:
            await self._checked(
                "POST",
                f"/repos/{repository}/git/refs",
                json={"ref": f"refs/heads/{branch}", "sha": commit.sha},
            )
            pull = _parse(
                PullRequestPayload,
                await self._checked(
                    "POST",
                    f"/repos/{repository}/pulls",
                    json={
                        "title": "chore: Update templates from template-teleporter",
                        "head": branch,
                        "base": info.default_branch,
                        "body": _pull_request_body(paths),
                    },
                ),
            )
            self._pending[repository] = pull
            log.info("Opened pull request %s for %d template(s)", pull.html_url, len(paths))

        return UpdateResult(reference_id=pull.html_url, affected_paths=tuple(paths))

    async def _repository(self, repository: str) -> RepositoryPayload:
        cached = self._repositories.get(repository)
        if cached is not None:
            return cached
        response = await self._send("GET", f"/repos/{repository}")
        _raise_for_status(response, not_found=lambda: RepoNotFound(repository))
        info = _parse(RepositoryPayload, response)
        self._repositories[repository] = info
        return info

    async def _pending_pull(self, repository: str) -> PullRequestPayload | None:
        if repository in self._pending:
            return self._pending[repository]
        response = await self._checked(
            "GET",
            f"/repos/{repository}/pulls",
            params={"state": "open", "per_page": 100},
        )
        try:
            pulls = [PullRequestPayload.model_validate(item) for item in response.json()]
        except (ValueError, TypeError) as exc:
            raise ApiError(f"Unexpected pull request listing for {repository}") from exc
        prefix = f"{self.config.branch_prefix}-"
        pending = next((pull for pull in pulls if pull.head.ref.startswith(prefix)), None)
        self._pending[repository] = pending
        return pending

    async def _file(self, repository: str, path: str, *, ref: str | None = None) -> bytes | None:
        response = await self._send(
            "GET",
            f"/repos/{repository}/contents/{quote(path)}",
            headers=_RAW_CONTENT,
            params={"ref": ref} if ref is not None else None,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        _raise_for_status(response)
        return response.content

    async def _ref_sha(self, repository: str, branch: str) -> str:
        response = await self._checked("GET", f"/repos/{repository}/git/ref/heads/{branch}")
        return _parse(GitRefPayload, response).target.sha

    async def _checked(
        self,
        method: str,
        path: str,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        response = await self._send(method, path, **kwargs)
        _raise_for_status(response)
        return response

    async def _send(
        self,
        method: str,
        path: str,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        if self._client is None:
            self._client = self.client_factory(self.config.resilience)
        url = f"{self.config.resilience.base_url or ''}{path}"
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(f"{method} {path} failed: {exc}") from exc


def _commit_message(paths: Sequence[str]) -> str:
    lines = "\n".join(f"- Update {path}" for path in paths)
    return f"chore: Apply template updates from template-teleporter\n\n{lines}"


def _pull_request_body(paths: Sequence[str]) -> str:
    lines = "\n".join(f"- `{path}`" for path in paths)
    return (
        "Automated template updates applied by Template Teleporter.\n\n"
        f"Changes applied:\n{lines}\n\n"
        "Files edited by hand in this repository are left alone and reported as conflicts."
    )


if TYPE_CHECKING:
    _gateway_check: PlatformGateway = GitHubGateway()
