"""Pydantic models for the subset of the GitHub REST API the gateway touches."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GitHubBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RepositoryPayload(GitHubBaseModel):
    full_name: str
    default_branch: str


class ShaPayload(GitHubBaseModel):
    """Blob, tree and commit creation all answer with at least a ``sha``."""

    sha: str


class CommitPayload(GitHubBaseModel):
    sha: str
    tree: ShaPayload


class GitRefPayload(GitHubBaseModel):
    ref: str
    target: ShaPayload = Field(alias="object")


class BranchPayload(GitHubBaseModel):
    ref: str
    sha: str


class PullRequestPayload(GitHubBaseModel):
    number: int
    html_url: str
    head: BranchPayload
    base: BranchPayload


class ErrorPayload(GitHubBaseModel):
    message: str = ""
    documentation_url: str | None = None


class TreeEntry(GitHubBaseModel):
    path: str
    mode: str = "100644"
    type: str = "blob"
    sha: str
