"""Public interface for the GitHub adapter."""

from __future__ import annotations

from .client import GitHubGateway
from .schema import PullRequestPayload, RepositoryPayload

__all__ = [
    "GitHubGateway",
    "PullRequestPayload",
    "RepositoryPayload",
]
