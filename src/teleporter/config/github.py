"""GitHub platform configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from teleporter import __version__

from .env import optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_TEMPLATES_ROOT = "templates"
DEFAULT_BRANCH_PREFIX = "template-teleporter-updates"
GITHUB_API_VERSION = "2022-11-28"


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    """Holds the token and repository layout used by the GitHub gateway.

    Master templates live in ``master_repository`` under
    ``<templates_root>/<category>/<path>``.
    """

    token: str
    master_repository: str
    resilience: ResilienceConfig
    templates_root: str = DEFAULT_TEMPLATES_ROOT
    branch_prefix: str = DEFAULT_BRANCH_PREFIX


def _validate_repository(name: str, value: str) -> str:
    owner, _, repo = value.partition("/")
    if not owner or not repo or "/" in repo:
        raise ConfigurationError(f"{name} must look like 'owner/name', got {value!r}")
    return value


def github_resilience(token: str, *, api_url: str = DEFAULT_GITHUB_API_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="github",
        base_url=api_url.rstrip("/"),
        ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
        retry=RetryPolicy(total=4),
        default_headers={
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": f"template-teleporter/{__version__}",
        },
    )


def get_github_config(*, resilience: ResilienceConfig | None = None) -> GitHubConfig:
    values = require_env_vars(("GITHUB_TOKEN", "TELEPORTER_MASTER_REPOSITORY"))
    token = values["GITHUB_TOKEN"]
    api_url = optional_env_var("GITHUB_API_URL", DEFAULT_GITHUB_API_URL)
    templates_root = optional_env_var("TELEPORTER_TEMPLATES_ROOT", DEFAULT_TEMPLATES_ROOT)
    return GitHubConfig(
        token=token,
        master_repository=_validate_repository(
            "TELEPORTER_MASTER_REPOSITORY", values["TELEPORTER_MASTER_REPOSITORY"]
        ),
        resilience=resilience or github_resilience(token, api_url=api_url),
        templates_root=templates_root.strip("/"),
        branch_prefix=optional_env_var("TELEPORTER_BRANCH_PREFIX", DEFAULT_BRANCH_PREFIX),
    )
