from __future__ import annotations

import pytest

from teleporter.config import ConfigurationError, MissingConfigurationError, get_github_config
from teleporter.config.github import DEFAULT_BRANCH_PREFIX, DEFAULT_GITHUB_API_URL


def test_github_config_requires_token_and_master_repository() -> None:
    with pytest.raises(MissingConfigurationError) as exc:
        get_github_config()

    assert "GITHUB_TOKEN" in str(exc.value)
    assert "TELEPORTER_MASTER_REPOSITORY" in str(exc.value)


def test_github_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_example")
    monkeypatch.setenv("TELEPORTER_MASTER_REPOSITORY", "acme/templates")
    monkeypatch.setenv("TELEPORTER_TEMPLATES_ROOT", "/shared/templates/")

    config = get_github_config()

    assert config.token == "ghp_example"
    assert config.master_repository == "acme/templates"
    assert config.templates_root == "shared/templates"
    assert config.branch_prefix == DEFAULT_BRANCH_PREFIX
    resilience = config.resilience
    assert resilience.base_url == DEFAULT_GITHUB_API_URL
    assert resilience.default_headers is not None
    assert resilience.default_headers["Authorization"] == "Bearer ghp_example"
    assert resilience.ratelimit is not None
    assert "POST" not in resilience.retry.allowed_methods


def test_github_config_honours_api_url_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_example")
    monkeypatch.setenv("TELEPORTER_MASTER_REPOSITORY", "acme/templates")
    monkeypatch.setenv("GITHUB_API_URL", "https://github.example.com/api/v3/")

    assert get_github_config().resilience.base_url == "https://github.example.com/api/v3"


@pytest.mark.parametrize("value", ["templates", "acme/", "/templates", "acme/templates/extra"])
def test_github_config_rejects_malformed_master_repository(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_example")
    monkeypatch.setenv("TELEPORTER_MASTER_REPOSITORY", value)

    with pytest.raises(ConfigurationError, match="owner/name"):
        get_github_config()
