"""Application configuration helpers."""

from __future__ import annotations

from .bindings import get_bindings_path, load_bindings, parse_bindings
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .github import GitHubConfig, get_github_config
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .reconcile import ReconcileConfig, get_reconcile_config
from .storage import DatabaseConfig, get_data_dir, get_database_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "GitHubConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ReconcileConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "get_bindings_path",
    "get_data_dir",
    "get_database_config",
    "get_github_config",
    "get_reconcile_config",
    "load_bindings",
    "parse_bindings",
    "require_env_vars",
]
