"""Logging setup for the CLI and other entry points."""

from __future__ import annotations

import logging
import os
from typing import Final

LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_NOISY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore", "alembic.runtime.migration")


def resolve_log_level(value: str | None, *, default: int = logging.INFO) -> int:
    """Translate a level name such as ``"debug"`` into a ``logging`` constant."""

    if value is None or not value.strip():
        return default
    level = logging.getLevelNamesMapping().get(value.strip().upper())
    if level is None:
        raise ValueError(f"Unknown log level: {value}")
    return level


def configure_logging(*, level: int | None = None, force: bool = False) -> None:
    """Initialise the root logger once.

    Without an explicit ``level`` the ``TELEPORTER_LOG_LEVEL`` environment variable
    is consulted, falling back to INFO. Chatty third-party loggers are capped at
    WARNING so reconciliation output stays readable.
    """

    effective = level if level is not None else resolve_log_level(os.getenv("TELEPORTER_LOG_LEVEL"))
    logging.basicConfig(
        level=effective,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(effective, logging.WARNING))
