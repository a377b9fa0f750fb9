from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from teleporter.config import configure_logging
from teleporter.config.logging import resolve_log_level

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("debug", logging.DEBUG), (" WARNING ", logging.WARNING), (None, logging.INFO), ("", 20)],
)
def test_resolve_log_level(value: str | None, expected: int) -> None:
    assert resolve_log_level(value) == expected


def test_resolve_log_level_rejects_unknown_names() -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        resolve_log_level("chatty")


@pytest.mark.usefixtures("restore_root_logger")
def test_configure_logging_uses_environment_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEPORTER_LOG_LEVEL", "debug")

    configure_logging(force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.usefixtures("restore_root_logger")
def test_configure_logging_explicit_level_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TELEPORTER_LOG_LEVEL", "debug")

    configure_logging(level=logging.ERROR, force=True)

    assert logging.getLogger().level == logging.ERROR
    assert logging.getLogger("httpx").level == logging.ERROR
