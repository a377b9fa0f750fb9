#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from teleporter.adapters.trigger import TriggerPayloadError, load_trigger
from teleporter.app import category_status, reconcile_trigger, retire_template, sync_category
from teleporter.config import ConfigurationError, configure_logging
from teleporter.config.logging import resolve_log_level
from teleporter.domain.model import UnknownCategoryError
from teleporter.domain.reconciliation import OutcomeStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from teleporter.domain.reconciliation import CategoryStatus, TriggerResult

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="teleporter",
        description="Keep repositories in sync with canonical template files",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level name (defaults to TELEPORTER_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Reconcile a trigger payload")
    reconcile.add_argument(
        "--trigger",
        type=Path,
        required=True,
        help="JSON file with category, changed_paths and source_reference",
    )

    sync = subparsers.add_parser(
        "sync",
        help="Fetch every master template of a category and reconcile it",
    )
    sync.add_argument("--category", type=str, required=True, help="Template category")
    sync.add_argument(
        "--repository",
        dest="repositories",
        action="append",
        help="Limit the sync to this repository (repeatable)",
    )

    status = subparsers.add_parser("status", help="Report record states for a category")
    status.add_argument("--category", type=str, required=True, help="Template category")

    retire = subparsers.add_parser("retire", help="Forget the record of one template path")
    retire.add_argument("--repository", type=str, required=True, help="owner/name")
    retire.add_argument("--path", type=str, required=True, help="Template path")

    return parser.parse_args(list(argv))


def _print_result(result: TriggerResult) -> None:
    print(result.summary())
    for path in result.ignored_paths:
        print(f"  ignored {path}")
    for name, outcome in result.repositories.items():
        reference = f" {outcome.reference_id}" if outcome.reference_id else ""
        print(f"{name}:{reference}")
        for path_outcome in outcome.paths.values():
            detail = f" ({path_outcome.failure})" if path_outcome.failure else ""
            print(f"  {path_outcome.status:<10} {path_outcome.path}{detail}")


def _print_status(status: CategoryStatus) -> None:
    counts = ", ".join(f"{name}={count}" for name, count in status.counts.items())
    print(f"category={status.category} {counts}")
    for record in status.conflicted:
        print(f"  {OutcomeStatus.CONFLICTED:<10} {record.repository}:{record.template_path}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(argv if argv is not None else sys.argv[1:])
        level = resolve_log_level(parsed_args.log_level) if parsed_args.log_level else None
        configure_logging(level=level)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    failed = False
    try:
        if parsed_args.command == "reconcile":
            result = reconcile_trigger(load_trigger(parsed_args.trigger))
            _print_result(result)
            failed = result.has_failures
        elif parsed_args.command == "sync":
            result = sync_category(parsed_args.category, repositories=parsed_args.repositories)
            _print_result(result)
            failed = result.has_failures
        elif parsed_args.command == "status":
            _print_status(category_status(parsed_args.category))
        elif parsed_args.command == "retire":
            retire_template(parsed_args.repository, parsed_args.path)
            print(f"Retired {parsed_args.repository}:{parsed_args.path}")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ConfigurationError, TriggerPayloadError, UnknownCategoryError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)

    if failed:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
