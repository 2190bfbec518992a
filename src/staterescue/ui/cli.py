#!/usr/bin/env python3

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from staterescue.app import classify_names, reconcile_policy, run_controller
from staterescue.config import (
    ConfigurationError,
    configure_logging,
    get_controller_config,
    get_kubernetes_config,
)
from staterescue.domain.reconciliation import is_valid_name

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Keep backups of Terraform state secrets")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run the controller until interrupted")

    reconcile = subparsers.add_parser("reconcile", help="Run one pass for a single policy")
    reconcile.add_argument(
        "--namespace",
        type=str,
        required=True,
        help="Namespace of the StateRescue policy",
    )
    reconcile.add_argument("name", type=str, help="Name of the StateRescue policy")

    classify = subparsers.add_parser(
        "classify",
        help="Show how object names relate to a target state name",
    )
    classify.add_argument(
        "--target",
        type=str,
        required=True,
        help="Target state object name (the policy's stateSecretName)",
    )
    classify.add_argument("names", nargs="+", help="Object names to classify")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "reconcile":
        for value in (args.namespace, args.name):
            if not is_valid_name(value):
                raise ValueError(f"Invalid object name: {value!r}")


def _print_classifications(target: str, names: Sequence[str]) -> None:
    for name, classification in classify_names(target, names):
        counterpart = classification.counterpart or "-"
        print(f"{name}\t{classification.role}\t{counterpart}")  # noqa: T201


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        _validate(parsed_args)
        controller_config = get_controller_config()
    except (ValueError, ConfigurationError):
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=controller_config.log_level)

    if parsed_args.command == "classify":
        _print_classifications(parsed_args.target, parsed_args.names)
        return

    try:
        kubernetes_config = get_kubernetes_config()
    except ConfigurationError:
        log.exception("Kubernetes configuration error")
        sys.exit(2)

    try:
        if parsed_args.command == "run":
            asyncio.run(
                run_controller(
                    kubernetes_config=kubernetes_config,
                    controller_config=controller_config,
                )
            )
        elif parsed_args.command == "reconcile":
            asyncio.run(
                reconcile_policy(
                    parsed_args.namespace,
                    parsed_args.name,
                    kubernetes_config=kubernetes_config,
                    controller_config=controller_config,
                )
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def entrypoint() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    entrypoint()
