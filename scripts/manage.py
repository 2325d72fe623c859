"""Maintenance commands for an Afterwave deployment.

The commands read the same environment as the API process, so they can be run
from a deploy hook or a cron job on the API host.

Example usages::

    # Fail fast on a broken .env before restarting the service.
    python -m scripts.manage check

    # Register the configured auth clients and create the feed index.
    python -m scripts.manage seed-clients
    python -m scripts.manage ensure-index

    # Monthly active users for a billing period.
    python -m scripts.manage mau --month 2026-09
"""

from __future__ import annotations

import argparse
import asyncio
import re
import sys
from typing import Callable

from pydantic import ValidationError

from afterwave.core.config import AppSettings
from afterwave.core.errors import DomainError
from afterwave.dependencies.clients import get_feed_index, get_record_store
from afterwave.stores import ActivityStore, CredentialStore
from afterwave.stores.activity import period_key
from afterwave.stores.base import utc_now

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_RUNTIME_ERROR = 5

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def _month(value: str) -> str:
    if not _MONTH_PATTERN.match(value):
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {value!r}")
    return value


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Operational commands for the Afterwave API.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Validate settings and exit.")
    subparsers.add_parser(
        "seed-clients",
        help="Register the configured auth clients and their token lifetimes.",
    )
    subparsers.add_parser(
        "ensure-index",
        help="Create the feed search index when it does not exist yet.",
    )
    mau_parser = subparsers.add_parser(
        "mau",
        help="Print the monthly active user count.",
    )
    mau_parser.add_argument(
        "--month",
        type=_month,
        default=None,
        help="Billing month as YYYY-MM (defaults to the current UTC month).",
    )

    return parser


def _seed_clients(settings: AppSettings) -> int:
    created = CredentialStore(get_record_store()).ensure_clients(
        settings.auth.client_policies
    )
    if created:
        print(f"Registered clients: {', '.join(sorted(created))}")
    else:
        print("All clients already registered")
    return EXIT_OK


def _ensure_index() -> int:
    created = asyncio.run(get_feed_index().ensure_index())
    print("Created feed index" if created else "Feed index already exists")
    return EXIT_OK


def _count_mau(month: str | None) -> int:
    period = month or period_key(utc_now())
    count = ActivityStore(get_record_store()).count(period)
    print(f"{period}\t{count}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = AppSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "check": lambda: EXIT_OK,
        "seed-clients": lambda: _seed_clients(settings),
        "ensure-index": _ensure_index,
        "mau": lambda: _count_mau(args.month),
    }
    try:
        return handlers[command]()
    except DomainError as exc:
        print(f"{command} failed: {exc.message}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during {command}: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
