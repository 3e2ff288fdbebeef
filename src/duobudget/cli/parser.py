"""CLI parser construction."""

from __future__ import annotations

import argparse
import json
from datetime import date
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from duobudget.domains import DOMAINS_BY_NAME


def _package_version() -> str:
    try:
        return version("duobudget")
    except PackageNotFoundError:
        return "0.0.0"


def parse_assignment(value: str) -> tuple[str, Any]:
    """Parse ``key=value``; the value is read as JSON when it parses, else kept as text."""
    key, sep, raw = value.partition("=")
    key = key.strip()
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {value!r}")
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError:
        parsed = raw
    return key, parsed


def parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from None


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default="./duobudget.json", help="Path to duobudget.json")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")


def _add_domain(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("domain", choices=sorted(DOMAINS_BY_NAME), help="Record domain")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="duobudget")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch_parser = subparsers.add_parser("watch", help="Follow a domain's records as they change")
    _add_domain(watch_parser)
    watch_parser.add_argument("--once", action="store_true", help="Exit after the first remote snapshot")
    watch_parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the first snapshot with --once (default: 30)",
    )
    _add_common(watch_parser)

    add_parser = subparsers.add_parser("add", help="Create a record")
    _add_domain(add_parser)
    add_parser.add_argument("--owner", default="persona1", choices=["persona1", "persona2"], help="Record owner")
    add_parser.add_argument("--date", type=parse_date, default=None, help="Effective date (default: today)")
    add_parser.add_argument(
        "--field",
        "-f",
        dest="fields",
        action="append",
        type=parse_assignment,
        default=[],
        metavar="KEY=VALUE",
        help="Record field; repeatable (e.g. -f monto=12.5 -f descripcion=cafe)",
    )
    _add_common(add_parser)

    delete_parser = subparsers.add_parser("delete", help="Delete a record by id")
    _add_domain(delete_parser)
    delete_parser.add_argument("record_id", help="Local (local_...) or remote record id")
    _add_common(delete_parser)

    list_parser = subparsers.add_parser("list", help="Show the locally backed-up records (no network)")
    _add_domain(list_parser)
    _add_common(list_parser)

    summary_parser = subparsers.add_parser("summary", help="Show totals from the local backup (no network)")
    summary_parser.add_argument("--date", type=parse_date, default=None, help="Reference day (default: today)")
    _add_common(summary_parser)

    config_parser = subparsers.add_parser("config", help="Shared settings")
    config_subparsers = config_parser.add_subparsers(dest="config_command", required=True)

    config_show = config_subparsers.add_parser("show", help="Print a domain's settings from the local backup")
    _add_domain(config_show)
    _add_common(config_show)

    config_set = config_subparsers.add_parser("set", help="Merge settings into the shared configuration")
    _add_domain(config_set)
    config_set.add_argument(
        "assignments",
        nargs="+",
        type=parse_assignment,
        metavar="KEY=VALUE",
        help="Dotted keys address nested settings (e.g. nombres.persona1=Ana)",
    )
    _add_common(config_set)

    return parser


__all__ = ["build_parser", "parse_assignment", "parse_date"]
