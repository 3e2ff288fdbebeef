"""Add command."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Iterable
from typing import Any

from duobudget import LIMITS, ConfigError, DomainSpec, Record, get_domain
from duobudget.summary import evaluate_limit


def build_fields(domain: DomainSpec, pairs: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Collect ``--field`` pairs; limit records get their forced-saving fields computed."""
    fields = dict(pairs)
    if domain.name == LIMITS.name and "gastoReal" in fields:
        try:
            evaluation = evaluate_limit(float(fields["gastoReal"]), float(fields.get("limite", 0)))
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"invalid limit record: {exc}") from exc
        fields.update(evaluation.to_fields())
    return fields


async def run_add(args: argparse.Namespace) -> Record:
    import duobudget.cli as cli

    config = cli.load_config(args.config)
    domain = get_domain(args.domain)
    fields = build_fields(domain, args.fields)

    async with cli.DuoBudget.from_config(config, notifier=cli.RichNotifier(), domains=[domain]) as app:
        connected = await app.start()
        coordinator = app.coordinator(domain.name)
        record = coordinator.create(fields, owner=args.owner, effective_date=args.date)
        await coordinator.flush()
        if connected[domain.name] and not record.local_only:
            # One poll lets the feed carry the new record into the backup.
            await asyncio.sleep(config.poll_interval)

    print(record.id)
    return record


__all__ = ["build_fields", "run_add"]
