"""List command: the local backup, without contacting the store."""

from __future__ import annotations

import argparse

from rich.console import Console

from duobudget import Record, get_domain
from duobudget.cli.render import records_table


async def run_list(args: argparse.Namespace) -> tuple[Record, ...]:
    import duobudget.cli as cli

    config = cli.load_config(args.config)
    domain = get_domain(args.domain)
    coordinator = cli.load_offline(config, domains=[domain])[domain.name]
    Console().print(records_table(domain, coordinator.records, names=coordinator.shared_config.get("nombres")))
    return coordinator.records


__all__ = ["run_list"]
