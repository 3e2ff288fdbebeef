"""Watch command."""

from __future__ import annotations

import argparse
import asyncio

from rich.console import Console

from duobudget import Record, Severity, get_domain
from duobudget.cli.render import records_table


async def run_watch(args: argparse.Namespace) -> tuple[Record, ...]:
    import duobudget.cli as cli

    config = cli.load_config(args.config)
    domain = get_domain(args.domain)
    notifier = cli.RichNotifier()
    console = Console()
    snapshot_seen = asyncio.Event()

    def on_change(name: str, records: tuple[Record, ...]) -> None:
        coordinator = app.coordinator(name)
        if coordinator.subscribed:
            snapshot_seen.set()
        if not args.once:
            console.print(records_table(domain, records, names=coordinator.shared_config.get("nombres")))

    app = cli.DuoBudget.from_config(config, notifier=notifier, domains=[domain], on_change=on_change)
    async with app:
        connected = await app.start()
        coordinator = app.coordinator(domain.name)
        if not args.once:
            # Runs until interrupted.
            await asyncio.Event().wait()

        if connected[domain.name]:
            try:
                await asyncio.wait_for(snapshot_seen.wait(), timeout=args.timeout)
            except TimeoutError:
                notifier.notify(f"No snapshot for {domain.name} within {args.timeout:g}s", Severity.WARNING)
        console.print(records_table(domain, coordinator.records, names=coordinator.shared_config.get("nombres")))
        return coordinator.records


__all__ = ["run_watch"]
