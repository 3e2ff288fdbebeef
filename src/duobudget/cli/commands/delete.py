"""Delete command."""

from __future__ import annotations

import argparse

from duobudget import get_domain


async def run_delete(args: argparse.Namespace) -> None:
    import duobudget.cli as cli

    config = cli.load_config(args.config)
    domain = get_domain(args.domain)

    async with cli.DuoBudget.from_config(config, notifier=cli.RichNotifier(), domains=[domain]) as app:
        coordinator = app.coordinator(domain.name)
        coordinator.load_backup()
        await coordinator.delete(args.record_id)


__all__ = ["run_delete"]
