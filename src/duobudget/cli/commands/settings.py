"""Config show/set commands."""

from __future__ import annotations

import argparse
from collections.abc import Iterable
from typing import Any

from rich.console import Console

from duobudget import ConfigError, get_domain


def build_patch(assignments: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Turn dotted ``key=value`` pairs into a nested patch."""
    patch: dict[str, Any] = {}
    for key, value in assignments:
        parts = key.split(".")
        if any(not part for part in parts):
            raise ConfigError(f"invalid setting name: {key!r}")
        target = patch
        for part in parts[:-1]:
            node = target.setdefault(part, {})
            if not isinstance(node, dict):
                raise ConfigError(f"conflicting setting: {key!r}")
            target = node
        if isinstance(target.get(parts[-1]), dict):
            raise ConfigError(f"conflicting setting: {key!r}")
        target[parts[-1]] = value
    return patch


async def run_config_show(args: argparse.Namespace) -> dict[str, Any]:
    import duobudget.cli as cli

    config = cli.load_config(args.config)
    domain = get_domain(args.domain)
    settings = cli.load_offline(config, domains=[domain])[domain.name].shared_config
    Console().print_json(data=settings)
    return settings


async def run_config_set(args: argparse.Namespace) -> bool:
    import duobudget.cli as cli

    config = cli.load_config(args.config)
    domain = get_domain(args.domain)
    patch = build_patch(args.assignments)

    async with cli.DuoBudget.from_config(config, notifier=cli.RichNotifier(), domains=[domain]) as app:
        coordinator = app.coordinator(domain.name)
        coordinator.load_backup()
        await coordinator.load_shared_config()
        return await coordinator.update_shared_config(patch)


__all__ = ["build_patch", "run_config_set", "run_config_show"]
