"""Summary command."""

from __future__ import annotations

import argparse
from datetime import date

from duobudget import EXPENSES, LIMITS, SAVINGS, SPECIAL_DATES
from duobudget.cli.render import format_summary
from duobudget.summary import expense_summary, limit_summary, savings_summary, upcoming_dates


async def run_summary(args: argparse.Namespace) -> str:
    import duobudget.cli as cli

    config = cli.load_config(args.config)
    today = args.date or date.today()
    coordinators = cli.load_offline(config)

    expenses = coordinators[EXPENSES.name]
    savings = coordinators[SAVINGS.name]
    expense_config = expenses.shared_config
    savings_config = savings.shared_config

    text = format_summary(
        today=today,
        expenses=expense_summary(expenses.records, budget=float(expense_config["presupuesto"]), today=today),
        savings=savings_summary(
            savings.records,
            monthly_goal=float(savings_config["metaMensual"]),
            yearly_goal=float(savings_config["metaAnual"]),
            today=today,
        ),
        limits=limit_summary(coordinators[LIMITS.name].records, today=today),
        upcoming=upcoming_dates(coordinators[SPECIAL_DATES.name].records, today=today),
        names=expense_config.get("nombres"),
    )
    print(text)
    return text


__all__ = ["run_summary"]
