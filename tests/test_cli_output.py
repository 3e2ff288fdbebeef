from __future__ import annotations

import io
from datetime import date

from rich.console import Console

from duobudget.cli.notify import RichNotifier
from duobudget.cli.render import format_summary, records_table
from duobudget.contracts.notify import Severity
from duobudget.contracts.record import Record
from duobudget.domains import EXPENSES
from duobudget.summary import expense_summary, limit_summary, savings_summary


def _console() -> Console:
    return Console(file=io.StringIO(), width=120, color_system=None)


def test_notifier_prints_one_line_per_message() -> None:
    console = _console()
    notifier = RichNotifier(console=console)

    notifier.notify("Expenses record saved", Severity.SUCCESS)
    notifier.notify("Using local data for expenses", Severity.WARNING)

    output = console.file.getvalue()  # type: ignore[attr-defined]
    assert output.splitlines() == ["✓ Expenses record saved", "! Using local data for expenses"]


def test_records_table_uses_display_names_and_field_columns() -> None:
    console = _console()
    records = [
        Record(id="abc", owner="persona2", effective_date=date(2024, 3, 1), fields={"monto": 12.5}),
        Record(id="local_1", effective_date=date(2024, 3, 2), fields={"nota": "cafe"}, local_only=True),
    ]

    console.print(records_table(EXPENSES, records, names={"persona2": "Luis"}))

    output = console.file.getvalue()  # type: ignore[attr-defined]
    assert "expenses (2)" in output
    assert "Luis" in output
    assert "12.50" in output
    assert "nota" in output


def test_format_summary_without_upcoming_dates() -> None:
    today = date(2024, 3, 6)

    text = format_summary(
        today=today,
        expenses=expense_summary([], budget=1500, today=today),
        savings=savings_summary([], monthly_goal=500, yearly_goal=6000, today=today),
        limits=limit_summary([], today=today),
        upcoming=[],
    )

    assert "This week:  $0.00 of $1500.00 (0%)" in text
    assert "persona1: $0.00  persona2: $0.00" in text
    assert text.splitlines()[-1] == "    none"
