"""Terminal rendering for records and summaries."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from rich.table import Table

from duobudget.contracts.config import DomainSpec
from duobudget.contracts.record import Record
from duobudget.summary import ExpenseSummary, LimitSummary, SavingsSummary, UpcomingDate


def _owner_name(owner: str, names: Mapping[str, Any]) -> str:
    return str(names.get(owner) or owner)


def _cell(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.2f}"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if value is None:
        return ""
    return str(value)


def records_table(domain: DomainSpec, records: Iterable[Record], *, names: Mapping[str, Any] | None = None) -> Table:
    records = list(records)
    names = names or {}
    field_names: list[str] = []
    for record in records:
        for key in record.fields:
            if key not in field_names:
                field_names.append(key)

    table = Table(title=f"{domain.name} ({len(records)})")
    table.add_column("id", no_wrap=True)
    table.add_column("date")
    table.add_column("owner")
    for key in field_names:
        table.add_column(key)

    for record in records:
        style = "yellow" if record.local_only or record.is_local else None
        table.add_row(
            record.id,
            record.effective_date.isoformat() if record.effective_date else "",
            _owner_name(record.owner, names),
            *(_cell(record.fields.get(key)) for key in field_names),
            style=style,
        )
    return table


def format_summary(
    *,
    today: date,
    expenses: ExpenseSummary,
    savings: SavingsSummary,
    limits: LimitSummary,
    upcoming: list[UpcomingDate],
    names: Mapping[str, Any] | None = None,
) -> str:
    names = names or {}
    person1 = _owner_name("persona1", names)
    person2 = _owner_name("persona2", names)

    lines = [
        "",
        f"duobudget - summary for {today.isoformat()}",
        "",
        "  Expenses",
        f"    Today:      ${expenses.today_total:.2f}",
        f"    This week:  ${expenses.week_total:.2f} of ${expenses.budget:.2f} ({expenses.percent_used:.0f}%)",
        f"    Remaining:  ${expenses.remaining:.2f}",
        f"    {person1}: ${expenses.by_owner.get('persona1', 0.0):.2f}"
        f"  {person2}: ${expenses.by_owner.get('persona2', 0.0):.2f}"
        f"  (difference ${expenses.difference:.2f})",
        "",
        "  Savings",
        f"    This month: ${savings.month_total:.2f} of ${savings.monthly_goal:.2f} ({savings.monthly_percent:.1f}%)",
        f"    This year:  ${savings.year_total:.2f} of ${savings.yearly_goal:.2f} ({savings.yearly_percent:.1f}%)",
        "",
        "  Limits",
        f"    Forced saving this week:  ${limits.week_total:.2f}",
        f"    Forced saving this month: ${limits.month_total:.2f}",
        f"    Days over the limit:      {limits.days_over_limit}",
        "",
        "  Upcoming dates",
    ]
    if not upcoming:
        lines.append("    none")
    for entry in upcoming:
        when = "today" if entry.days_left == 0 else f"in {entry.days_left} day{'s' if entry.days_left != 1 else ''}"
        lines.append(f"    {entry.on.isoformat()}  {entry.name} ({when})")
    lines.append("")
    return "\n".join(lines)


__all__ = ["format_summary", "records_table"]
