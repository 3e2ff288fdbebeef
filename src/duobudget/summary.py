"""Aggregations over domain records.

Pure functions: they read ``Record.fields`` and ``Record.effective_date`` and
never touch the coordinator or the store.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from pydantic import BaseModel

from duobudget.contracts.record import Record

AMOUNT_FIELD = "monto"
FORCED_SAVING_FIELD = "ahorroTotal"
EXCESS_FIELD = "exceso"
NAME_FIELD = "nombre"

OWNERS = ("persona1", "persona2")


def week_start(today: date) -> date:
    """Monday of the week containing *today*."""
    return today - timedelta(days=today.weekday())


def month_start(today: date) -> date:
    return today.replace(day=1)


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return 0.0
    return 0.0


def _amount(record: Record, field: str = AMOUNT_FIELD) -> float:
    return _number(record.fields.get(field))


def _since(records: Iterable[Record], start: date) -> list[Record]:
    return [record for record in records if record.effective_date is not None and record.effective_date >= start]


def _per_owner(records: Iterable[Record], field: str = AMOUNT_FIELD) -> dict[str, float]:
    totals = {owner: 0.0 for owner in OWNERS}
    for record in records:
        totals[record.owner] = totals.get(record.owner, 0.0) + _amount(record, field)
    return totals


def _percent(total: float, goal: float) -> float:
    if goal <= 0:
        return 0.0
    return min(total / goal * 100, 100.0)


class ExpenseSummary(BaseModel):
    today_total: float
    week_total: float
    by_owner: dict[str, float]
    difference: float
    budget: float
    remaining: float
    percent_used: float


def expense_summary(records: Iterable[Record], *, budget: float, today: date) -> ExpenseSummary:
    """Weekly expense totals against the shared budget."""
    records = list(records)
    week = _since(records, week_start(today))
    week_total = sum(_amount(record) for record in week)
    by_owner = _per_owner(week)
    return ExpenseSummary(
        today_total=sum(_amount(record) for record in records if record.effective_date == today),
        week_total=week_total,
        by_owner=by_owner,
        difference=abs(by_owner["persona1"] - by_owner["persona2"]),
        budget=budget,
        remaining=budget - week_total,
        percent_used=_percent(week_total, budget),
    )


class LimitEvaluation(BaseModel):
    """Outcome of checking one day's spending against a limit.

    Any excess becomes a forced saving, split evenly between both people.
    A limit of 0 means "no limit" and the whole spend is treated as excess.
    """

    actual: float
    limit: float
    excess: float
    forced_saving: float
    per_person: float
    within_limit: bool

    def to_fields(self) -> dict[str, Any]:
        """Field names used by stored limit records."""
        return {
            "gastoReal": self.actual,
            "limite": self.limit,
            EXCESS_FIELD: self.excess,
            FORCED_SAVING_FIELD: self.forced_saving,
            "ahorroPorPersona": self.per_person,
            "dentroDeLimite": self.within_limit,
        }


def evaluate_limit(actual: float, limit: float) -> LimitEvaluation:
    if actual <= 0:
        raise ValueError("actual spend must be positive")
    if limit < 0:
        raise ValueError("limit must not be negative")

    if limit == 0:
        excess = actual
    else:
        excess = max(actual - limit, 0.0)
    return LimitEvaluation(
        actual=actual,
        limit=limit,
        excess=excess,
        forced_saving=excess,
        per_person=excess / 2,
        within_limit=limit != 0 and excess == 0,
    )


class LimitSummary(BaseModel):
    today_total: float
    week_total: float
    month_total: float
    total: float
    days_over_limit: int


def limit_summary(records: Iterable[Record], *, today: date) -> LimitSummary:
    records = list(records)

    def total(selected: Iterable[Record]) -> float:
        return sum(_amount(record, FORCED_SAVING_FIELD) for record in selected)

    return LimitSummary(
        today_total=total(record for record in records if record.effective_date == today),
        week_total=total(_since(records, week_start(today))),
        month_total=total(_since(records, month_start(today))),
        total=total(records),
        days_over_limit=sum(1 for record in records if _amount(record, EXCESS_FIELD) > 0),
    )


class SavingsSummary(BaseModel):
    today_total: float
    month_total: float
    year_total: float
    by_owner: dict[str, float]
    monthly_goal: float
    yearly_goal: float
    monthly_percent: float
    yearly_percent: float


def savings_summary(
    records: Iterable[Record],
    *,
    monthly_goal: float,
    yearly_goal: float,
    today: date,
) -> SavingsSummary:
    records = list(records)
    month = _since(records, month_start(today))
    year = _since(records, date(today.year, 1, 1))
    month_total = sum(_amount(record) for record in month)
    year_total = sum(_amount(record) for record in year)
    return SavingsSummary(
        today_total=sum(_amount(record) for record in records if record.effective_date == today),
        month_total=month_total,
        year_total=year_total,
        by_owner=_per_owner(month),
        monthly_goal=monthly_goal,
        yearly_goal=yearly_goal,
        monthly_percent=_percent(month_total, monthly_goal),
        yearly_percent=_percent(year_total, yearly_goal),
    )


class UpcomingDate(BaseModel):
    record_id: str
    name: str
    on: date
    days_left: int


def upcoming_dates(records: Iterable[Record], *, today: date, limit: int = 3) -> list[UpcomingDate]:
    """Special dates from *today* on, nearest first."""
    upcoming = sorted(
        (record for record in records if record.effective_date is not None and record.effective_date >= today),
        key=lambda record: record.effective_date or today,
    )
    return [
        UpcomingDate(
            record_id=record.id,
            name=str(record.fields.get(NAME_FIELD, "")),
            on=record.effective_date,
            days_left=(record.effective_date - today).days,
        )
        for record in upcoming[:limit]
        if record.effective_date is not None
    ]
