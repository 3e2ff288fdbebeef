"""Record ordering helpers."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, time

from duobudget.contracts.record import DATE_FIELD, Record
from duobudget.utils import as_utc

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _as_instant(value: date | None) -> datetime:
    if value is None:
        return _EPOCH
    return datetime.combine(value, time.min, tzinfo=UTC)


def record_instant(record: Record) -> datetime:
    """Creation instant when known, otherwise midnight UTC of the effective date."""
    if record.created_at is not None:
        return as_utc(record.created_at)
    return _as_instant(record.effective_date)


def sort_records(records: Iterable[Record], *, order_by: str, descending: bool = True) -> list[Record]:
    if order_by == DATE_FIELD:
        return sorted(records, key=lambda record: _as_instant(record.effective_date), reverse=descending)
    return sorted(records, key=record_instant, reverse=descending)
