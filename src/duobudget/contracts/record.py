"""Record and change-feed contracts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

LOCAL_ID_PREFIX = "local_"

OWNER_FIELD = "persona"
DATE_FIELD = "fecha"
CREATED_FIELD = "timestamp"
PARTITION_FIELD = "sharedId"

_RESERVED_FIELDS = frozenset({"id", OWNER_FIELD, DATE_FIELD, CREATED_FIELD, PARTITION_FIELD})


def is_local_id(record_id: str) -> bool:
    return str(record_id).startswith(LOCAL_ID_PREFIX)


def local_id(millis: int) -> str:
    return f"{LOCAL_ID_PREFIX}{millis}"


class Record(BaseModel):
    """One user-entered fact: an expense, a saving, a limit check or a special date."""

    id: str
    owner: str = "persona1"
    effective_date: date | None = None
    created_at: datetime | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    local_only: bool = False

    @property
    def is_local(self) -> bool:
        return is_local_id(self.id)


class ChangeType(StrEnum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class Document:
    """Raw remote document: identity plus decoded field values."""

    id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class RecordChange:
    type: ChangeType
    doc_id: str


@dataclass(frozen=True)
class Snapshot:
    """One feed delivery: the full current result set plus the changes that produced it."""

    documents: tuple[Document, ...]
    changes: tuple[RecordChange, ...] = ()


@dataclass(frozen=True)
class ListenQuery:
    collection: str
    partition: str
    order_by: str = CREATED_FIELD
    descending: bool = True
    partition_field: str = PARTITION_FIELD


def _parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def record_from_document(document: Document) -> Record:
    data = document.data
    created = data.get(CREATED_FIELD)
    return Record(
        id=document.id,
        owner=str(data.get(OWNER_FIELD) or "persona1"),
        effective_date=_parse_date(data.get(DATE_FIELD)),
        created_at=created if isinstance(created, datetime) else None,
        fields={key: value for key, value in data.items() if key not in _RESERVED_FIELDS},
    )


def record_to_document(record: Record, *, partition: str) -> dict[str, Any]:
    """Build the remote payload for *record*; the store assigns id and creation time."""
    payload: dict[str, Any] = {key: value for key, value in record.fields.items() if key not in _RESERVED_FIELDS}
    payload[OWNER_FIELD] = record.owner
    if record.effective_date is not None:
        payload[DATE_FIELD] = record.effective_date.isoformat()
    payload[PARTITION_FIELD] = partition
    return payload
