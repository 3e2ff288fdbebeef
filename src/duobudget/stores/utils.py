"""Helpers shared by store implementations."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from duobudget.contracts.record import ChangeType, Document, RecordChange


def diff_documents(previous: Mapping[str, Mapping[str, Any]], current: Iterable[Document]) -> tuple[RecordChange, ...]:
    """Describe how *current* differs from the *previous* id -> data mapping.

    Changes are listed in result order, followed by removals.
    """
    changes: list[RecordChange] = []
    seen: set[str] = set()
    for document in current:
        seen.add(document.id)
        before = previous.get(document.id)
        if before is None:
            changes.append(RecordChange(ChangeType.ADDED, document.id))
        elif before != document.data:
            changes.append(RecordChange(ChangeType.MODIFIED, document.id))
    changes.extend(RecordChange(ChangeType.REMOVED, doc_id) for doc_id in previous if doc_id not in seen)
    return tuple(changes)
