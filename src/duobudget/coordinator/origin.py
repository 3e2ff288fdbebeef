"""Remote-origin classification for feed batches.

A batch is *remote-origin* when it most likely reflects a change made by
the other person's session rather than this session's own write echoing
back. Without a correlation id on writes, the only signal available is the
shape of the batch and the age of newly added documents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Collection
from datetime import datetime

from duobudget.contracts.record import CREATED_FIELD, ChangeType, Snapshot
from duobudget.utils import as_utc, utc_now


class RemoteOriginDetector(ABC):
    @abstractmethod
    def is_remote_origin(self, snapshot: Snapshot, known_ids: Collection[str]) -> bool:
        """Return True when *snapshot* carries a change not made by this session."""
        ...  # pragma: no cover


class TimestampAgeDetector(RemoteOriginDetector):
    """Grace-window heuristic.

    Any ``modified`` or ``removed`` entry counts as remote. An ``added`` entry
    counts as remote when the document is unknown locally and its server
    creation time is older than *grace_window* seconds. A slow write can
    therefore be misread as remote; the cost is one extra resync.
    """

    def __init__(self, grace_window: float = 2.0, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._grace_window = grace_window
        self._clock = clock

    @property
    def grace_window(self) -> float:
        return self._grace_window

    def is_remote_origin(self, snapshot: Snapshot, known_ids: Collection[str]) -> bool:
        documents = {document.id: document for document in snapshot.documents}
        now = self._clock()
        for change in snapshot.changes:
            if change.type in (ChangeType.MODIFIED, ChangeType.REMOVED):
                return True
            if change.doc_id in known_ids:
                continue
            document = documents.get(change.doc_id)
            if document is None:
                continue
            created = document.data.get(CREATED_FIELD)
            if isinstance(created, datetime) and (now - as_utc(created)).total_seconds() > self._grace_window:
                return True
        return False


class NeverRemoteDetector(RemoteOriginDetector):
    """Detector for domains that always accept the snapshot without a resync."""

    def is_remote_origin(self, snapshot: Snapshot, known_ids: Collection[str]) -> bool:
        return False
