"""Polling change feed for stores without a push channel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from duobudget.contracts.exceptions import StoreError
from duobudget.contracts.record import Document, Snapshot
from duobudget.contracts.store import ErrorCallback, SnapshotCallback, Subscription
from duobudget.stores.utils import diff_documents

_LOG = logging.getLogger(__name__)


class PollingSubscription(Subscription):
    """Re-runs a query every *interval* seconds and emits the differences.

    The first delivery reports every document as ``added``; later ones are
    only emitted when something changed.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[list[Document]]],
        *,
        interval: float,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> None:
        self._fetch = fetch
        self._interval = interval
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._previous: dict[str, dict[str, Any]] = {}
        self._active = True
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._active

    def start(self, initial: list[Document]) -> None:
        self._task = asyncio.create_task(self._run(initial))

    def unsubscribe(self) -> None:
        self._active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self, documents: list[Document]) -> None:
        self._emit(documents, initial=True)
        while self._active:
            await asyncio.sleep(self._interval)
            try:
                documents = await self._fetch()
            except StoreError as exc:
                _LOG.debug("Poll failed: %s", exc)
                if self._active:
                    self._on_error(exc)
                continue
            self._emit(documents)

    def _emit(self, documents: list[Document], *, initial: bool = False) -> None:
        changes = diff_documents(self._previous, documents)
        if not changes and not initial:
            return
        self._previous = {document.id: document.data for document in documents}
        if self._active:
            self._on_snapshot(Snapshot(documents=tuple(documents), changes=changes))
