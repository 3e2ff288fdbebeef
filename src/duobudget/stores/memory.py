"""In-memory remote store."""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable
from datetime import datetime
from types import TracebackType
from typing import Any

from duobudget.contracts.record import CREATED_FIELD, Document, ListenQuery, Snapshot
from duobudget.contracts.store import ErrorCallback, RemoteStore, SnapshotCallback, Subscription
from duobudget.stores.utils import diff_documents
from duobudget.utils import deep_merge, utc_now


class MemorySubscription(Subscription):
    def __init__(self, store: MemoryStore, query: ListenQuery, on_snapshot: SnapshotCallback) -> None:
        self._store = store
        self.query = query
        self._on_snapshot = on_snapshot
        self._active = True
        self._previous: dict[str, dict[str, Any]] = {}

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        self._active = False
        self._store._detach(self)

    def refresh(self, *, initial: bool = False) -> None:
        documents = self._store.query(self.query)
        changes = diff_documents(self._previous, documents)
        if not changes and not initial:
            return
        self._previous = {document.id: copy.deepcopy(document.data) for document in documents}
        snapshot = Snapshot(documents=tuple(documents), changes=changes)
        asyncio.get_running_loop().call_soon(self._deliver, snapshot)

    def _deliver(self, snapshot: Snapshot) -> None:
        if self._active:
            self._on_snapshot(snapshot)


class MemoryStore(RemoteStore):
    """Store that keeps documents in process memory.

    Ids are deterministic and the server timestamp comes from *clock*.
    Listeners receive snapshots on the next event-loop iteration, never
    synchronously inside the mutating call.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscriptions: list[MemorySubscription] = []
        self._counter = 0

    async def __aenter__(self) -> MemoryStore:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        for subscription in list(self._subscriptions):
            subscription.unsubscribe()

    @property
    def active_subscriptions(self) -> int:
        return len(self._subscriptions)

    def query(self, query: ListenQuery) -> list[Document]:
        matched = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collections.get(query.collection, {}).items()
            if data.get(query.partition_field) == query.partition and data.get(query.order_by) is not None
        ]
        matched.sort(key=lambda document: document.data[query.order_by], reverse=query.descending)
        return matched

    async def listen(
        self,
        query: ListenQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        subscription = MemorySubscription(self, query, on_snapshot)
        self._subscriptions.append(subscription)
        subscription.refresh(initial=True)
        return subscription

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = self._next_id()
        stored = copy.deepcopy(data)
        stored[CREATED_FIELD] = self._clock()
        self._collections.setdefault(collection, {})[doc_id] = stored
        self._broadcast(collection)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        documents = self._collections.get(collection, {})
        if documents.pop(doc_id, None) is not None:
            self._broadcast(collection)

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def merge_document(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        documents = self._collections.setdefault(collection, {})
        documents[doc_id] = deep_merge(documents.get(doc_id, {}), patch)
        self._broadcast(collection)

    async def update_document(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        """Change fields of an existing document, as another session editing it would."""
        documents = self._collections.get(collection, {})
        if doc_id not in documents:
            return
        documents[doc_id] = deep_merge(documents[doc_id], patch)
        self._broadcast(collection)

    def put(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Seed a document verbatim, without notifying listeners."""
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def insert(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Store a document verbatim and notify listeners, as a write from another session would."""
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        self._broadcast(collection)

    def _next_id(self) -> str:
        self._counter += 1
        return f"doc-{self._counter}"

    def _broadcast(self, collection: str) -> None:
        for subscription in list(self._subscriptions):
            if subscription.query.collection == collection:
                subscription.refresh()

    def _detach(self, subscription: MemorySubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
