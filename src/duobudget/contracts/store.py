"""Remote document store contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType
from typing import Any

from duobudget.contracts.record import ListenQuery, Snapshot

SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[BaseException], None]


class Subscription(ABC):
    """Handle for an active change feed."""

    @property
    @abstractmethod
    def active(self) -> bool: ...  # pragma: no cover

    @abstractmethod
    def unsubscribe(self) -> None: ...  # pragma: no cover


class RemoteStore(ABC):
    @abstractmethod
    async def __aenter__(self) -> RemoteStore: ...  # pragma: no cover

    @abstractmethod
    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...  # pragma: no cover

    @abstractmethod
    async def listen(
        self,
        query: ListenQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription: ...  # pragma: no cover

    @abstractmethod
    async def add(self, collection: str, data: dict[str, Any]) -> str: ...  # pragma: no cover

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None: ...  # pragma: no cover

    @abstractmethod
    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None: ...  # pragma: no cover

    @abstractmethod
    async def merge_document(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None: ...  # pragma: no cover
