"""Firestore remote store over the REST API."""

from __future__ import annotations

import logging
import secrets
import string
from types import TracebackType
from typing import Any

import httpx

from duobudget.auth.base import TokenResolver
from duobudget.contracts.exceptions import StoreError
from duobudget.contracts.record import CREATED_FIELD, Document, ListenQuery
from duobudget.contracts.store import ErrorCallback, RemoteStore, SnapshotCallback, Subscription
from duobudget.stores.firestore.client import FirestoreClient
from duobudget.stores.firestore.codec import decode_fields, document_id, encode_fields, encode_value, field_paths
from duobudget.stores.firestore.feed import PollingSubscription

_LOG = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_letters + string.digits
_ID_LENGTH = 20


def new_document_id() -> str:
    """Client-side auto id, the same shape Firestore SDKs generate."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))


def document_path(collection: str, doc_id: str) -> str:
    """Request path of one document; ids naming a nested path are rejected."""
    if not doc_id or "/" in doc_id:
        raise StoreError(f"Invalid document id: {doc_id!r}")
    return f"/documents/{collection}/{doc_id}"


def build_structured_query(query: ListenQuery) -> dict[str, Any]:
    return {
        "structuredQuery": {
            "from": [{"collectionId": query.collection}],
            "where": {
                "fieldFilter": {
                    "field": {"fieldPath": query.partition_field},
                    "op": "EQUAL",
                    "value": encode_value(query.partition),
                }
            },
            "orderBy": [
                {
                    "field": {"fieldPath": query.order_by},
                    "direction": "DESCENDING" if query.descending else "ASCENDING",
                }
            ],
        }
    }


class FirestoreStore(RemoteStore):
    def __init__(
        self,
        *,
        project_id: str,
        token_resolver: TokenResolver,
        database: str = "(default)",
        poll_interval: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = FirestoreClient(
            project_id=project_id,
            database=database,
            token_resolver=token_resolver,
            transport=transport,
        )
        self._poll_interval = poll_interval
        self._subscriptions: list[PollingSubscription] = []

    async def __aenter__(self) -> FirestoreStore:
        await self._client.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        await self._client.aclose()

    async def run_query(self, query: ListenQuery) -> list[Document]:
        rows = await self._client.request("POST", "/documents:runQuery", json=build_structured_query(query))
        documents: list[Document] = []
        for row in rows or []:
            document = row.get("document")
            if document is None:
                continue
            documents.append(
                Document(id=document_id(document["name"]), data=decode_fields(document.get("fields", {})))
            )
        return documents

    async def listen(
        self,
        query: ListenQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        initial = await self.run_query(query)

        async def fetch() -> list[Document]:
            return await self.run_query(query)

        subscription = PollingSubscription(
            fetch,
            interval=self._poll_interval,
            on_snapshot=on_snapshot,
            on_error=on_error,
        )
        self._subscriptions = [existing for existing in self._subscriptions if existing.active]
        self._subscriptions.append(subscription)
        subscription.start(initial)
        return subscription

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = new_document_id()
        write = {
            "update": {
                "name": f"{self._client.documents_prefix}/{collection}/{doc_id}",
                "fields": encode_fields(data),
            },
            "currentDocument": {"exists": False},
            "updateTransforms": [{"fieldPath": CREATED_FIELD, "setToServerValue": "REQUEST_TIME"}],
        }
        result = await self._client.request("POST", "/documents:commit", json={"writes": [write]}, allow_conflict=True)
        if result is None:
            # A retried commit found the document from its own first attempt.
            _LOG.debug("Document %s/%s already existed after retry", collection, doc_id)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._client.request("DELETE", document_path(collection, doc_id))

    async def get_document(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        payload = await self._client.request("GET", document_path(collection, doc_id), allow_not_found=True)
        if payload is None:
            return None
        return decode_fields(payload.get("fields", {}))

    async def merge_document(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        params = [("updateMask.fieldPaths", path) for path in field_paths(patch)]
        await self._client.request(
            "PATCH",
            document_path(collection, doc_id),
            params=params,
            json={"fields": encode_fields(patch)},
        )
