from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from duobudget.auth.resolvers.static import StaticTokenResolver
from duobudget.contracts.exceptions import StoreError
from duobudget.contracts.record import ChangeType, ListenQuery, RecordChange, Snapshot
from duobudget.stores.firestore.store import FirestoreStore, build_structured_query, new_document_id

_PREFIX = "projects/duo/databases/(default)/documents"


def _row(doc_id: str, monto: float) -> dict[str, Any]:
    return {
        "document": {
            "name": f"{_PREFIX}/gastos/{doc_id}",
            "fields": {
                "monto": {"doubleValue": monto},
                "sharedId": {"stringValue": "nuestra_pareja"},
                "timestamp": {"timestampValue": "2024-03-01T10:00:00Z"},
            },
        }
    }


class FakeFirestore:
    """Answers Firestore REST calls from an in-test document list."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith(":runQuery"):
            return httpx.Response(200, json=[*self.rows, {"readTime": "2024-03-01T10:00:01Z"}])
        if request.url.path.endswith(":commit"):
            return httpx.Response(200, json={"writeResults": [{}]})
        if request.method == "GET":
            return httpx.Response(404, json={"error": {"message": "not found"}})
        return httpx.Response(200, json={})

    def bodies(self) -> list[Any]:
        return [json.loads(request.content) if request.content else None for request in self.requests]


def _store(server: FakeFirestore, *, poll_interval: float = 0.01) -> FirestoreStore:
    return FirestoreStore(
        project_id="duo",
        token_resolver=StaticTokenResolver(token="tok"),
        poll_interval=poll_interval,
        transport=httpx.MockTransport(server),
    )


def test_new_document_id_shape() -> None:
    doc_id = new_document_id()

    assert len(doc_id) == 20
    assert doc_id.isalnum()
    assert new_document_id() != doc_id


def test_structured_query_filters_partition_and_orders() -> None:
    query = ListenQuery(collection="fechasEspeciales", partition="p", order_by="fecha", descending=False)

    assert build_structured_query(query) == {
        "structuredQuery": {
            "from": [{"collectionId": "fechasEspeciales"}],
            "where": {
                "fieldFilter": {
                    "field": {"fieldPath": "sharedId"},
                    "op": "EQUAL",
                    "value": {"stringValue": "p"},
                }
            },
            "orderBy": [{"field": {"fieldPath": "fecha"}, "direction": "ASCENDING"}],
        }
    }


@pytest.mark.asyncio
async def test_run_query_decodes_documents_and_skips_read_time_rows() -> None:
    server = FakeFirestore()
    server.rows = [_row("a", 12.5)]

    async with _store(server) as store:
        documents = await store.run_query(ListenQuery(collection="gastos", partition="nuestra_pareja"))

    assert [document.id for document in documents] == ["a"]
    assert documents[0].data["monto"] == 12.5
    assert documents[0].data["timestamp"] == datetime(2024, 3, 1, 10, tzinfo=UTC)


@pytest.mark.asyncio
async def test_add_commits_create_only_write_with_server_timestamp() -> None:
    server = FakeFirestore()

    async with _store(server) as store:
        doc_id = await store.add("gastos", {"monto": 12.5, "sharedId": "nuestra_pareja"})

    write = server.bodies()[0]["writes"][0]
    assert write["update"]["name"] == f"{_PREFIX}/gastos/{doc_id}"
    assert write["update"]["fields"]["monto"] == {"doubleValue": 12.5}
    assert write["currentDocument"] == {"exists": False}
    assert write["updateTransforms"] == [{"fieldPath": "timestamp", "setToServerValue": "REQUEST_TIME"}]


@pytest.mark.asyncio
async def test_delete_and_missing_document() -> None:
    server = FakeFirestore()

    async with _store(server) as store:
        await store.delete("gastos", "abc")
        missing = await store.get_document("config", "nuestra_pareja")

    assert missing is None
    assert server.requests[0].method == "DELETE"
    assert server.requests[0].url.path.endswith("/documents/gastos/abc")


@pytest.mark.asyncio
async def test_merge_document_masks_leaf_paths() -> None:
    server = FakeFirestore()

    async with _store(server) as store:
        await store.merge_document("config", "nuestra_pareja", {"ahorroConfig": {"metaMensual": 600}})

    request = server.requests[0]
    assert request.method == "PATCH"
    assert request.url.params.get_list("updateMask.fieldPaths") == ["ahorroConfig.metaMensual"]
    assert server.bodies()[0] == {
        "fields": {"ahorroConfig": {"mapValue": {"fields": {"metaMensual": {"integerValue": "600"}}}}}
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("doc_id", ["abc/def", "../config/nuestra_pareja", ""])
async def test_document_ids_naming_other_paths_are_rejected(doc_id: str) -> None:
    server = FakeFirestore()

    async with _store(server) as store:
        with pytest.raises(StoreError, match="Invalid document id"):
            await store.delete("gastos", doc_id)
        with pytest.raises(StoreError, match="Invalid document id"):
            await store.get_document("gastos", doc_id)
        with pytest.raises(StoreError, match="Invalid document id"):
            await store.merge_document("config", doc_id, {"nombres": {"persona1": "A"}})

    assert server.requests == []


@pytest.mark.asyncio
async def test_listen_emits_initial_snapshot_then_changes() -> None:
    server = FakeFirestore()
    server.rows = [_row("a", 1)]
    received: list[Snapshot] = []

    async with _store(server) as store:
        subscription = await store.listen(
            ListenQuery(collection="gastos", partition="nuestra_pareja"), received.append, lambda error: None
        )
        await asyncio.sleep(0)
        server.rows = [_row("a", 2), _row("b", 3)]
        for _ in range(50):
            if len(received) >= 2:
                break
            await asyncio.sleep(0.01)
        assert subscription.active

    assert received[0].changes == (RecordChange(ChangeType.ADDED, "a"),)
    assert received[1].changes == (
        RecordChange(ChangeType.MODIFIED, "a"),
        RecordChange(ChangeType.ADDED, "b"),
    )
    assert subscription.active is False
