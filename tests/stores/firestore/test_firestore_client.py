from __future__ import annotations

from unittest.mock import MagicMock, patch

import httpx
import pytest

from duobudget.auth.base import TokenResolver
from duobudget.auth.resolvers.static import StaticTokenResolver
from duobudget.contracts.exceptions import AuthenticationError, StoreError, StoreUnavailableError
from duobudget.stores.firestore.client import FirestoreClient


def _client(handler) -> FirestoreClient:
    return FirestoreClient(
        project_id="duo",
        token_resolver=StaticTokenResolver(token="tok"),
        transport=httpx.MockTransport(handler),
        max_retries=1,
    )


@pytest.mark.asyncio
async def test_request_requires_open_client() -> None:
    client = _client(lambda request: httpx.Response(200, json={}))

    with pytest.raises(StoreError, match="not open"):
        await client.request("GET", "/documents/gastos/a")


@pytest.mark.asyncio
async def test_request_sends_bearer_token_under_database_path() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    client = _client(handler)
    await client.open()
    try:
        payload = await client.request("GET", "/documents/gastos/a")
    finally:
        await client.aclose()

    assert payload == {"ok": True}
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert seen[0].url.host == "firestore.googleapis.com"
    assert seen[0].url.path.endswith("/projects/duo/databases/(default)/documents/gastos/a")


def test_documents_prefix() -> None:
    client = _client(lambda request: httpx.Response(200))

    assert client.documents_prefix == "projects/duo/databases/(default)/documents"


@pytest.mark.asyncio
async def test_not_found_and_conflict_are_optional() -> None:
    statuses = iter([404, 409])
    client = _client(lambda request: httpx.Response(next(statuses), json={"error": {"message": "nope"}}))
    await client.open()
    try:
        assert await client.request("GET", "/documents/gastos/a", allow_not_found=True) is None
        assert await client.request("POST", "/documents:commit", allow_conflict=True) is None
    finally:
        await client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_rejected_credentials_raise_authentication_error(status: int) -> None:
    client = _client(lambda request: httpx.Response(status, json={"error": {"message": "denied"}}))
    await client.open()
    try:
        with pytest.raises(AuthenticationError, match="denied"):
            await client.request("GET", "/documents/gastos/a")
    finally:
        await client.aclose()


@pytest.mark.asyncio
@patch("duobudget.stores.firestore._retrying_transport.RetryingTransport._delay", return_value=0.0)
async def test_server_error_after_retries_raises_store_error(mock_delay: MagicMock) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(500, text="boom")

    client = _client(handler)
    await client.open()
    try:
        with pytest.raises(StoreError, match="HTTP 500"):
            await client.request("DELETE", "/documents/gastos/a")
    finally:
        await client.aclose()

    assert calls == 2


@pytest.mark.asyncio
@patch("duobudget.stores.firestore._retrying_transport.RetryingTransport._delay", return_value=0.0)
async def test_transport_failure_raises_store_unavailable(mock_delay: MagicMock) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    client = _client(handler)
    await client.open()
    try:
        with pytest.raises(StoreUnavailableError, match="offline"):
            await client.request("GET", "/documents/gastos/a")
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_empty_body_returns_empty_dict() -> None:
    client = _client(lambda request: httpx.Response(200))
    await client.open()
    try:
        assert await client.request("DELETE", "/documents/gastos/a") == {}
    finally:
        await client.aclose()


class _RotatingResolver(TokenResolver):
    def __init__(self) -> None:
        self.issued = 0
        self.invalidated = 0

    async def resolve(self) -> str:
        self.issued += 1
        return f"tok-{self.issued}"

    def invalidate(self) -> None:
        self.invalidated += 1


@pytest.mark.asyncio
async def test_expired_token_is_replaced_and_request_replayed_once() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        if request.headers["Authorization"] == "Bearer tok-1":
            return httpx.Response(401, json={"error": {"status": "UNAUTHENTICATED", "message": "expired"}})
        return httpx.Response(200, json={"ok": True})

    resolver = _RotatingResolver()
    client = FirestoreClient(project_id="duo", token_resolver=resolver, transport=httpx.MockTransport(handler))
    await client.open()
    try:
        assert await client.request("GET", "/documents/gastos/a") == {"ok": True}
    finally:
        await client.aclose()

    assert seen == ["Bearer tok-1", "Bearer tok-2"]
    assert resolver.invalidated == 1


@pytest.mark.asyncio
async def test_forbidden_is_not_replayed() -> None:
    resolver = _RotatingResolver()
    client = FirestoreClient(
        project_id="duo",
        token_resolver=resolver,
        transport=httpx.MockTransport(lambda request: httpx.Response(403, json={"error": {"message": "rules"}})),
    )
    await client.open()
    try:
        with pytest.raises(AuthenticationError, match="HTTP 403"):
            await client.request("GET", "/documents/gastos/a")
    finally:
        await client.aclose()

    assert resolver.issued == 1
    assert resolver.invalidated == 0
