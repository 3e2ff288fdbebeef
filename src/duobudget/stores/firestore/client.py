"""Thin Firestore REST v1 client."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from duobudget.auth.base import TokenResolver
from duobudget.contracts.exceptions import AuthenticationError, StoreError, StoreUnavailableError
from duobudget.stores.firestore._retrying_transport import RetryingTransport

_LOG = logging.getLogger(__name__)

API_ROOT = "https://firestore.googleapis.com/v1"

QueryParams = list[tuple[str, str]] | dict[str, str]


class FirestoreClient:
    """Authenticated JSON requests against one Firestore database.

    Paths are relative to ``projects/{project}/databases/{database}`` and
    must start with ``/`` (``/documents:runQuery``, ``/documents/gastos/abc``).
    """

    def __init__(
        self,
        *,
        project_id: str,
        token_resolver: TokenResolver,
        database: str = "(default)",
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 3,
    ) -> None:
        self._project_id = project_id
        self._database = database
        self._token_resolver = token_resolver
        self._transport = transport
        self._max_retries = max_retries
        self._client: httpx.AsyncClient | None = None

    @property
    def documents_prefix(self) -> str:
        return f"projects/{self._project_id}/databases/{self._database}/documents"

    async def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=f"{API_ROOT}/projects/{self._project_id}/databases/{self._database}",
            transport=RetryingTransport(transport=self._transport, max_retries=self._max_retries),
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            timeout=httpx.Timeout(30.0),
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: QueryParams | None = None,
        json: Any = None,
        allow_not_found: bool = False,
        allow_conflict: bool = False,
    ) -> Any:
        if self._client is None:
            raise StoreError("Firestore client is not open. Use 'async with'.")
        response = await self._send(method, path, params=params, json=json)
        if response.status_code == 401:
            # Expired or revoked ID token: fetch a new one and replay once.
            _LOG.info("Firestore rejected the ID token; resolving a new one")
            self._token_resolver.invalidate()
            response = await self._send(method, path, params=params, json=json)

        status = response.status_code
        if status == 404 and allow_not_found:
            return None
        if status == 409 and allow_conflict:
            return None
        if status in (401, 403):
            raise AuthenticationError(f"Firestore rejected credentials (HTTP {status}): {_error_message(response)}")
        if status >= 400:
            raise StoreError(f"Firestore {method} {path} failed (HTTP {status}): {_error_message(response)}")
        if not response.content:
            return {}
        return response.json()

    async def _send(self, method: str, path: str, *, params: QueryParams | None, json: Any) -> httpx.Response:
        assert self._client is not None
        token = await self._token_resolver.resolve()
        _LOG.debug("%s %s", method, path)
        try:
            return await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TransportError as exc:
            raise StoreUnavailableError(f"Firestore {method} {path} failed: {exc}") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return str(payload)[:200]
