"""httpx async transport that retries transient Firestore failures."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import time

import httpx

_LOG = logging.getLogger(__name__)

# google.rpc status codes Firestore documents as transient.
_RETRYABLE_STATUSES = frozenset({"ABORTED", "DEADLINE_EXCEEDED", "INTERNAL", "RESOURCE_EXHAUSTED", "UNAVAILABLE"})

# Of those, the ones that guarantee the request was not applied.
_NOT_APPLIED_STATUSES = frozenset({"ABORTED", "RESOURCE_EXHAUSTED", "UNAVAILABLE"})

# Bare HTTP errors without a Firestore body come from proxies and load balancers.
_GATEWAY_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


def firestore_status(response: httpx.Response) -> str | None:
    """Return the ``error.status`` of a Firestore error body, if there is one."""
    try:
        payload = json.loads(response.content)
    except ValueError:
        return None
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and isinstance(error.get("status"), str):
        return error["status"]
    return None


def is_replay_safe(request: httpx.Request) -> bool:
    """Whether sending *request* twice has the same effect as sending it once.

    Reads, deletes, masked patches and queries are. A commit is only when
    every write carries a ``currentDocument`` precondition, so a replay of
    an applied commit fails instead of writing again.
    """
    if request.method != "POST":
        return True
    path = request.url.path
    if path.endswith(":runQuery"):
        return True
    if not path.endswith(":commit"):
        return False
    try:
        body = json.loads(request.content or b"{}")
    except (httpx.RequestNotRead, ValueError):
        return False
    writes = body.get("writes") if isinstance(body, dict) else None
    return isinstance(writes, list) and all(isinstance(write, dict) and "currentDocument" in write for write in writes)


class RetryingTransport(httpx.AsyncBaseTransport):
    """Wraps an httpx async transport with retries for transient Firestore errors.

    - Firestore errors are classified by the ``error.status`` in the body.
      ``ABORTED``, ``RESOURCE_EXHAUSTED`` and ``UNAVAILABLE`` are always
      retried; ``INTERNAL`` and ``DEADLINE_EXCEEDED`` may have been applied
      and are only retried for replay-safe requests.
    - Bare gateway errors and transport failures are only retried for
      replay-safe requests.
    - ``RESOURCE_EXHAUSTED`` starts a cooldown (``Retry-After`` or the
      backoff delay) that every request through this transport waits out.
    - Backoff is exponential with jitter, capped at *max_delay*.
    """

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 8.0,
    ) -> None:
        self._transport = transport or httpx.AsyncHTTPTransport()
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._cooldown_until = 0.0

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        replay_safe = is_replay_safe(request)
        for attempt in range(self._max_retries + 1):
            await self._wait_for_cooldown()

            try:
                response = await self._transport.handle_async_request(request)
            except httpx.TransportError as exc:
                if not replay_safe or attempt >= self._max_retries:
                    raise
                _LOG.warning("Firestore %s %s failed (%s); retrying", request.method, request.url.path, exc)
                await asyncio.sleep(self._delay(attempt))
                continue

            if response.status_code < 400 or attempt >= self._max_retries:
                return response

            await response.aread()
            status = firestore_status(response)
            if not self._should_retry(response.status_code, status, replay_safe):
                return response

            delay = self._delay(attempt)
            if status == "RESOURCE_EXHAUSTED" or (status is None and response.status_code == 429):
                self._start_cooldown(self._retry_after(response, default=delay))
            await response.aclose()
            _LOG.warning(
                "Firestore %s %s returned %s; retrying (attempt %d)",
                request.method,
                request.url.path,
                status or response.status_code,
                attempt + 1,
            )
            await asyncio.sleep(delay)

        raise httpx.TransportError("Request failed after retries")  # pragma: no cover

    async def aclose(self) -> None:
        await self._transport.aclose()

    @staticmethod
    def _should_retry(status_code: int, status: str | None, replay_safe: bool) -> bool:
        if status is None:
            return replay_safe and status_code in _GATEWAY_STATUS_CODES
        if status not in _RETRYABLE_STATUSES:
            return False
        return replay_safe or status in _NOT_APPLIED_STATUSES

    def _delay(self, attempt: int) -> float:
        return min(self._max_delay, self._base_delay * 2**attempt) * random.uniform(0.5, 1.0)

    def _start_cooldown(self, seconds: float) -> None:
        self._cooldown_until = max(self._cooldown_until, time.monotonic() + seconds)

    async def _wait_for_cooldown(self) -> None:
        remaining = self._cooldown_until - time.monotonic()
        if remaining > 0:
            await asyncio.sleep(remaining)

    @staticmethod
    def _retry_after(response: httpx.Response, *, default: float) -> float:
        raw = response.headers.get("Retry-After")
        if raw is None:
            return default
        try:
            return max(0.0, float(raw))
        except ValueError:
            return default
