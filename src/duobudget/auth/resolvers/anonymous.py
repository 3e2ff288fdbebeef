"""Anonymous Firebase sign-in resolver."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from duobudget.auth.base import TokenResolver
from duobudget.contracts.exceptions import AuthenticationError, StoreUnavailableError

_LOG = logging.getLogger(__name__)

SIGN_UP_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signUp"
REFRESH_URL = "https://securetoken.googleapis.com/v1/token"

# ID tokens last one hour; renew a minute early.
_DEFAULT_LIFETIME = 3600.0
_REFRESH_MARGIN = 60.0


class AnonymousTokenResolver(TokenResolver):
    """Signs in anonymously with the project's web API key and caches the ID token.

    Both people share data through the partition tag, not through the
    signed-in identity, so a fresh anonymous account per process is enough.
    The ID token is renewed with the refresh token shortly before it
    expires, keeping the same anonymous account; a new account is only
    created when the refresh token itself is rejected.
    """

    def __init__(
        self,
        *,
        api_key: str,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api_key = api_key
        self._transport = transport
        self._clock = clock
        self._token: str | None = None
        self._refresh_token: str | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def resolve(self) -> str:
        token = self._fresh_token()
        if token is not None:
            return token
        if not self._api_key.strip():
            raise AuthenticationError("Anonymous sign-in requires an API key")

        async with self._lock:
            token = self._fresh_token()
            if token is not None:
                return token
            if self._refresh_token is not None:
                try:
                    return await self._refresh()
                except AuthenticationError as exc:
                    _LOG.warning("Token refresh rejected, signing in again: %s", exc)
                    self._refresh_token = None
            return await self._sign_up()

    def invalidate(self) -> None:
        _LOG.debug("Dropping cached ID token")
        self._token = None
        self._expires_at = 0.0

    def _fresh_token(self) -> str | None:
        if self._token is not None and self._clock() < self._expires_at - _REFRESH_MARGIN:
            return self._token
        return None

    async def _sign_up(self) -> str:
        payload = await self._post(
            "Anonymous sign-in",
            SIGN_UP_URL,
            json={"returnSecureToken": True},
        )
        token = str(payload.get("idToken") or "").strip()
        if not token:
            raise AuthenticationError("Anonymous sign-in returned no idToken")
        _LOG.debug("Signed in anonymously")
        return self._store(token, payload.get("refreshToken"), payload.get("expiresIn"))

    async def _refresh(self) -> str:
        payload = await self._post(
            "Token refresh",
            REFRESH_URL,
            data={"grant_type": "refresh_token", "refresh_token": self._refresh_token or ""},
        )
        token = str(payload.get("id_token") or "").strip()
        if not token:
            raise AuthenticationError("Token refresh returned no id_token")
        _LOG.debug("Refreshed anonymous ID token")
        return self._store(token, payload.get("refresh_token") or self._refresh_token, payload.get("expires_in"))

    async def _post(self, action: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=httpx.Timeout(15.0)) as client:
                response = await client.post(url, params={"key": self._api_key}, **kwargs)
        except httpx.TransportError as exc:
            raise StoreUnavailableError(f"{action} failed: {exc}") from exc

        if response.status_code >= 400:
            raise AuthenticationError(f"{action} rejected (HTTP {response.status_code})")
        payload = response.json()
        return payload if isinstance(payload, dict) else {}

    def _store(self, token: str, refresh_token: Any, expires_in: Any) -> str:
        try:
            lifetime = float(expires_in)
        except (TypeError, ValueError):
            lifetime = _DEFAULT_LIFETIME
        self._token = token
        self._refresh_token = str(refresh_token) if refresh_token else None
        self._expires_at = self._clock() + lifetime
        return token
