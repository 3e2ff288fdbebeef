"""Auth resolver interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod


class TokenResolver(ABC):
    @abstractmethod
    async def resolve(self) -> str:
        """Resolve and return a Firebase ID token."""

    def invalidate(self) -> None:
        """Forget a cached token the server rejected; the next resolve() fetches a new one."""
        return None
