"""Environment token resolver."""

from __future__ import annotations

import os

from duobudget.auth.base import TokenResolver
from duobudget.contracts.exceptions import AuthenticationError

TOKEN_ENV_VAR = "DUOBUDGET_ID_TOKEN"


class EnvTokenResolver(TokenResolver):
    async def resolve(self) -> str:
        token = (os.getenv(TOKEN_ENV_VAR) or "").strip()
        if not token:
            raise AuthenticationError(f"{TOKEN_ENV_VAR} is not set or empty")
        return token
