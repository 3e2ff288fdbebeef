"""Token resolver factory."""

from __future__ import annotations

from duobudget.auth.base import TokenResolver
from duobudget.auth.resolvers.anonymous import AnonymousTokenResolver
from duobudget.auth.resolvers.env import EnvTokenResolver
from duobudget.auth.resolvers.static import StaticTokenResolver
from duobudget.contracts.config import DuoBudgetConfig
from duobudget.contracts.exceptions import ConfigError

RESOLVERS: dict[str, type[TokenResolver]] = {
    "anonymous": AnonymousTokenResolver,
    "env": EnvTokenResolver,
    "token": StaticTokenResolver,
}


def create_token_resolver(config: DuoBudgetConfig) -> TokenResolver:
    auth_mode = config.auth
    if auth_mode not in RESOLVERS:
        raise ConfigError(f"Unknown auth mode: {auth_mode}")

    if auth_mode == "anonymous":
        return AnonymousTokenResolver(api_key=config.api_key or "")
    if auth_mode == "env":
        return EnvTokenResolver()
    return StaticTokenResolver(token=config.token or "")
