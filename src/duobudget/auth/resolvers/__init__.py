"""Token resolver implementations."""

from duobudget.auth.resolvers.anonymous import AnonymousTokenResolver
from duobudget.auth.resolvers.env import EnvTokenResolver
from duobudget.auth.resolvers.static import StaticTokenResolver

__all__ = ["AnonymousTokenResolver", "EnvTokenResolver", "StaticTokenResolver"]
