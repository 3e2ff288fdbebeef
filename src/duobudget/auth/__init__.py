"""Auth module public exports."""

from duobudget.auth.base import TokenResolver
from duobudget.auth.factory import create_token_resolver

__all__ = ["TokenResolver", "create_token_resolver"]
