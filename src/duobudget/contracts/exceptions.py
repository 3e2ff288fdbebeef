"""Exception hierarchy for duobudget."""

from __future__ import annotations


class DuoBudgetError(Exception):
    """Base exception for all duobudget errors."""


class ConfigError(DuoBudgetError):
    """Configuration loading or validation failure."""


class StoreError(DuoBudgetError):
    """Base remote store operation failure."""


class StoreUnavailableError(StoreError):
    """Remote store could not be reached."""


class AuthenticationError(StoreError):
    """Authentication/authorization failure."""


class BackupError(DuoBudgetError):
    """Local backup read or write failure."""
