"""Public API surface for duobudget."""

__version__ = "0.3.0"

from duobudget.auth import TokenResolver, create_token_resolver
from duobudget.contracts.backup import LocalBackup
from duobudget.contracts.config import DomainSpec, DuoBudgetConfig
from duobudget.contracts.exceptions import (
    AuthenticationError,
    BackupError,
    ConfigError,
    DuoBudgetError,
    StoreError,
    StoreUnavailableError,
)
from duobudget.contracts.notify import Notifier, NullNotifier, Severity
from duobudget.contracts.record import ChangeType, Record, RecordChange, Snapshot
from duobudget.contracts.store import RemoteStore, Subscription
from duobudget.coordinator import RecordSyncCoordinator
from duobudget.domains import ALL_DOMAINS, EXPENSES, LIMITS, SAVINGS, SPECIAL_DATES, get_domain
from duobudget.persistence import FileBackup
from duobudget.sdk import DuoBudget, load_config, load_offline
from duobudget.stores import FirestoreStore, MemoryStore, create_store

__all__ = [
    "ALL_DOMAINS",
    "AuthenticationError",
    "BackupError",
    "ChangeType",
    "ConfigError",
    "DomainSpec",
    "DuoBudget",
    "DuoBudgetConfig",
    "DuoBudgetError",
    "EXPENSES",
    "FileBackup",
    "FirestoreStore",
    "LIMITS",
    "LocalBackup",
    "MemoryStore",
    "Notifier",
    "NullNotifier",
    "Record",
    "RecordChange",
    "RecordSyncCoordinator",
    "RemoteStore",
    "SAVINGS",
    "SPECIAL_DATES",
    "Severity",
    "Snapshot",
    "StoreError",
    "StoreUnavailableError",
    "Subscription",
    "TokenResolver",
    "create_store",
    "create_token_resolver",
    "get_domain",
    "load_config",
    "load_offline",
]
