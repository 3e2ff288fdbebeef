"""Public contracts for duobudget."""

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
from duobudget.contracts.record import (
    ChangeType,
    Document,
    ListenQuery,
    Record,
    RecordChange,
    Snapshot,
    is_local_id,
    record_from_document,
    record_to_document,
)
from duobudget.contracts.store import RemoteStore, Subscription

__all__ = [
    "AuthenticationError",
    "BackupError",
    "ChangeType",
    "ConfigError",
    "Document",
    "DomainSpec",
    "DuoBudgetConfig",
    "DuoBudgetError",
    "ListenQuery",
    "LocalBackup",
    "Notifier",
    "NullNotifier",
    "Record",
    "RecordChange",
    "RemoteStore",
    "Severity",
    "Snapshot",
    "StoreError",
    "StoreUnavailableError",
    "Subscription",
    "is_local_id",
    "record_from_document",
    "record_to_document",
]
