"""Notification sink contract.

The coordinator reports user-facing outcomes through a ``Notifier``;
hosts (the CLI's Rich console, a GUI toast, a test spy) implement it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum


class Severity(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notifier(ABC):
    """Observer interface for user-facing notifications."""

    @abstractmethod
    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        """Show *message* to the user with the given *severity*."""
        ...  # pragma: no cover


class NullNotifier(Notifier):
    """No-op implementation used when no notification sink is wired."""

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        pass
