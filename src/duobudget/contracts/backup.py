"""Local backup contract."""

from __future__ import annotations

from abc import ABC, abstractmethod


class LocalBackup(ABC):
    """String blob storage keyed by name.

    Implementations raise ``BackupError`` on I/O failure.
    """

    @abstractmethod
    def get(self, key: str) -> str | None: ...  # pragma: no cover

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...  # pragma: no cover

    @abstractmethod
    def remove(self, key: str) -> None: ...  # pragma: no cover
