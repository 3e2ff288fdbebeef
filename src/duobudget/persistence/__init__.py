"""Local persistence for the offline backup."""

from duobudget.persistence.backup import FileBackup

__all__ = ["FileBackup"]
