"""File-backed local backup."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from duobudget.contracts.backup import LocalBackup
from duobudget.contracts.exceptions import BackupError

_LOG = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileBackup(LocalBackup):
    """Stores each key as ``<directory>/<key>.json``.

    The directory is created on first write, so a read-only first run
    (e.g. ``duobudget list``) never touches the filesystem.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key) or key.startswith("."):
            raise BackupError(f"invalid backup key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise BackupError(f"failed reading backup: {path}") from exc

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(value, encoding="utf-8")
        except OSError as exc:
            raise BackupError(f"failed writing backup: {path}") from exc
        _LOG.debug("Wrote backup %s (%d bytes)", path, len(value))

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise BackupError(f"failed removing backup: {path}") from exc
