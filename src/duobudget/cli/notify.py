"""Rich-based notification sink."""

from __future__ import annotations

from typing import ClassVar

from rich.console import Console
from rich.text import Text

from duobudget.contracts.notify import Notifier, Severity


class RichNotifier(Notifier):
    """Prints each notification as one styled line on stderr."""

    _STYLES: ClassVar[dict[Severity, tuple[str, str]]] = {
        Severity.INFO: ("…", "cyan"),
        Severity.SUCCESS: ("✓", "green"),
        Severity.WARNING: ("!", "yellow"),
        Severity.ERROR: ("✗", "bold red"),
    }

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    @property
    def console(self) -> Console:
        return self._console

    def notify(self, message: str, severity: Severity = Severity.INFO) -> None:
        symbol, style = self._STYLES.get(severity, ("", ""))
        self._console.print(Text.assemble((symbol, style), " ", (message, style)))
