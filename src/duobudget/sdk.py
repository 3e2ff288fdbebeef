"""SDK composition root for duobudget."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import Any

from pydantic import ValidationError

from duobudget.auth import create_token_resolver
from duobudget.contracts.backup import LocalBackup
from duobudget.contracts.config import DomainSpec, DuoBudgetConfig
from duobudget.contracts.exceptions import ConfigError
from duobudget.contracts.notify import Notifier
from duobudget.contracts.record import Record
from duobudget.contracts.store import RemoteStore
from duobudget.coordinator import NeverRemoteDetector, RecordSyncCoordinator, RemoteOriginDetector, TimestampAgeDetector
from duobudget.domains import ALL_DOMAINS
from duobudget.persistence import FileBackup
from duobudget.stores import MemoryStore, create_store
from duobudget.utils import utc_now

_LOG = logging.getLogger(__name__)

ChangeCallback = Callable[[str, tuple[Record, ...]], None]
ResyncHandler = Callable[[str], None]


def _resolve_path(value: Path, *, base_dir: Path) -> Path:
    if value.is_absolute():
        return value
    return (base_dir / value).resolve()


def load_config(path: str | Path) -> DuoBudgetConfig:
    """Load and validate config from JSON, resolving ``backup_dir`` against the config directory."""
    config_path = Path(path).expanduser().resolve()
    config_dir = config_path.parent

    try:
        raw_payload: Any = json.loads(config_path.read_text(encoding="utf-8"))
        parsed = DuoBudgetConfig.model_validate(raw_payload)
    except OSError as exc:
        raise ConfigError(f"failed reading config file: {config_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in config file: {config_path}") from exc
    except ValidationError as exc:
        raise ConfigError(f"invalid config: {exc}") from exc

    return parsed.model_copy(update={"backup_dir": _resolve_path(parsed.backup_dir, base_dir=config_dir)})


def _detector_for(domain: DomainSpec, config: DuoBudgetConfig, clock: Callable[[], datetime]) -> RemoteOriginDetector:
    if not domain.detect_remote_changes:
        return NeverRemoteDetector()
    return TimestampAgeDetector(config.grace_window, clock=clock)


def load_offline(
    config: DuoBudgetConfig,
    *,
    domains: Iterable[DomainSpec] = ALL_DOMAINS,
    backup: LocalBackup | None = None,
) -> dict[str, RecordSyncCoordinator]:
    """Coordinators holding only the backup copy; nothing is sent to the store."""
    backup = backup or FileBackup(config.backup_dir)
    coordinators: dict[str, RecordSyncCoordinator] = {}
    for domain in domains:
        coordinator = RecordSyncCoordinator(
            domain,
            store=MemoryStore(),
            backup=backup,
            partition=config.partition,
            config_collection=config.config_collection,
        )
        coordinator.load_backup()
        coordinators[domain.name] = coordinator
    return coordinators


class DuoBudget:
    """duobudget SDK public API.

    Owns one store, one backup and one :class:`RecordSyncCoordinator` per
    domain. Use as an async context manager::

        async with DuoBudget.from_config(config, notifier=notifier) as app:
            await app.start()
            app.coordinator("expenses").create({"monto": 12.5})

    When a coordinator asks for a full resynchronization and no *on_resync*
    handler was given, the coordinator's feed is re-established, which
    delivers a fresh snapshot.
    """

    def __init__(
        self,
        *,
        config: DuoBudgetConfig,
        store: RemoteStore,
        backup: LocalBackup,
        notifier: Notifier | None = None,
        on_change: ChangeCallback | None = None,
        on_resync: ResyncHandler | None = None,
        domains: Iterable[DomainSpec] = ALL_DOMAINS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._store = store
        self._backup = backup
        self._notifier = notifier
        self._on_change = on_change
        self._on_resync = on_resync
        self._clock = clock
        self._resync_tasks: set[asyncio.Task[bool]] = set()
        self._coordinators: dict[str, RecordSyncCoordinator] = {
            domain.name: self._build_coordinator(domain) for domain in domains
        }

    @classmethod
    def from_config(
        cls,
        config: DuoBudgetConfig,
        *,
        notifier: Notifier | None = None,
        on_change: ChangeCallback | None = None,
        on_resync: ResyncHandler | None = None,
        domains: Iterable[DomainSpec] = ALL_DOMAINS,
    ) -> DuoBudget:
        token_resolver = create_token_resolver(config) if config.store == "firestore" else None
        store = create_store(config, token_resolver=token_resolver)
        return cls(
            config=config,
            store=store,
            backup=FileBackup(config.backup_dir),
            notifier=notifier,
            on_change=on_change,
            on_resync=on_resync,
            domains=domains,
        )

    async def __aenter__(self) -> DuoBudget:
        await self._store.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
        await self._store.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def config(self) -> DuoBudgetConfig:
        return self._config

    @property
    def coordinators(self) -> dict[str, RecordSyncCoordinator]:
        return dict(self._coordinators)

    def coordinator(self, name: str) -> RecordSyncCoordinator:
        coordinator = self._coordinators.get(name)
        if coordinator is None:
            available = ", ".join(sorted(self._coordinators))
            raise ConfigError(f"Unknown domain: {name!r}. Available: {available}")
        return coordinator

    async def start(self) -> dict[str, bool]:
        """Initialize every coordinator and wait for their connection attempts.

        Returns, per domain, whether the remote feed was established.
        """
        tasks = {name: coordinator.initialize() for name, coordinator in self._coordinators.items()}
        results = await asyncio.gather(*tasks.values())
        return dict(zip(tasks, results, strict=True))

    async def flush(self) -> None:
        await asyncio.gather(*(coordinator.flush() for coordinator in self._coordinators.values()))

    async def close(self) -> None:
        await self.flush()
        for coordinator in self._coordinators.values():
            coordinator.close()
        for task in list(self._resync_tasks):
            task.cancel()
        self._resync_tasks.clear()

    def _build_coordinator(self, domain: DomainSpec) -> RecordSyncCoordinator:
        def render(records: tuple[Record, ...]) -> None:
            if self._on_change is not None:
                self._on_change(domain.name, records)

        return RecordSyncCoordinator(
            domain,
            store=self._store,
            backup=self._backup,
            partition=self._config.partition,
            notifier=self._notifier,
            on_change=render,
            on_resync=self._handle_resync,
            detector=_detector_for(domain, self._config, self._clock),
            config_collection=self._config.config_collection,
            clock=self._clock,
            connect_delay=self._config.connect_delay,
            write_delay=self._config.write_delay,
            resync_delay=self._config.resync_delay,
        )

    def _handle_resync(self, name: str) -> None:
        if self._on_resync is not None:
            self._on_resync(name)
            return
        _LOG.info("Resubscribing %s for a full reload", name)
        task = asyncio.create_task(self._coordinators[name].subscribe())
        self._resync_tasks.add(task)
        task.add_done_callback(self._resync_tasks.discard)
