"""Local/remote record coordination for one domain."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from duobudget.contracts.backup import LocalBackup
from duobudget.contracts.config import DomainSpec
from duobudget.contracts.exceptions import BackupError, StoreError
from duobudget.contracts.notify import Notifier, NullNotifier, Severity
from duobudget.contracts.record import (
    ListenQuery,
    Record,
    Snapshot,
    is_local_id,
    local_id,
    record_from_document,
    record_to_document,
)
from duobudget.contracts.store import RemoteStore, Subscription
from duobudget.coordinator.origin import NeverRemoteDetector, RemoteOriginDetector, TimestampAgeDetector
from duobudget.coordinator.utils import sort_records
from duobudget.utils import deep_merge, utc_now

_LOG = logging.getLogger(__name__)

_RECORDS = TypeAdapter(list[Record])
_CONFIG = TypeAdapter(dict[str, Any])

_NAMES_KEY = "nombres"

RenderCallback = Callable[[tuple[Record, ...]], None]
ResyncCallback = Callable[[str], None]


class RecordSyncCoordinator:
    """Owns the in-memory record list of one domain.

    The list is fed from three directions: the local backup at startup, the
    remote change feed once connected, and local-only fallbacks when a remote
    write fails. The remote snapshot always wins; when a feed batch looks like
    it came from another session the cache is dropped and the host is asked
    to resynchronize through *on_resync*.

    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        domain: DomainSpec,
        *,
        store: RemoteStore,
        backup: LocalBackup,
        partition: str,
        notifier: Notifier | None = None,
        on_change: RenderCallback | None = None,
        on_resync: ResyncCallback | None = None,
        detector: RemoteOriginDetector | None = None,
        config_collection: str = "config",
        clock: Callable[[], datetime] = utc_now,
        connect_delay: float = 1.0,
        write_delay: float = 0.5,
        resync_delay: float = 1.0,
    ) -> None:
        self._domain = domain
        self._store = store
        self._backup = backup
        self._partition = partition
        self._notifier = notifier or NullNotifier()
        self._on_change = on_change
        self._on_resync = on_resync
        if detector is None:
            detector = TimestampAgeDetector(clock=clock) if domain.detect_remote_changes else NeverRemoteDetector()
        self._detector = detector
        self._config_collection = config_collection
        self._clock = clock
        self._connect_delay = connect_delay
        self._write_delay = write_delay
        self._resync_delay = resync_delay

        self._records: list[Record] = []
        self._config: dict[str, Any] = copy.deepcopy(domain.default_config)
        self._subscription: Subscription | None = None
        self._generation = 0
        self._last_local_millis = 0
        self._connect_task: asyncio.Task[bool] | None = None
        self._pending_writes: set[asyncio.Task[None]] = set()
        self._resync_handle: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def domain(self) -> DomainSpec:
        return self._domain

    @property
    def records(self) -> tuple[Record, ...]:
        return tuple(self._records)

    @property
    def shared_config(self) -> dict[str, Any]:
        return copy.deepcopy(self._config)

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def resync_pending(self) -> bool:
        return self._resync_handle is not None

    def get(self, record_id: str) -> Record | None:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def initialize(self) -> asyncio.Task[bool]:
        """Load the backup immediately, then connect to the store in the background.

        Returns the connect task; it resolves to False when the coordinator
        stays in local-only mode.
        """
        self.load_backup()
        self._render()
        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.create_task(self._connect())
        return self._connect_task

    async def _connect(self) -> bool:
        if self._connect_delay > 0:
            await asyncio.sleep(self._connect_delay)
        await self.load_shared_config()
        if not await self.subscribe():
            self._notifier.notify(f"Using local data for {self._domain.name}", Severity.WARNING)
            return False
        self._notifier.notify(f"{self._domain.name.capitalize()} connected to the cloud", Severity.SUCCESS)
        return True

    async def subscribe(self) -> bool:
        """(Re)establish the change feed; any previous feed is cancelled first."""
        self._cancel_subscription()
        self._generation += 1
        generation = self._generation
        query = ListenQuery(
            collection=self._domain.collection,
            partition=self._partition,
            order_by=self._domain.order_by,
            descending=self._domain.descending,
        )
        try:
            subscription = await self._store.listen(
                query,
                lambda snapshot: self._handle_snapshot(generation, snapshot),
                lambda error: self._handle_feed_error(generation, error),
            )
        except StoreError as exc:
            _LOG.error("Could not subscribe to %s: %s", self._domain.collection, exc)
            return False

        if generation != self._generation:
            # A later subscribe() superseded this one while it was connecting.
            subscription.unsubscribe()
            return self.subscribed
        self._subscription = subscription
        _LOG.debug("Subscribed to %s (partition=%s)", self._domain.collection, self._partition)
        return True

    def _cancel_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    # ------------------------------------------------------------------
    # Feed handling
    # ------------------------------------------------------------------

    def _handle_snapshot(self, generation: int, snapshot: Snapshot) -> None:
        if generation != self._generation:
            return
        self._reconcile(snapshot)

    def _handle_feed_error(self, generation: int, error: BaseException) -> None:
        if generation != self._generation:
            return
        _LOG.error("Change feed error on %s: %s", self._domain.collection, error)

    def _reconcile(self, snapshot: Snapshot) -> None:
        _LOG.debug("%s: %d change(s) received", self._domain.collection, len(snapshot.changes))
        known_ids = {record.id for record in self._records}
        if self._detector.is_remote_origin(snapshot, known_ids):
            _LOG.info("Clearing %s cache after a remote change", self._domain.name)
            self._records = []
            self._remove_backup()
            self._schedule_resync()

        self._records = sort_records(
            (record_from_document(document) for document in snapshot.documents),
            order_by=self._domain.order_by,
            descending=self._domain.descending,
        )
        self._render()
        self._persist()

    def _schedule_resync(self) -> None:
        if self._resync_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._resync_handle = loop.call_later(self._resync_delay, self._fire_resync)

    def _fire_resync(self) -> None:
        self._resync_handle = None
        _LOG.info("Requesting full resynchronization of %s", self._domain.name)
        if self._on_resync is not None:
            self._on_resync(self._domain.name)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        fields: Mapping[str, Any],
        *,
        owner: str = "persona1",
        effective_date: date | None = None,
    ) -> Record:
        """Schedule a remote write for a new record and return it under a local id.

        The record is not added to ``records``: the change feed makes it
        visible once the store confirms it, which keeps it from being shown
        twice. After a successful write the returned record carries the
        remote id.
        """
        now = self._clock()
        record = Record(
            id=self._next_local_id(now),
            owner=owner,
            effective_date=effective_date or now.date(),
            created_at=now,
            fields=dict(fields),
        )
        self._notifier.notify(f"Saving {self._domain.name} record...", Severity.INFO)
        task = asyncio.create_task(self._write(record))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)
        return record

    async def _write(self, record: Record) -> None:
        if self._write_delay > 0:
            await asyncio.sleep(self._write_delay)
        payload = record_to_document(record, partition=self._partition)
        try:
            remote_id = await self._store.add(self._domain.collection, payload)
        except StoreError as exc:
            _LOG.warning("Remote write to %s failed, keeping %s locally: %s", self._domain.collection, record.id, exc)
            record.local_only = True
            self._records = sort_records(
                [*self._records, record],
                order_by=self._domain.order_by,
                descending=self._domain.descending,
            )
            self._render()
            self._notifier.notify(f"{self._domain.name.capitalize()} record saved (local)", Severity.WARNING)
        else:
            _LOG.debug("Record %s confirmed as %s", record.id, remote_id)
            record.id = remote_id
            self._notifier.notify(f"{self._domain.name.capitalize()} record saved", Severity.SUCCESS)
        self._persist()

    async def delete(self, record_id: str) -> None:
        """Delete a record; remote deletions become visible through the feed."""
        if "/" in record_id:
            _LOG.warning("Refusing to delete %s record with invalid id %r", self._domain.name, record_id)
            self._notifier.notify(f"Invalid {self._domain.name} record id: {record_id}", Severity.WARNING)
            return
        if is_local_id(record_id):
            record = self.get(record_id)
            if record is None:
                _LOG.debug("Local record %s not found in %s", record_id, self._domain.name)
                return
            self._records.remove(record)
            self._render()
            self._persist()
            self._notifier.notify(f"{self._domain.name.capitalize()} record deleted (local)", Severity.SUCCESS)
            return

        self._notifier.notify(f"Deleting {self._domain.name} record...", Severity.INFO)
        try:
            await self._store.delete(self._domain.collection, record_id)
        except StoreError as exc:
            _LOG.warning("Remote delete of %s/%s failed: %s", self._domain.collection, record_id, exc)
            self._notifier.notify(f"Could not delete {self._domain.name} record remotely", Severity.WARNING)

    async def flush(self) -> None:
        """Wait for in-flight remote writes to settle."""
        if self._pending_writes:
            await asyncio.gather(*self._pending_writes)

    # ------------------------------------------------------------------
    # Shared configuration
    # ------------------------------------------------------------------

    async def load_shared_config(self) -> bool:
        try:
            document = await self._store.get_document(self._config_collection, self._partition)
        except StoreError as exc:
            _LOG.error("Could not load shared config for %s: %s", self._domain.name, exc)
            self._load_config_backup()
            return False
        if document is not None:
            self._config = self._config_from_document(document)
            self._persist_config()
        return True

    async def update_shared_config(self, patch: Mapping[str, Any]) -> bool:
        """Merge *patch* into the shared configuration; returns False when kept locally only."""
        self._config = deep_merge(self._config, patch)
        self._render()
        remote_patch = self._remote_config_patch(patch)
        saved = True
        try:
            await self._store.merge_document(self._config_collection, self._partition, remote_patch)
        except StoreError as exc:
            _LOG.warning("Shared config update for %s kept locally: %s", self._domain.name, exc)
            self._notifier.notify("Settings updated (local)", Severity.WARNING)
            saved = False
        else:
            self._notifier.notify("Settings updated", Severity.SUCCESS)
        self._persist_config()
        return saved

    def _config_from_document(self, document: Mapping[str, Any]) -> dict[str, Any]:
        section = self._domain.config_section
        defaults = self._domain.default_config
        if section is not None:
            values = document.get(section)
            config = deep_merge(defaults, values if isinstance(values, Mapping) else {})
        else:
            config = deep_merge(defaults, {key: document[key] for key in defaults if key in document})
        names = document.get(_NAMES_KEY)
        if isinstance(names, Mapping):
            config[_NAMES_KEY] = dict(names)
        return config

    def _remote_config_patch(self, patch: Mapping[str, Any]) -> dict[str, Any]:
        section = self._domain.config_section
        remote: dict[str, Any] = {}
        rest = {key: value for key, value in patch.items() if key != _NAMES_KEY}
        if rest:
            if section is not None:
                remote[section] = rest
            else:
                remote.update(rest)
        if _NAMES_KEY in patch:
            remote[_NAMES_KEY] = patch[_NAMES_KEY]
        return remote

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Stop the feed and cancel all pending work, unconfirmed writes included."""
        self._generation += 1
        self._cancel_subscription()
        for task in list(self._pending_writes):
            task.cancel()
        self._pending_writes.clear()
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        if self._resync_handle is not None:
            self._resync_handle.cancel()
            self._resync_handle = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _next_local_id(self, now: datetime) -> str:
        millis = max(int(now.timestamp() * 1000), self._last_local_millis + 1)
        self._last_local_millis = millis
        return local_id(millis)

    def _render(self) -> None:
        if self._on_change is not None:
            self._on_change(tuple(self._records))

    def load_backup(self) -> None:
        """Replace the in-memory state with the backup copy, without touching the store."""
        try:
            raw = self._backup.get(self._domain.records_key)
        except BackupError as exc:
            _LOG.error("Could not read %s backup: %s", self._domain.name, exc)
            return
        if raw:
            try:
                self._records = sort_records(
                    _RECORDS.validate_json(raw),
                    order_by=self._domain.order_by,
                    descending=self._domain.descending,
                )
            except ValidationError as exc:
                _LOG.error("Ignoring unreadable %s backup: %s", self._domain.name, exc)
        self._load_config_backup()

    def _load_config_backup(self) -> None:
        try:
            raw = self._backup.get(self._domain.config_key)
        except BackupError as exc:
            _LOG.error("Could not read %s config backup: %s", self._domain.name, exc)
            return
        if not raw:
            return
        try:
            self._config = deep_merge(self._domain.default_config, _CONFIG.validate_json(raw))
        except ValidationError as exc:
            _LOG.error("Ignoring unreadable %s config backup: %s", self._domain.name, exc)

    def _persist(self) -> None:
        try:
            self._backup.set(self._domain.records_key, _RECORDS.dump_json(self._records).decode("utf-8"))
        except BackupError as exc:
            _LOG.error("Could not persist %s backup: %s", self._domain.name, exc)
        self._persist_config()

    def _persist_config(self) -> None:
        try:
            self._backup.set(self._domain.config_key, _CONFIG.dump_json(self._config).decode("utf-8"))
        except BackupError as exc:
            _LOG.error("Could not persist %s config backup: %s", self._domain.name, exc)

    def _remove_backup(self) -> None:
        try:
            self._backup.remove(self._domain.records_key)
        except BackupError as exc:
            _LOG.error("Could not clear %s backup: %s", self._domain.name, exc)
