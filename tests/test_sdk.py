from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from duobudget import DuoBudget, load_config, load_offline
from duobudget.contracts.config import DuoBudgetConfig
from duobudget.contracts.exceptions import ConfigError
from duobudget.contracts.notify import Severity
from duobudget.contracts.record import Record
from duobudget.domains import EXPENSES, SAVINGS, SPECIAL_DATES
from tests.fakes.backup import MemoryBackup
from tests.fakes.clock import FakeClock
from tests.fakes.notifier import RecordingNotifier
from tests.fakes.records import dump_records, remote_doc, settle
from tests.fakes.store import FakeStore


def _config(**overrides: object) -> DuoBudgetConfig:
    values: dict[str, object] = {"store": "memory", "connect_delay": 0, "write_delay": 0, "resync_delay": 0}
    values.update(overrides)
    return DuoBudgetConfig.model_validate(values)


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


def test_load_config_resolves_backup_dir_against_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "conf" / "duobudget.json"
    config_path.parent.mkdir()
    config_path.write_text(json.dumps({"store": "memory", "backup_dir": "data"}), encoding="utf-8")

    config = load_config(config_path)

    assert config.backup_dir == (tmp_path / "conf" / "data").resolve()


def test_load_config_keeps_absolute_backup_dir(tmp_path: Path) -> None:
    config_path = tmp_path / "duobudget.json"
    config_path.write_text(json.dumps({"store": "memory", "backup_dir": str(tmp_path / "abs")}), encoding="utf-8")

    assert load_config(config_path).backup_dir == tmp_path / "abs"


@pytest.mark.parametrize(
    ("content", "message"),
    [
        (None, "failed reading config file"),
        ("{not json", "invalid JSON"),
        (json.dumps({"store": "sqlite"}), "invalid config"),
    ],
)
def test_load_config_errors(tmp_path: Path, content: str | None, message: str) -> None:
    config_path = tmp_path / "duobudget.json"
    if content is not None:
        config_path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError, match=message):
        load_config(config_path)


# ---------------------------------------------------------------------------
# load_offline
# ---------------------------------------------------------------------------


def test_load_offline_reads_backup_only() -> None:
    backup = MemoryBackup()
    backup.data[EXPENSES.records_key] = dump_records([Record(id="abc", effective_date=date(2024, 3, 1))])
    backup.data[EXPENSES.config_key] = json.dumps({"presupuesto": 900})

    coordinators = load_offline(_config(), domains=[EXPENSES, SAVINGS], backup=backup)

    assert set(coordinators) == {"expenses", "savings"}
    assert [record.id for record in coordinators["expenses"].records] == ["abc"]
    assert coordinators["expenses"].shared_config["presupuesto"] == 900
    assert coordinators["savings"].records == ()
    assert coordinators["expenses"].subscribed is False


# ---------------------------------------------------------------------------
# DuoBudget
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_start_connects_every_domain_and_reports_changes() -> None:
    clock = FakeClock()
    store = FakeStore(clock=clock)
    notifier = RecordingNotifier()
    changes: list[tuple[str, tuple[Record, ...]]] = []

    async with DuoBudget(
        config=_config(),
        store=store,
        backup=MemoryBackup(),
        notifier=notifier,
        on_change=lambda name, records: changes.append((name, records)),
        clock=clock,
    ) as app:
        connected = await app.start()
        record = app.coordinator("expenses").create({"monto": 12.5})
        await app.flush()
        await settle()

        assert connected == {"expenses": True, "savings": True, "limits": True, "special_dates": True}
        assert record.id == "doc-1"
        assert [r.id for r in app.coordinator("expenses").records] == ["doc-1"]
        assert changes[-1][0] == "expenses"
        assert Severity.SUCCESS in notifier.severities

    assert store.active_subscriptions == 0


def test_unknown_domain_raises_config_error() -> None:
    app = DuoBudget(config=_config(), store=FakeStore(), backup=MemoryBackup(), domains=[EXPENSES])

    with pytest.raises(ConfigError, match="Unknown domain: 'savings'"):
        app.coordinator("savings")


@pytest.mark.asyncio
async def test_remote_change_resubscribes_by_default() -> None:
    clock = FakeClock()
    store = FakeStore(clock=clock)

    async with DuoBudget(config=_config(), store=store, backup=MemoryBackup(), domains=[EXPENSES], clock=clock) as app:
        await app.start()
        await settle()

        store.insert("gastos", "other", remote_doc(clock, age=10, monto=5))
        await settle(20)

        assert len(store.listen_calls) == 2
        assert [record.id for record in app.coordinator("expenses").records] == ["other"]
        assert app.coordinator("expenses").subscribed


@pytest.mark.asyncio
async def test_custom_resync_handler_replaces_resubscribe() -> None:
    clock = FakeClock()
    store = FakeStore(clock=clock)
    resyncs: list[str] = []

    async with DuoBudget(
        config=_config(),
        store=store,
        backup=MemoryBackup(),
        on_resync=resyncs.append,
        domains=[EXPENSES],
        clock=clock,
    ) as app:
        await app.start()
        await settle()
        store.insert("gastos", "other", remote_doc(clock, age=10))
        await settle(20)

    assert resyncs == ["expenses"]
    assert len(store.listen_calls) == 1


@pytest.mark.asyncio
async def test_special_dates_never_resync() -> None:
    clock = FakeClock()
    store = FakeStore(clock=clock)
    resyncs: list[str] = []

    async with DuoBudget(
        config=_config(),
        store=store,
        backup=MemoryBackup(),
        on_resync=resyncs.append,
        domains=[SPECIAL_DATES],
        clock=clock,
    ) as app:
        await app.start()
        await settle()
        store.insert("dias_especiales", "old", remote_doc(clock, age=3600, fecha="1970-02-01"))
        await settle(20)

        assert [record.id for record in app.coordinator("special_dates").records] == ["old"]

    assert resyncs == []


def test_from_config_uses_file_backup_and_memory_store(tmp_path: Path) -> None:
    app = DuoBudget.from_config(_config(backup_dir=tmp_path), domains=[EXPENSES])

    assert list(app.coordinators) == ["expenses"]
    assert app.config.backup_dir == tmp_path
