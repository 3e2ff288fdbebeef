"""Shared test fixtures for duobudget tests."""

from __future__ import annotations

import pytest

from tests.fakes.backup import MemoryBackup
from tests.fakes.clock import FakeClock
from tests.fakes.notifier import RecordingNotifier
from tests.fakes.store import FakeStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> FakeStore:
    return FakeStore(clock=clock)


@pytest.fixture
def backup() -> MemoryBackup:
    return MemoryBackup()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
