from __future__ import annotations

import pytest

from duobudget.auth.resolvers.static import StaticTokenResolver
from duobudget.contracts.config import DuoBudgetConfig
from duobudget.contracts.exceptions import ConfigError
from duobudget.stores import FirestoreStore, MemoryStore, create_store, register
from duobudget.stores import factory


def test_creates_memory_store() -> None:
    store = create_store(DuoBudgetConfig(store="memory"))

    assert isinstance(store, MemoryStore)


def test_creates_firestore_store_with_resolver() -> None:
    config = DuoBudgetConfig(project_id="duo", auth="token", token="tok")

    store = create_store(config, token_resolver=StaticTokenResolver(token="tok"))

    assert isinstance(store, FirestoreStore)


def test_firestore_requires_token_resolver() -> None:
    config = DuoBudgetConfig(project_id="duo", auth="token", token="tok")

    with pytest.raises(ConfigError, match="token resolver"):
        create_store(config)


def test_unknown_store_lists_registered_names() -> None:
    config = DuoBudgetConfig.model_construct(store="sqlite")

    with pytest.raises(ConfigError, match="Unknown store: 'sqlite'. Available: firestore, memory"):
        create_store(config)


def test_register_adds_builder(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(factory, "_REGISTRY", dict(factory._REGISTRY))
    custom = MemoryStore()
    register("sqlite", lambda config, resolver: custom)

    assert create_store(DuoBudgetConfig.model_construct(store="sqlite")) is custom
