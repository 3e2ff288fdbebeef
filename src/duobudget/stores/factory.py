"""Factory for creating remote store instances.

Decouples store selection from store implementation. The SDK uses this
factory to instantiate stores by name, without importing concrete stores.
"""

from __future__ import annotations

from collections.abc import Callable

from duobudget.auth.base import TokenResolver
from duobudget.contracts.config import DuoBudgetConfig
from duobudget.contracts.exceptions import ConfigError
from duobudget.contracts.store import RemoteStore
from duobudget.stores.firestore import FirestoreStore
from duobudget.stores.memory import MemoryStore

StoreBuilder = Callable[[DuoBudgetConfig, TokenResolver | None], RemoteStore]

# Registry mapping store names to their builders
_REGISTRY: dict[str, StoreBuilder] = {}


def register(name: str, builder: StoreBuilder) -> None:
    """Register a store builder by name.

    Args:
        name: Store name (e.g. "firestore").
        builder: Callable taking the config and an optional token resolver.
    """
    _REGISTRY[name] = builder


def _build_memory(config: DuoBudgetConfig, token_resolver: TokenResolver | None) -> RemoteStore:
    return MemoryStore()


def _build_firestore(config: DuoBudgetConfig, token_resolver: TokenResolver | None) -> RemoteStore:
    if token_resolver is None:
        raise ConfigError("firestore store requires a token resolver")
    return FirestoreStore(
        project_id=config.project_id or "",
        database=config.database,
        token_resolver=token_resolver,
        poll_interval=config.poll_interval,
    )


register("memory", _build_memory)
register("firestore", _build_firestore)


def create_store(config: DuoBudgetConfig, *, token_resolver: TokenResolver | None = None) -> RemoteStore:
    """Create the store named by ``config.store``.

    The returned store is an async context manager::

        async with create_store(config, token_resolver=resolver) as store:
            doc_id = await store.add("gastos", {...})

    Raises:
        ConfigError: If the store name is not registered, or a Firestore
            store is requested without a token resolver.
    """
    builder = _REGISTRY.get(config.store)
    if builder is None:
        available = ", ".join(sorted(_REGISTRY)) or "(none registered)"
        raise ConfigError(f"Unknown store: {config.store!r}. Available: {available}")
    return builder(config, token_resolver)
