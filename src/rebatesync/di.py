from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .backend import BackendClient
from .dedup import DedupCache
from .engine import SyncEngine
from .exchanges.protocol import ExchangeAdapter
from .state import SyncStateStore

if TYPE_CHECKING:
    from .settings import Settings


@dataclass(slots=True)
class AppContainer:
    settings: "Settings"
    state_store: SyncStateStore
    dedup_cache: DedupCache
    engine: SyncEngine
    backend: BackendClient | None = None
    shutdown: asyncio.Event = field(default_factory=asyncio.Event)
    adapters: dict[str, ExchangeAdapter] = field(default_factory=dict)

    async def aclose(self) -> None:
        for adapter in self.adapters.values():
            await adapter.close()
        if self.backend is not None:
            await self.backend.close()


def build_container(
    settings: "Settings",
    adapters: dict[str, ExchangeAdapter] | None = None,
    *,
    backend: BackendClient | None = None,
    state_store: SyncStateStore | None = None,
    dedup_cache: DedupCache | None = None,
) -> AppContainer:
    """Build the shared state store, dedup cache, backend client and engine once.

    Raises:
        ConfigurationError: If the backend URL is missing outside test mode
    """
    test_mode = settings.sync.test_mode
    if backend is None and not test_mode:
        backend = BackendClient.from_settings(settings.backend)

    if state_store is None:
        state_store = SyncStateStore(settings.sync.state_file)
    if dedup_cache is None:
        dedup_cache = DedupCache()
    engine = SyncEngine(state_store, dedup_cache, backend, test_mode=test_mode)

    return AppContainer(
        settings=settings,
        state_store=state_store,
        dedup_cache=dedup_cache,
        engine=engine,
        backend=backend,
        adapters=adapters or {},
    )
