"""Fixed-interval scheduling of sync cycles, one worker per exchange."""

from __future__ import annotations

import asyncio
import logging

from .engine import SyncEngine
from .exchanges.protocol import ExchangeAdapter
from .models import CycleResult, CycleStatus

logger = logging.getLogger(__name__)


class SyncWorker:
    """Fires a sync cycle for one exchange every interval seconds.

    Ticks are fixed-rate. A tick that lands while the previous cycle is still
    running is skipped, and every cycle is bounded by cycle_timeout.
    """

    def __init__(
        self,
        adapter: ExchangeAdapter,
        engine: SyncEngine,
        *,
        interval: float | None = None,
        cycle_timeout: float = 120.0,
    ):
        self.adapter = adapter
        self.engine = engine
        self.interval = interval or adapter.interval_seconds
        self.cycle_timeout = cycle_timeout
        self._current: asyncio.Task[CycleResult] | None = None
        self.last_result: CycleResult | None = None
        self.skipped_ticks = 0

    @property
    def busy(self) -> bool:
        return self._current is not None and not self._current.done()

    def tick(self) -> asyncio.Task[CycleResult] | None:
        """Start a cycle unless one is already in flight.

        Returns:
            The started task, or None if the tick was skipped
        """
        if self.busy:
            self.skipped_ticks += 1
            logger.warning(
                "[%s] Previous sync cycle still running, skipping this tick",
                self.adapter.display_name,
            )
            return None
        self._current = asyncio.create_task(
            self.run_once(), name=f"sync-{self.adapter.identifier}"
        )
        return self._current

    async def run_once(self) -> CycleResult:
        """Run one cycle under the timeout, never raising."""
        try:
            result = await asyncio.wait_for(
                self.engine.run_cycle(self.adapter), timeout=self.cycle_timeout
            )
        except asyncio.TimeoutError:
            logger.error(
                "[%s] Sync cycle exceeded %ss and was abandoned",
                self.adapter.display_name,
                self.cycle_timeout,
            )
            result = CycleResult(
                exchange=self.adapter.identifier,
                status=CycleStatus.TIMEOUT,
                error=f"timed out after {self.cycle_timeout}s",
            )
        except Exception as e:
            logger.error(
                "[%s] Unexpected error in sync cycle: %s",
                self.adapter.display_name,
                e,
                exc_info=True,
            )
            result = CycleResult(
                exchange=self.adapter.identifier,
                status=CycleStatus.FAILED,
                error=str(e),
            )
        self.last_result = result
        return result

    async def run(self, shutdown: asyncio.Event) -> None:
        """Tick immediately, then every interval, until shutdown is set."""
        logger.info(
            "[%s] Worker started, interval %ss",
            self.adapter.display_name,
            self.interval,
        )
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        try:
            while not shutdown.is_set():
                self.tick()
                next_tick += self.interval
                delay = max(0.0, next_tick - loop.time())
                try:
                    await asyncio.wait_for(shutdown.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    continue
        finally:
            await self.stop()
            logger.info("[%s] Worker stopped", self.adapter.display_name)

    async def stop(self) -> None:
        if self.busy:
            self._current.cancel()
            try:
                await self._current
            except asyncio.CancelledError:
                pass
        self._current = None
