from __future__ import annotations

import asyncio
import logging
import signal

from .di import AppContainer
from .scheduler import SyncWorker

logger = logging.getLogger(__name__)


def _install_signal_handlers(shutdown: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except (NotImplementedError, RuntimeError):
            # Not available on Windows event loops or outside the main thread
            logger.debug("Signal handler for %s not installed", sig)


def build_workers(container: AppContainer) -> list[SyncWorker]:
    sync = container.settings.sync
    return [
        SyncWorker(
            adapter,
            container.engine,
            cycle_timeout=sync.cycle_timeout_seconds,
        )
        for adapter in container.adapters.values()
    ]


async def run(container: AppContainer, *, install_signals: bool = True) -> None:
    logger.info("runtime starting")
    logger.debug("settings=%s", container.settings.redacted())

    if container.settings.sync.test_mode:
        logger.warning("Service is running in TEST MODE. No data will be POSTed to the backend.")

    if not container.adapters:
        logger.error("no exchange adapters initialized, nothing to run")
        await asyncio.sleep(0)
        logger.info("runtime stopped")
        return

    if install_signals:
        _install_signal_handlers(container.shutdown)

    workers = build_workers(container)
    try:
        async with asyncio.TaskGroup() as tg:
            tg.create_task(
                container.dedup_cache.run_daily_reset(
                    container.shutdown,
                    interval=container.settings.sync.dedup_check_interval_seconds,
                )
            )
            for worker in workers:
                tg.create_task(worker.run(container.shutdown))
                logger.info("%s service started.", worker.adapter.display_name)
            logger.info("All exchange services are running.")
    finally:
        await container.aclose()

    logger.info("runtime stopped")
