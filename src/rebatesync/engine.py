"""Generic incremental sync cycle shared by every exchange."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Callable

from .backend import BackendClient
from .dedup import DedupCache
from .exceptions import BackendSubmissionError, SyncError
from .exchanges.protocol import ExchangeAdapter
from .models import CommissionRecord, CycleResult, CycleStatus, SyncWindow
from .state import SyncStateStore, now_ms

logger = logging.getLogger(__name__)


def _iso(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).isoformat()


def describe_window(window: SyncWindow) -> str:
    return f"{_iso(window.start_ms)} to {_iso(window.end_ms)}"


class SyncEngine:
    """Runs one fetch -> normalize -> submit -> advance cycle for an adapter.

    The watermark only moves after the fetch and the per-record loop finish.
    A failed fetch leaves it in place so the next cycle retries the same
    window. Individual submission failures do not hold it back.

    In test mode the window comes from the adapter's fixed lookback, nothing
    is sent to the backend and the state store is never written.
    """

    def __init__(
        self,
        state_store: SyncStateStore,
        dedup_cache: DedupCache,
        backend: BackendClient | None,
        *,
        test_mode: bool = False,
        clock: Callable[[], int] = now_ms,
    ):
        if backend is None and not test_mode:
            raise ValueError("backend client is required outside test mode")
        self.state_store = state_store
        self.dedup_cache = dedup_cache
        self.backend = backend
        self.test_mode = test_mode
        self._clock = clock

    async def run_cycle(self, adapter: ExchangeAdapter) -> CycleResult:
        name = adapter.display_name
        logger.info("[%s] Starting commission data sync cycle...", name)

        end = self._clock()
        # Test mode windows come from the fixed lookback, not the stored watermark
        watermark = end if self.test_mode else self.state_store.get_watermark(adapter.identifier)
        window = adapter.compute_window(watermark, end, test_mode=self.test_mode)
        result = CycleResult(exchange=adapter.identifier, status=CycleStatus.NOOP, window=window)

        if window.is_empty:
            logger.info("[%s] No new time window to sync. Skipping cycle.", name)
            return result

        logger.info("[%s] Fetching data from %s", name, describe_window(window))
        try:
            await adapter.prepare(window)
            raw_items = await adapter.fetch_raw(window)
            records = adapter.normalize(raw_items)
        except SyncError as e:
            return self._fail(result, window, name, str(e))
        except (KeyError, TypeError, ValueError) as e:
            return self._fail(result, window, name, f"Malformed response: {e!r}")

        result.fetched = len(raw_items)
        # Stable sort keeps the exchange's order for equal timestamps
        records.sort(key=lambda r: r.source_timestamp)

        for record in records:
            await self._process_record(adapter, record, result)

        if not self.test_mode:
            self.state_store.advance_watermark(adapter.identifier, window.end_ms)

        result.status = CycleStatus.COMPLETED
        logger.info(
            "[%s] Cycle done: %d fetched, %d submitted, %d duplicates, %d skipped, %d failed",
            name,
            result.fetched,
            result.submitted,
            result.duplicates,
            result.skipped,
            result.failed,
        )
        return result

    def _fail(self, result: CycleResult, window: SyncWindow, name: str, message: str) -> CycleResult:
        logger.error(
            "[%s] Failed to fetch commissions for %s: %s",
            name,
            describe_window(window),
            message,
        )
        result.status = CycleStatus.FAILED
        result.error = message
        return result

    async def _process_record(
        self, adapter: ExchangeAdapter, record: CommissionRecord, result: CycleResult
    ) -> None:
        if record.fee_usdt <= 0:
            result.skipped += 1
            return

        if self.dedup_cache.has(adapter.identifier, record):
            logger.debug("[%s] Already submitted today: %s", adapter.display_name, record)
            result.duplicates += 1
            return

        label = adapter.label(record)
        try:
            if self.test_mode or self.backend is None:
                logger.info(
                    "[TEST MODE] Would push data for %s: %s",
                    label,
                    json.dumps(record.to_payload()),
                )
            else:
                await self.backend.submit(record, label)
            result.submitted += 1
        except BackendSubmissionError as e:
            logger.error("[%s] %s", adapter.display_name, e)
            result.failed += 1
        finally:
            self.dedup_cache.add(adapter.identifier, record)
