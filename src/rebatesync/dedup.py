"""In-memory daily dedup cache for records already forwarded to the backend."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Callable

from .models import CommissionRecord

logger = logging.getLogger(__name__)


def dedup_key(exchange: str, record: CommissionRecord) -> str:
    """Key a record by exchange, trade date, user and optional sub type.

    Exchange-native trade IDs are not part of the key, so two fee events of
    the same user on the same day (and sub type) share one key.
    """
    key = f"{exchange.lower()}-{record.trade_date}-{record.exchange_uid}"
    if record.sub_type:
        key = f"{key}-{record.sub_type}"
    return key


class DedupCache:
    """Set of dedup keys submitted since the last local midnight."""

    def __init__(self, *, today: Callable[[], date] = date.today) -> None:
        self._today = today
        self._day = today()
        self._keys: set[str] = set()

    def __len__(self) -> int:
        return len(self._keys)

    def has(self, exchange: str, record: CommissionRecord) -> bool:
        return dedup_key(exchange, record) in self._keys

    def add(self, exchange: str, record: CommissionRecord) -> None:
        self._keys.add(dedup_key(exchange, record))

    def reset(self) -> None:
        self._keys.clear()
        self._day = self._today()
        logger.info("Dedup cache cleared")

    def roll_over(self) -> bool:
        """Clear the cache if the local date changed since the last reset."""
        if self._today() == self._day:
            return False
        self.reset()
        return True

    async def run_daily_reset(self, shutdown: asyncio.Event, interval: float = 1.0) -> None:
        """Check for the midnight boundary every interval seconds until shutdown."""
        while not shutdown.is_set():
            self.roll_over()
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=interval)
            except asyncio.TimeoutError:
                continue
