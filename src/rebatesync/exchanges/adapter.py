"""Base class for the exchange-specific half of a sync cycle."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Mapping, Sequence

from ..models import CommissionRecord, SyncWindow
from .base import BaseSignedClient
from .protocol import SignedClient

logger = logging.getLogger(__name__)


def _to_ms(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


class BaseExchangeAdapter(ABC):
    """Window policy shared by all exchanges plus the hooks each one fills in.

    Subclasses set the class attributes and implement fetch_raw/normalize_item.
    """

    identifier: str = ""
    display_name: str = ""
    exchange_id: int = 0
    default_interval_seconds: float = 30.0
    # Fixed lookback used instead of the watermark in test mode
    test_lookback: timedelta = timedelta(days=7)
    # Longest range the exchange accepts; None means unbounded
    max_window: timedelta | None = None
    page_limit: int = 1000
    client_class: type[BaseSignedClient] | None = None

    def __init__(
        self,
        client: SignedClient,
        *,
        interval_seconds: float | None = None,
        **options: Any,
    ):
        self.client = client
        self._interval_seconds = interval_seconds
        self.options = options

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds or self.default_interval_seconds

    def compute_window(self, watermark_ms: int, now_ms: int, *, test_mode: bool = False) -> SyncWindow:
        if test_mode:
            start = now_ms - _to_ms(self.test_lookback)
            logger.info(
                "[%s] [TEST MODE] Fetching data for the last %s.",
                self.display_name,
                self.test_lookback,
            )
        else:
            start = watermark_ms

        if self.max_window is not None:
            cap = _to_ms(self.max_window)
            if now_ms - start > cap:
                logger.warning(
                    "[%s] Time range exceeds %s. Adjusting start time.",
                    self.display_name,
                    self.max_window,
                )
                return SyncWindow(now_ms - cap, now_ms, clamped=True)

        return SyncWindow(start, now_ms)

    async def prepare(self, window: SyncWindow) -> None:
        """No per-cycle preparation by default."""
        return None

    @abstractmethod
    async def fetch_raw(self, window: SyncWindow) -> Sequence[Mapping[str, Any]]:
        ...

    def normalize(self, raw_items: Sequence[Mapping[str, Any]]) -> list[CommissionRecord]:
        """Map raw items to records; a malformed item is logged and skipped."""
        records = []
        for item in raw_items:
            try:
                record = self.normalize_item(item)
            except (AttributeError, KeyError, TypeError, ValueError, ArithmeticError) as e:
                logger.warning(
                    "[%s] Skipping malformed item %r: %r",
                    self.display_name,
                    item,
                    e,
                )
                continue
            if record is not None:
                records.append(record)
        return records

    @abstractmethod
    def normalize_item(self, item: Mapping[str, Any]) -> CommissionRecord | None:
        """Build one record, or None for an item with a non-positive fee."""
        ...

    def label(self, record: CommissionRecord) -> str:
        if record.sub_type:
            return f"{self.display_name} - {record.sub_type}"
        return self.display_name

    def _warn_if_truncated(self, count: int, what: str = "records") -> None:
        if count >= self.page_limit:
            logger.warning(
                "[%s] API returned %d %s, the page limit; older entries in the window may be missing.",
                self.display_name,
                count,
                what,
            )

    async def close(self) -> None:
        await self.client.close()
