"""Records and cycle results passed between the adapters, the engine and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any


@dataclass(frozen=True, slots=True)
class CommissionRecord:
    """One user's fee contribution for one trade date, normalized to USDT."""

    exchange_uid: str
    exchange_id: int
    trade_volume_usdt: Decimal
    fee_usdt: Decimal
    trade_date: str
    source_timestamp: int
    sub_type: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "exchange_uid": str(self.exchange_uid),
            "exchange_id": self.exchange_id,
            "trade_volume_usdt": float(self.trade_volume_usdt),
            "fee_usdt": float(self.fee_usdt),
            "trade_date": self.trade_date,
        }


@dataclass(frozen=True, slots=True)
class SyncWindow:
    """Half-open fetch window [start_ms, end_ms)."""

    start_ms: int
    end_ms: int
    clamped: bool = False

    @property
    def is_empty(self) -> bool:
        return self.start_ms >= self.end_ms


class CycleStatus(Enum):
    """Outcome of one sync cycle."""

    NOOP = "noop"
    FAILED = "failed"
    COMPLETED = "completed"
    TIMEOUT = "timeout"


@dataclass
class CycleResult:
    exchange: str
    status: CycleStatus
    window: SyncWindow | None = None
    fetched: int = 0
    submitted: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (CycleStatus.NOOP, CycleStatus.COMPLETED)
