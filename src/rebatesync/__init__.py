"""rebatesync: exchange rebate commission sync service."""

from .settings import Settings
from .models import CommissionRecord, CycleResult, CycleStatus, SyncWindow
from .engine import SyncEngine
from .exchanges import ExchangeAdapter, create_exchange_adapter

__all__ = [
    "Settings",
    "CommissionRecord",
    "CycleResult",
    "CycleStatus",
    "SyncWindow",
    "SyncEngine",
    "ExchangeAdapter",
    "create_exchange_adapter",
]
