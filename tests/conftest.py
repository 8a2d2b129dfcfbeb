"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from rebatesync.dedup import DedupCache
from rebatesync.exchanges.adapter import BaseExchangeAdapter
from rebatesync.models import CommissionRecord
from rebatesync.state import SyncStateStore

DAY_MS = 24 * 60 * 60 * 1000
NOW_MS = 1_718_000_000_000


def create_async_response(status=200, json_data=None, text=""):
    """Create a mock async response usable as `async with session.x(...) as resp`."""
    resp = AsyncMock()
    resp.status = status
    resp.json = AsyncMock(return_value=json_data if json_data is not None else {})
    resp.text = AsyncMock(return_value=text)
    resp.__aenter__ = AsyncMock(return_value=resp)
    resp.__aexit__ = AsyncMock(return_value=None)
    return resp


def make_record(uid="1001", fee="1.5", timestamp=NOW_MS, trade_date="2024-06-10", sub_type=None, exchange_id=1):
    return CommissionRecord(
        exchange_uid=uid,
        exchange_id=exchange_id,
        trade_volume_usdt=Decimal("1000"),
        fee_usdt=Decimal(fee),
        trade_date=trade_date,
        source_timestamp=timestamp,
        sub_type=sub_type,
    )


class FakeAdapter(BaseExchangeAdapter):
    """Adapter returning canned records instead of calling an exchange."""

    identifier = "fake"
    display_name = "Fake"
    exchange_id = 99
    test_lookback = timedelta(days=7)

    def __init__(self, records=None, *, error=None, max_window=None, **kwargs):
        super().__init__(AsyncMock(), **kwargs)
        self.records = list(records or [])
        self.error = error
        if max_window is not None:
            self.max_window = max_window
        self.fetch_calls = []
        self.prepare_calls = 0

    async def prepare(self, window):
        self.prepare_calls += 1

    async def fetch_raw(self, window):
        self.fetch_calls.append(window)
        if self.error is not None:
            raise self.error
        return [{"record": r} for r in self.records]

    def normalize_item(self, item):
        return item["record"]


@pytest.fixture
def api_key():
    """Test API key."""
    return "test_api_key_123456"


@pytest.fixture
def api_secret():
    """Test API secret."""
    return "test_api_secret_789012"


@pytest.fixture
def passphrase():
    """Test passphrase."""
    return "test_passphrase_345678"


@pytest.fixture
def state_file(tmp_path):
    return tmp_path / "state.json"


@pytest.fixture
def state_store(state_file):
    return SyncStateStore(state_file, clock=lambda: NOW_MS)


@pytest.fixture
def dedup_cache():
    return DedupCache()


@pytest.fixture
def backend():
    """Backend client double recording every submitted record."""
    client = AsyncMock()
    client.submit = AsyncMock(return_value={"message": "ok"})
    return client


@pytest.fixture
def sample_bitget_response():
    """Sample Bitget customer-commissions response."""
    return {
        "code": "00000",
        "msg": "success",
        "data": {
            "commissionList": [
                {"uid": "1001", "dealAmount": "2500.5", "fee": "1.25", "date": "1718000000000"},
                {"uid": "1002", "dealAmount": "100", "fee": "0", "date": "1718000001000"},
            ]
        },
    }


@pytest.fixture
def sample_gate_tickers():
    """Sample Gate.io /spot/tickers response."""
    return [
        {"currency_pair": "BTC_USDT", "last": "65000"},
        {"currency_pair": "GT_USDT", "last": "8.5"},
        {"currency_pair": "ETH_BTC", "last": "0.05"},
    ]


@pytest.fixture
def sample_xt_response():
    """Sample XT.COM rebate data response for one sub type."""
    return {
        "rc": 0,
        "mc": "SUCCESS",
        "result": {
            "items": [
                {
                    "uid": 2001,
                    "date": 1718000000000,
                    "commissionAmount": "3",
                    "spotRebateRate": "0.3",
                    "futuresRebateRate": "0.5",
                    "totalTradeUsdtAmount": "5000",
                }
            ]
        },
    }
