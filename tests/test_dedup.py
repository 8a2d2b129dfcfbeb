"""Tests for the daily dedup cache."""

import asyncio
from datetime import date

import pytest

from rebatesync.dedup import DedupCache, dedup_key

from tests.conftest import make_record


def test_key_without_sub_type():
    record = make_record(uid="42", trade_date="2024-06-10")
    assert dedup_key("Bitget", record) == "bitget-2024-06-10-42"


def test_key_with_sub_type():
    record = make_record(uid="42", trade_date="2024-06-10", sub_type="futures")
    assert dedup_key("xt", record) == "xt-2024-06-10-42-futures"


def test_sub_types_are_distinct(dedup_cache):
    dedup_cache.add("xt", make_record(sub_type="spot"))

    assert dedup_cache.has("xt", make_record(sub_type="spot"))
    assert not dedup_cache.has("xt", make_record(sub_type="futures"))


def test_same_user_same_day_shares_key(dedup_cache):
    dedup_cache.add("bitget", make_record(fee="1", timestamp=1))
    # Different amount and timestamp, same day and user
    assert dedup_cache.has("bitget", make_record(fee="9", timestamp=2))
    assert not dedup_cache.has("gate", make_record())


def test_reset_clears_keys(dedup_cache):
    dedup_cache.add("bitget", make_record())
    assert len(dedup_cache) == 1

    dedup_cache.reset()

    assert len(dedup_cache) == 0
    assert not dedup_cache.has("bitget", make_record())


def test_roll_over_only_on_date_change():
    today = [date(2024, 6, 10)]
    cache = DedupCache(today=lambda: today[0])
    cache.add("bitget", make_record())

    assert cache.roll_over() is False
    assert len(cache) == 1

    today[0] = date(2024, 6, 11)
    assert cache.roll_over() is True
    assert len(cache) == 0
    assert cache.roll_over() is False


@pytest.mark.asyncio
async def test_run_daily_reset_stops_on_shutdown():
    today = [date(2024, 6, 10)]
    cache = DedupCache(today=lambda: today[0])
    cache.add("bitget", make_record())
    shutdown = asyncio.Event()

    task = asyncio.create_task(cache.run_daily_reset(shutdown, interval=0.01))
    today[0] = date(2024, 6, 11)
    await asyncio.sleep(0.05)
    shutdown.set()
    await asyncio.wait_for(task, timeout=1)

    assert len(cache) == 0
