"""Tests for the generic sync cycle."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from rebatesync.engine import SyncEngine
from rebatesync.exchanges.bitget import BitgetAdapter
from rebatesync.exceptions import BackendSubmissionError, ExchangeAPIError
from rebatesync.models import CycleStatus

from tests.conftest import DAY_MS, NOW_MS, FakeAdapter, make_record


def make_engine(state_store, dedup_cache, backend, *, test_mode=False, now=NOW_MS):
    return SyncEngine(state_store, dedup_cache, backend, test_mode=test_mode, clock=lambda: now)


def test_backend_required_outside_test_mode(state_store, dedup_cache):
    with pytest.raises(ValueError):
        SyncEngine(state_store, dedup_cache, None)

    engine = SyncEngine(state_store, dedup_cache, None, test_mode=True)
    assert engine.backend is None


@pytest.mark.asyncio
async def test_noop_window_makes_no_calls(state_store, dedup_cache, backend):
    state_store.advance_watermark("fake", NOW_MS)
    adapter = FakeAdapter([make_record()])
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert result.status == CycleStatus.NOOP
    assert result.ok
    assert adapter.prepare_calls == 0
    assert adapter.fetch_calls == []
    backend.submit.assert_not_called()


@pytest.mark.asyncio
async def test_cycle_submits_and_advances_watermark(state_store, dedup_cache, backend):
    state_store.advance_watermark("fake", NOW_MS - 60_000)
    adapter = FakeAdapter([make_record(uid="1"), make_record(uid="2")])
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert result.status == CycleStatus.COMPLETED
    assert result.window.start_ms == NOW_MS - 60_000
    assert result.window.end_ms == NOW_MS
    assert result.fetched == 2
    assert result.submitted == 2
    assert backend.submit.await_count == 2
    assert backend.submit.await_args_list[0].args[1] == "Fake"
    assert state_store.get_watermark("fake") == NOW_MS


@pytest.mark.asyncio
async def test_first_cycle_starts_ten_minutes_back(state_store, dedup_cache, backend):
    adapter = FakeAdapter([])
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert adapter.fetch_calls[0].start_ms == NOW_MS - 10 * 60 * 1000
    assert result.status == CycleStatus.COMPLETED
    assert state_store.stored_watermark("fake") == NOW_MS


@pytest.mark.asyncio
async def test_records_submitted_in_timestamp_order(state_store, dedup_cache, backend):
    adapter = FakeAdapter(
        [
            make_record(uid="five", timestamp=5),
            make_record(uid="one", timestamp=1),
            make_record(uid="three", timestamp=3),
        ]
    )
    engine = make_engine(state_store, dedup_cache, backend)

    await engine.run_cycle(adapter)

    submitted = [call.args[0].source_timestamp for call in backend.submit.await_args_list]
    assert submitted == [1, 3, 5]


@pytest.mark.asyncio
async def test_zero_fee_records_are_skipped(state_store, dedup_cache, backend):
    adapter = FakeAdapter([make_record(uid="1", fee="0"), make_record(uid="2", fee="0.1")])
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert result.skipped == 1
    assert result.submitted == 1
    assert backend.submit.await_args.args[0].exchange_uid == "2"


@pytest.mark.asyncio
async def test_duplicate_key_submitted_once_per_day(state_store, dedup_cache, backend):
    adapter = FakeAdapter([make_record(uid="7")])
    engine = make_engine(state_store, dedup_cache, backend)

    await engine.run_cycle(adapter)
    state_store.reset("fake")
    second = await engine.run_cycle(adapter)

    assert backend.submit.await_count == 1
    assert second.duplicates == 1

    dedup_cache.reset()
    state_store.reset("fake")
    await engine.run_cycle(adapter)
    assert backend.submit.await_count == 2


@pytest.mark.asyncio
async def test_submission_failure_does_not_stop_cycle(state_store, dedup_cache, backend):
    backend.submit.side_effect = [
        {"message": "ok"},
        BackendSubmissionError("status 500", status=500),
        {"message": "ok"},
    ]
    adapter = FakeAdapter(
        [make_record(uid="a", timestamp=1), make_record(uid="b", timestamp=2), make_record(uid="c", timestamp=3)]
    )
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert backend.submit.await_count == 3
    assert result.status == CycleStatus.COMPLETED
    assert result.submitted == 2
    assert result.failed == 1
    assert state_store.get_watermark("fake") == NOW_MS


@pytest.mark.asyncio
async def test_fetch_failure_keeps_watermark(state_store, dedup_cache, backend):
    state_store.advance_watermark("fake", NOW_MS - 60_000)
    adapter = FakeAdapter(error=ExchangeAPIError("fake", "HTTP 502", status=502))
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert result.status == CycleStatus.FAILED
    assert not result.ok
    assert "HTTP 502" in result.error
    assert state_store.get_watermark("fake") == NOW_MS - 60_000
    backend.submit.assert_not_called()


@pytest.mark.asyncio
async def test_malformed_payload_fails_cycle(state_store, dedup_cache, backend):
    adapter = FakeAdapter(error=KeyError("uid"))
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert result.status == CycleStatus.FAILED
    assert state_store.stored_watermark("fake") is None


@pytest.mark.asyncio
async def test_test_mode_never_touches_state_or_backend(state_store, state_file, dedup_cache, backend):
    adapter = FakeAdapter([make_record()])
    engine = make_engine(state_store, dedup_cache, backend, test_mode=True)

    result = await engine.run_cycle(adapter)

    assert result.status == CycleStatus.COMPLETED
    assert result.submitted == 1
    assert result.window.start_ms == NOW_MS - 7 * DAY_MS
    backend.submit.assert_not_called()
    assert not state_file.exists()


@pytest.mark.asyncio
async def test_test_mode_preserves_existing_state_file(state_store, state_file, dedup_cache):
    state_store.advance_watermark("fake", 1234)
    before = state_file.read_text(encoding="utf-8")
    engine = make_engine(state_store, dedup_cache, None, test_mode=True)

    await engine.run_cycle(FakeAdapter([make_record()]))

    assert state_file.read_text(encoding="utf-8") == before
    assert json.loads(before) == {"fake": {"lastSyncTimestamp": 1234}}


@pytest.mark.asyncio
async def test_long_gap_is_clamped_to_max_window(state_store, dedup_cache, backend):
    state_store.advance_watermark("fake", NOW_MS - 45 * DAY_MS)
    adapter = FakeAdapter([], max_window=timedelta(days=30))
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(adapter)

    assert result.window.clamped
    assert result.window.start_ms == NOW_MS - 30 * DAY_MS
    assert result.window.end_ms == NOW_MS
    assert state_store.get_watermark("fake") == NOW_MS


@pytest.mark.asyncio
async def test_malformed_item_is_skipped_and_cycle_progresses(state_store, dedup_cache, backend):
    state_store.advance_watermark("bitget", NOW_MS - 60_000)
    client = AsyncMock()
    client.get = AsyncMock(
        return_value={
            "code": "00000",
            "data": {
                "commissionList": [
                    {"uid": "1001", "dealAmount": "10", "fee": "0.5", "date": str(NOW_MS - 30_000)},
                    {"dealAmount": "20", "fee": "0.7", "date": str(NOW_MS - 20_000)},
                    {"uid": "1003", "dealAmount": "30", "fee": "0.9", "date": "yesterday"},
                    {"uid": "1004", "dealAmount": "40", "fee": "1.1", "date": str(NOW_MS - 10_000)},
                ]
            },
        }
    )
    engine = make_engine(state_store, dedup_cache, backend)

    result = await engine.run_cycle(BitgetAdapter(client))

    assert result.status == CycleStatus.COMPLETED
    assert result.fetched == 4
    assert result.submitted == 2
    submitted = [call.args[0].exchange_uid for call in backend.submit.await_args_list]
    assert submitted == ["1001", "1004"]
    assert state_store.get_watermark("bitget") == NOW_MS


@pytest.mark.asyncio
async def test_test_mode_skips_watermark_lookup(state_store, dedup_cache):
    engine = make_engine(state_store, dedup_cache, None, test_mode=True)

    with patch.object(state_store, "get_watermark") as mock_get_watermark:
        result = await engine.run_cycle(FakeAdapter([make_record()]))

    mock_get_watermark.assert_not_called()
    assert result.status == CycleStatus.COMPLETED
    assert result.window.start_ms == NOW_MS - 7 * DAY_MS
