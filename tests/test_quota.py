"""Tests for quota.py: daily usage counter."""

from datetime import date

import pytest

from playlist_intel.quota import QUOTA_KEY, QuotaTracker
from playlist_intel.storage import MemoryStore


@pytest.fixture
def day():
    return {"today": date(2026, 3, 1)}


@pytest.fixture
def tracker(day):
    return QuotaTracker(MemoryStore(), today=lambda: day["today"])


@pytest.mark.asyncio
async def test_fresh_usage_is_zero(tracker):
    usage = await tracker.usage()
    assert usage.count == 0
    assert usage.date == "2026-03-01"


@pytest.mark.asyncio
async def test_record_call_increments_by_one(tracker):
    await tracker.record_call()
    await tracker.record_call()

    assert (await tracker.usage()).count == 2
    assert await tracker.remaining() == 9498


@pytest.mark.asyncio
async def test_threshold_is_limit_minus_margin():
    tracker = QuotaTracker(MemoryStore(), daily_limit=100, safety_margin=10)
    assert tracker.threshold == 90


@pytest.mark.asyncio
async def test_can_call_blocks_at_threshold(day):
    store = MemoryStore({QUOTA_KEY: {"date": "2026-03-01", "count": 9500}})
    tracker = QuotaTracker(store, today=lambda: day["today"])

    assert not await tracker.can_call()
    assert await tracker.remaining() == 0


@pytest.mark.asyncio
async def test_new_day_resets_implicitly(tracker, day):
    await tracker.record_call()
    day["today"] = date(2026, 3, 2)

    assert (await tracker.usage()).count == 0
    await tracker.record_call()
    assert (await tracker.usage()).count == 1
