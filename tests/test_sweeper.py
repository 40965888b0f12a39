"""Tests for the background expiry sweeper."""

from __future__ import annotations

import asyncio

import pytest

from estato_api.otp.store import OTPStore
from estato_api.otp.sweeper import ExpirySweeper


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_sweeper_purges_expired_entries():
    clock = FakeClock()
    store = OTPStore(ttl_seconds=10, clock=clock)
    store.issue("stale@example.com")
    store.issue("fresh@example.com", ttl_seconds=100)
    clock.now = 50

    sweeper = ExpirySweeper(store, interval_seconds=0.01)
    sweeper.start()
    assert sweeper.running
    try:
        for _ in range(100):
            if "stale@example.com" not in store:
                break
            await asyncio.sleep(0.01)
    finally:
        await sweeper.stop()

    assert not sweeper.running
    assert "stale@example.com" not in store
    assert "fresh@example.com" in store


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    sweeper = ExpirySweeper(OTPStore(), interval_seconds=1)
    await sweeper.stop()
    assert not sweeper.running


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        ExpirySweeper(OTPStore(), interval_seconds=0)


@pytest.mark.asyncio
async def test_stop_propagates_cancellation_of_caller():
    sweeper = ExpirySweeper(OTPStore(), interval_seconds=60)
    sweeper.start()

    stopper = asyncio.create_task(sweeper.stop())
    # Let stop() cancel the loop and start waiting on it.
    await asyncio.sleep(0)
    stopper.cancel()

    with pytest.raises(asyncio.CancelledError):
        await stopper
    assert not sweeper.running
