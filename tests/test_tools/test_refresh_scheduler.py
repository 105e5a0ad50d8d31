"""
Tests for Refresh Scheduler Tool
Tests single-flight ticks, backoff and start/stop
"""

import asyncio
import pytest

from exceptions import BackendUnavailableError
from tools.refresh_scheduler import RefreshScheduler


class Counter:
    """Refresh callback that counts calls and can be told to fail"""

    def __init__(self, fail: bool = False):
        self.calls = 0
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise BackendUnavailableError("backend down")


class TestTick:
    """Tests for a single refresh cycle"""

    @pytest.mark.asyncio
    async def test_tick_runs_refresh(self):
        refresh = Counter()
        scheduler = RefreshScheduler(refresh, interval_seconds=30)

        ran = await scheduler.tick()

        assert ran is True
        assert refresh.calls == 1
        assert scheduler.ticks_run == 1
        assert not scheduler.in_flight

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_dropped(self):
        release = asyncio.Event()
        calls = []

        async def slow_refresh():
            calls.append(1)
            await release.wait()

        scheduler = RefreshScheduler(slow_refresh, interval_seconds=30)
        first = asyncio.create_task(scheduler.tick())
        await asyncio.sleep(0)

        assert scheduler.in_flight
        assert await scheduler.tick() is False

        release.set()
        assert await first is True
        assert len(calls) == 1
        assert scheduler.ticks_skipped == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates_from_tick(self):
        async def broken():
            raise RuntimeError("bug")

        scheduler = RefreshScheduler(broken, interval_seconds=30)

        with pytest.raises(RuntimeError):
            await scheduler.tick()
        assert not scheduler.in_flight


class TestBackoff:
    """Tests for exponential backoff after backend failures"""

    @pytest.mark.asyncio
    async def test_failure_doubles_delay(self):
        refresh = Counter(fail=True)
        scheduler = RefreshScheduler(refresh, interval_seconds=30, max_backoff_seconds=300)

        assert scheduler.next_delay() == 30
        await scheduler.tick()
        assert scheduler.consecutive_failures == 1
        assert scheduler.next_delay() == 60
        await scheduler.tick()
        assert scheduler.next_delay() == 120

    @pytest.mark.asyncio
    async def test_delay_is_capped(self):
        scheduler = RefreshScheduler(Counter(fail=True), interval_seconds=30, max_backoff_seconds=100)

        for _ in range(5):
            await scheduler.tick()

        assert scheduler.next_delay() == 100

    @pytest.mark.asyncio
    async def test_success_resets(self):
        refresh = Counter(fail=True)
        scheduler = RefreshScheduler(refresh, interval_seconds=30)
        await scheduler.tick()

        refresh.fail = False
        await scheduler.tick()

        assert scheduler.consecutive_failures == 0
        assert scheduler.next_delay() == 30

    @pytest.mark.unit
    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            RefreshScheduler(Counter(), interval_seconds=0)


class TestLifecycle:
    """Tests for start/stop"""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        refresh = Counter()
        scheduler = RefreshScheduler(refresh, interval_seconds=0.01)

        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert not scheduler.running
        assert refresh.calls >= 2

    @pytest.mark.asyncio
    async def test_no_refresh_after_stop(self):
        refresh = Counter()
        scheduler = RefreshScheduler(refresh, interval_seconds=0.01)
        scheduler.start()
        await asyncio.sleep(0.03)
        await scheduler.stop()

        calls = refresh.calls
        await asyncio.sleep(0.03)

        assert refresh.calls == calls

    @pytest.mark.asyncio
    async def test_context_manager(self):
        refresh = Counter()

        async with RefreshScheduler(refresh, interval_seconds=0.01) as scheduler:
            await asyncio.sleep(0.02)
            assert scheduler.running

        assert not scheduler.running
        assert refresh.calls >= 1

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        scheduler = RefreshScheduler(Counter(), interval_seconds=1)

        await scheduler.stop()

        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_loop_survives_unexpected_errors(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("bug")

        scheduler = RefreshScheduler(flaky, interval_seconds=0.01, max_backoff_seconds=0.02)
        scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert len(calls) >= 2
