"""Tests for debounced and periodic refresh."""

import asyncio

import pytest

from conftest import USDC
from swaprace.models import NATIVE_TOKEN_ADDRESS, SwapRequest
from swaprace.scheduler import RefreshScheduler


def request_for(amount: int) -> SwapRequest:
    return SwapRequest(sell_token=NATIVE_TOKEN_ADDRESS, buy_token=USDC, amount=str(amount))


class Recorder:
    """Refresh callback recording the requests it was called with."""

    def __init__(self, has_result: bool = True, delay: float = 0.0):
        self.requests: list[SwapRequest] = []
        self.completed: list[SwapRequest] = []
        self.has_result = has_result
        self.delay = delay

    async def __call__(self, request: SwapRequest) -> bool:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        self.completed.append(request)
        return self.has_result

    @property
    def amounts(self) -> list[str]:
        return [r.amount for r in self.requests]


class TestRefreshScheduler:
    """Tests for RefreshScheduler."""

    @pytest.mark.asyncio
    async def test_debounce_fires_last_change_only(self):
        recorder = Recorder()
        scheduler = RefreshScheduler(recorder, debounce_seconds=0.05, interval_seconds=10)

        for amount in (1, 12, 123):
            scheduler.schedule(request_for(amount))
            await asyncio.sleep(0.01)

        await scheduler.wait_until_idle()
        assert recorder.amounts == ["123"]
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_periodic_refresh_reissues_request(self):
        recorder = Recorder()
        scheduler = RefreshScheduler(recorder, debounce_seconds=0.01, interval_seconds=0.05)

        scheduler.schedule(request_for(5))
        await asyncio.sleep(0.2)
        await scheduler.close()

        assert len(recorder.requests) >= 3
        assert set(recorder.amounts) == {"5"}

    @pytest.mark.asyncio
    async def test_periodic_needs_a_result(self):
        recorder = Recorder(has_result=False)
        scheduler = RefreshScheduler(recorder, debounce_seconds=0.01, interval_seconds=0.03)

        scheduler.schedule(request_for(5))
        await asyncio.sleep(0.15)

        assert len(recorder.requests) == 1
        assert not scheduler.is_armed
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_time_left_counts_down(self):
        scheduler = RefreshScheduler(Recorder(), debounce_seconds=0.0, interval_seconds=15)
        assert scheduler.time_left == 0

        scheduler.schedule(request_for(5))
        await scheduler.wait_until_idle()

        assert scheduler.is_armed
        assert scheduler.time_left == 15
        await scheduler.close()
        assert scheduler.time_left == 0

    @pytest.mark.asyncio
    async def test_time_left_readable_without_running_loop(self):
        scheduler = RefreshScheduler(Recorder(), debounce_seconds=0.0, interval_seconds=15)
        scheduler.schedule(request_for(5))
        await scheduler.wait_until_idle()

        # A worker thread has no event loop of its own
        assert await asyncio.to_thread(lambda: scheduler.time_left) == 15
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_disable_stops_future_refresh_but_not_in_flight(self):
        recorder = Recorder(delay=0.05)
        scheduler = RefreshScheduler(recorder, debounce_seconds=0.0, interval_seconds=0.02)

        scheduler.schedule(request_for(5))
        await asyncio.sleep(0.01)  # fetch is in flight
        scheduler.set_auto_refresh(False)
        await scheduler.wait_until_idle()

        assert len(recorder.completed) == 1
        assert not scheduler.is_armed

        await asyncio.sleep(0.1)
        assert len(recorder.requests) == 1
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_enable_fetches_immediately(self):
        recorder = Recorder()
        scheduler = RefreshScheduler(recorder, debounce_seconds=0.0, interval_seconds=10, auto_refresh=False)

        scheduler.schedule(request_for(5))
        await scheduler.wait_until_idle()
        assert len(recorder.requests) == 1
        assert not scheduler.is_armed

        scheduler.set_auto_refresh(True)
        await scheduler.wait_until_idle()
        assert len(recorder.requests) == 2
        assert scheduler.is_armed
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_new_input_disarms_periodic(self):
        recorder = Recorder()
        scheduler = RefreshScheduler(recorder, debounce_seconds=0.05, interval_seconds=10)

        scheduler.schedule(request_for(5))
        await scheduler.wait_until_idle()
        assert scheduler.is_armed

        scheduler.schedule(request_for(6))
        assert not scheduler.is_armed
        await scheduler.wait_until_idle()
        assert recorder.amounts == ["5", "6"]
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_cancel_drops_pending_debounce(self):
        recorder = Recorder()
        scheduler = RefreshScheduler(recorder, debounce_seconds=0.05, interval_seconds=10)

        scheduler.schedule(request_for(5))
        scheduler.cancel()
        await asyncio.sleep(0.1)

        assert recorder.requests == []
        assert scheduler.request is None
        await scheduler.close()

    @pytest.mark.asyncio
    async def test_failing_refresh_is_logged_not_raised(self):
        async def broken(request):
            raise RuntimeError("boom")

        scheduler = RefreshScheduler(broken, debounce_seconds=0.0, interval_seconds=10)
        scheduler.schedule(request_for(5))
        await scheduler.wait_until_idle()
        assert not scheduler.is_armed
        await scheduler.close()
