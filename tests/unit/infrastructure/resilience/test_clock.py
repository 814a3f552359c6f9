import asyncio

import pytest

from domainiq.infrastructure.resilience.clock import ManualClock, SystemClock


def test_manual_clock_fires_timers_in_order():
    async def scenario():
        clock = ManualClock(start=100.0)
        fired = []
        clock.call_later(5, lambda: fired.append(("b", clock.now())))
        clock.call_later(2, lambda: fired.append(("a", clock.now())))
        clock.call_later(5, lambda: fired.append(("c", clock.now())))
        await clock.advance(10)
        assert fired == [("a", 102.0), ("b", 105.0), ("c", 105.0)]
        assert clock.now() == 110.0

    asyncio.run(scenario())


def test_manual_clock_cancelled_timer_does_not_fire():
    async def scenario():
        clock = ManualClock()
        fired = []
        timer = clock.call_later(1, lambda: fired.append(True))
        timer.cancel()
        await clock.advance(2)
        assert fired == []
        assert clock.pending_timers == 0

    asyncio.run(scenario())


def test_manual_clock_sleep_wakes_at_the_right_time():
    async def scenario():
        clock = ManualClock()
        woke = []

        async def sleeper(delay):
            await clock.sleep(delay)
            woke.append(clock.now())
            # chained sleep registered while the clock is advancing
            await clock.sleep(delay)
            woke.append(clock.now())

        task = asyncio.create_task(sleeper(3))
        await clock.advance(10)
        await task
        assert woke == [3.0, 6.0]

    asyncio.run(scenario())


def test_manual_clock_sleep_zero_only_yields():
    async def scenario():
        clock = ManualClock(start=5.0)
        await clock.sleep(0)
        assert clock.now() == 5.0
        assert clock.pending_timers == 0

    asyncio.run(scenario())


def test_manual_clock_cannot_go_backwards():
    async def scenario():
        clock = ManualClock(start=5.0)
        with pytest.raises(ValueError):
            await clock.advance(-1)
        await clock.advance_to(1.0)
        assert clock.now() == 5.0

    asyncio.run(scenario())


def test_system_clock_call_later_runs_callback():
    async def scenario():
        clock = SystemClock()
        fired = asyncio.Event()
        clock.call_later(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1)
        assert clock.now() > 0

    asyncio.run(scenario())
