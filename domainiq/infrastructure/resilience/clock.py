"""Clock implementations.

SystemClock is the production clock backed by the running asyncio loop.
ManualClock is a virtual clock: time only moves when advance() is awaited,
which makes spacing, retry delays and the daily reset testable without
real sleeps.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Tuple

from domainiq.domain.interfaces.clock import Clock, TimerHandle

logger = logging.getLogger(__name__)

# Event loop turns granted to woken coroutines before the next timer fires.
SETTLE_ROUNDS = 25


class SystemClock(Clock):
    """Wall-clock time with asyncio sleeps and timers."""

    def now(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        # Requires a running loop, like every other asyncio timer.
        return asyncio.get_running_loop().call_later(max(0.0, delay), callback)


class ManualTimer:
    """Timer registered on a ManualClock."""

    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock(Clock):
    """Deterministic clock whose time is advanced explicitly."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._timers: List[Tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self._now + max(0.0, delay), callback)
        # Sequence number keeps FIFO order for timers due at the same instant.
        heapq.heappush(self._timers, (timer.when, next(self._sequence), timer))
        return timer

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()

        def wake() -> None:
            if not future.done():
                future.set_result(None)

        timer = self.call_later(seconds, wake)
        try:
            await future
        finally:
            timer.cancel()

    @property
    def pending_timers(self) -> int:
        return sum(1 for _, _, timer in self._timers if not timer.cancelled)

    async def settle(self) -> None:
        """Lets every runnable coroutine proceed to its next suspension point."""
        for _ in range(SETTLE_ROUNDS):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        """Moves time forward, firing due timers in order.

        The event loop is allowed to settle after each timer so that woken
        coroutines can register their next timers before time moves on.
        """
        if seconds < 0:
            raise ValueError("Cannot move a clock backwards.")
        target = self._now + seconds
        await self.settle()
        while self._timers and self._timers[0][0] <= target:
            when, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = max(self._now, when)
            logger.debug(f"ManualClock firing timer due at {when:.3f}")
            timer.callback()
            await self.settle()
        self._now = max(self._now, target)
        await self.settle()

    async def advance_to(self, when: float) -> None:
        await self.advance(max(0.0, when - self._now))
