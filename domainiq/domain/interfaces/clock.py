"""Interface for time sources.

The inference queue never reads the wall clock or sleeps directly. Going
through a Clock lets tests drive spacing, retries and the daily reset with
simulated time.
"""

import abc
from typing import Callable, Protocol


class TimerHandle(Protocol):
    """Anything with a cancel() method, e.g. asyncio.TimerHandle."""

    def cancel(self) -> None:
        ...


class Clock(abc.ABC):
    """Abstract Base Class for a clock with non-blocking suspension."""

    @abc.abstractmethod
    def now(self) -> float:
        """Returns the current time as epoch seconds."""
        pass

    @abc.abstractmethod
    async def sleep(self, seconds: float) -> None:
        """Suspends the calling coroutine for the given duration."""
        pass

    @abc.abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedules a plain callback to run after delay seconds."""
        pass
