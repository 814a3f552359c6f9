"""Quota tracking for the inference queue.

Combines three limits on the provider channel:
  * spacing: at least `min_interval` seconds between two dispatches,
  * a fixed window: at most `per_window_limit` dispatches per `window` seconds,
  * daily lockout: once the provider reports quota exhaustion, no dispatch
    happens until the next scheduled reset (midnight).

The tracker only keeps the numbers; the queue decides when to wait.
"""

import logging
from datetime import datetime, time as dt_time, timedelta, timezone
from typing import Optional, Tuple

from domainiq.domain.interfaces.clock import Clock
from domainiq.domain.models.queue import (
    QueueSettings, QuotaState, RESET_DAILY_MIDNIGHT_UTC,
)

logger = logging.getLogger(__name__)

WAIT_SPACING = "spacing"
WAIT_WINDOW = "window"


def next_scheduled_reset_time(now: float, schedule: str) -> float:
    """Returns the epoch time of the next midnight after `now`.

    'daily-midnight' uses the host's local time zone; 'daily-midnight-utc'
    uses UTC.
    """
    if schedule == RESET_DAILY_MIDNIGHT_UTC:
        tomorrow = datetime.fromtimestamp(now, timezone.utc).date() + timedelta(days=1)
        return datetime.combine(tomorrow, dt_time.min, tzinfo=timezone.utc).timestamp()
    tomorrow = datetime.fromtimestamp(now).date() + timedelta(days=1)
    # Naive datetime: timestamp() interprets it as local time (DST-aware).
    return datetime.combine(tomorrow, dt_time.min).timestamp()


class QuotaTracker:
    """Fixed-window request counter with spacing and a daily lockout."""

    def __init__(self, settings: QueueSettings, clock: Clock):
        self.settings = settings
        self.clock = clock
        now = clock.now()
        self.state = QuotaState(
            window_start=now,
            next_reset_at=next_scheduled_reset_time(now, settings.reset_schedule),
        )
        self.last_dispatch_at: Optional[float] = None
        logger.info(
            f"QuotaTracker initialized: {settings.per_window_limit} requests / {settings.window:g}s, "
            f"min interval {settings.min_interval:g}s, reset schedule '{settings.reset_schedule}'"
        )

    # --- Read access ---

    @property
    def exhausted(self) -> bool:
        return self.state.exhausted

    @property
    def exhausted_until(self) -> Optional[float]:
        return self.state.exhausted_until

    @property
    def requests_this_window(self) -> int:
        self._roll_window(self.clock.now())
        return self.state.requests_this_window

    @property
    def remaining(self) -> int:
        return max(0, self.settings.per_window_limit - self.requests_this_window)

    @property
    def window_resets_at(self) -> float:
        self._roll_window(self.clock.now())
        return self.state.window_start + self.settings.window

    @property
    def next_reset_at(self) -> float:
        return self.state.next_reset_at

    # --- Window & reset bookkeeping ---

    def _roll_window(self, now: float) -> None:
        """Starts a new window once the current one has fully elapsed."""
        elapsed = now - self.state.window_start
        if elapsed >= self.settings.window:
            # Stay on the grid anchored at the last window start.
            self.state.window_start = now - (elapsed % self.settings.window)
            self.state.requests_this_window = 0

    def refresh(self) -> bool:
        """Applies window rollover and the scheduled reset if it is due.

        Returns:
            True if the scheduled reset fired during this call.
        """
        now = self.clock.now()
        self._roll_window(now)
        lockout_over = self.state.exhausted and self.state.exhausted_until is not None \
            and now >= self.state.exhausted_until
        if now >= self.state.next_reset_at or lockout_over:
            was_exhausted = self.state.exhausted
            self._reset(now)
            self.state.next_reset_at = next_scheduled_reset_time(now, self.settings.reset_schedule)
            logger.info(
                f"Scheduled quota reset (was exhausted: {was_exhausted}). "
                f"Next reset at {datetime.fromtimestamp(self.state.next_reset_at).isoformat()}"
            )
            return True
        return False

    def _reset(self, now: float) -> None:
        self.state.exhausted = False
        self.state.exhausted_until = None
        self.state.requests_this_window = 0
        self.state.window_start = now

    def reset(self) -> None:
        """Manual reset: clears the lockout and the window counter."""
        self._reset(self.clock.now())
        logger.info("Quota manually reset.")

    # --- Dispatch accounting ---

    def wait_time(self) -> Tuple[float, str]:
        """Seconds until the next dispatch is allowed, and the binding limit."""
        now = self.clock.now()
        self._roll_window(now)
        spacing_wait = 0.0
        if self.last_dispatch_at is not None:
            spacing_wait = self.settings.min_interval - (now - self.last_dispatch_at)
        window_wait = 0.0
        if self.state.requests_this_window >= self.settings.per_window_limit:
            window_wait = self.state.window_start + self.settings.window - now
        if window_wait > spacing_wait:
            return max(0.0, window_wait), WAIT_WINDOW
        return max(0.0, spacing_wait), WAIT_SPACING

    def record_dispatch(self) -> None:
        """Counts one dispatch against the current window."""
        now = self.clock.now()
        self._roll_window(now)
        if self.state.requests_this_window >= self.settings.per_window_limit:
            # wait_time() should have prevented this
            logger.warning("Dispatch recorded while the window limit was already reached.")
        self.state.requests_this_window += 1
        self.last_dispatch_at = now
        logger.debug(
            f"Dispatch recorded: {self.state.requests_this_window}/{self.settings.per_window_limit} in window"
        )

    def mark_exhausted(self) -> float:
        """Locks out the provider until the next scheduled reset.

        Returns:
            The epoch time at which the lockout ends.
        """
        # Computed from the error's arrival time; the cached reset may already be past.
        until = next_scheduled_reset_time(self.clock.now(), self.settings.reset_schedule)
        self.state.exhausted = True
        self.state.exhausted_until = until
        self.state.next_reset_at = until
        logger.warning(
            f"Provider quota exhausted; locked out until "
            f"{datetime.fromtimestamp(self.state.exhausted_until).isoformat()}"
        )
        return self.state.exhausted_until
