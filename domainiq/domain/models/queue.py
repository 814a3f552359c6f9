"""Domain models for the rate-limited inference queue.

Covers the queue's configuration, its per-request items, the process-wide
quota state and the stats snapshot shown to operators.
"""

import asyncio
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional

RESET_DAILY_MIDNIGHT = "daily-midnight"          # local time
RESET_DAILY_MIDNIGHT_UTC = "daily-midnight-utc"
RESET_SCHEDULES = (RESET_DAILY_MIDNIGHT, RESET_DAILY_MIDNIGHT_UTC)


@dataclass(frozen=True)
class QueueSettings:
    """Tunables of the inference queue. Durations are in milliseconds."""
    per_window_limit: int = 15          # Gemini free tier: 15 RPM
    window_ms: int = 60_000
    min_interval_ms: int = 1_000
    max_retries: int = 2
    retry_delay_ms: int = 2_000
    cache_ttl_ms: int = 60 * 60 * 1000
    fallback_cache_ttl_ms: int = 0      # 0 disables caching of fallback results
    reset_schedule: str = RESET_DAILY_MIDNIGHT
    reset_check_interval_ms: int = 60_000
    cache_max_age_ms: int = 24 * 60 * 60 * 1000

    def __post_init__(self):
        for settings_field in fields(self):
            value = getattr(self, settings_field.name)
            if settings_field.name == "reset_schedule":
                continue
            # bool is an int subclass
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{settings_field.name} must be a number, got {value!r}.")
        if self.per_window_limit <= 0 or self.window_ms <= 0:
            raise ValueError("per_window_limit and window_ms must be positive.")
        if self.reset_check_interval_ms <= 0:
            raise ValueError("reset_check_interval_ms must be positive.")
        for name in ("min_interval_ms", "max_retries", "retry_delay_ms", "cache_ttl_ms",
                     "fallback_cache_ttl_ms", "cache_max_age_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative.")
        if self.reset_schedule not in RESET_SCHEDULES:
            raise ValueError(
                f"Unknown reset_schedule '{self.reset_schedule}'. Use one of: {', '.join(RESET_SCHEDULES)}"
            )

    # Seconds, for the clock
    @property
    def window(self) -> float:
        return self.window_ms / 1000

    @property
    def min_interval(self) -> float:
        return self.min_interval_ms / 1000

    @property
    def retry_delay(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def cache_ttl(self) -> float:
        return self.cache_ttl_ms / 1000

    @property
    def fallback_cache_ttl(self) -> float:
        return self.fallback_cache_ttl_ms / 1000

    @property
    def reset_check_interval(self) -> float:
        return self.reset_check_interval_ms / 1000

    @property
    def cache_max_age(self) -> float:
        return self.cache_max_age_ms / 1000


class ItemState(str, Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    RETRYING = "retrying"
    RESOLVED = "resolved"


@dataclass
class QueueItem:
    """One pending analysis request.

    The future stands in for resolve/reject: every caller waiting on this key
    awaits it. `attempt` counts retries already made, so a fresh item is 0.
    """
    key: str
    enqueued_at: float
    future: "asyncio.Future[Any]"
    attempt: int = 0
    state: ItemState = ItemState.PENDING


@dataclass
class QuotaState:
    """Process-wide quota bookkeeping, owned by one queue instance."""
    requests_this_window: int = 0
    window_start: float = 0.0
    exhausted: bool = False
    exhausted_until: Optional[float] = None
    next_reset_at: float = 0.0


@dataclass(frozen=True)
class QueueStats:
    """Snapshot of queue usage, the equivalent of a usage-stats endpoint."""
    provider: Optional[str]
    requests_used: int
    per_window_limit: int
    remaining: int
    window_resets_at: float
    exhausted: bool
    exhausted_until: Optional[float]
    next_reset_at: float
    pending: int
    in_flight: int
    cache_size: int
    draining: bool = False

    @property
    def has_provider(self) -> bool:
        return self.provider is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["has_provider"] = self.has_provider
        return data
