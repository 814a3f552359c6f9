"""Domain Events related to provider calls and queue resilience.

Examples include events for when dispatches are deferred, retried, fail,
succeed, or when the provider's quota is exhausted and later restored.
Timestamps come from the queue's clock so they line up with simulated time.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class ProviderCallInitiated(DomainEvent):
    """A queued item is being dispatched to the provider."""
    provider: str
    key: str
    attempt: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ProviderCallSucceeded(DomainEvent):
    provider: str
    key: str
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ProviderCallFailed(DomainEvent):
    """A provider call failed; error_kind tells what the queue does next."""
    provider: str
    key: str
    attempt: int
    error_kind: str
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class DispatchDeferred(DomainEvent):
    """The head item waits for spacing or for the window to roll over."""
    key: str
    wait_time_seconds: float
    reason: str  # 'spacing' or 'window'
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    key: str
    attempt_number: int
    delay_seconds: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class QuotaExhausted(DomainEvent):
    provider: str
    exhausted_until: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class QuotaRestored(DomainEvent):
    reason: str  # 'scheduled' or 'manual'
    timestamp: float = field(default_factory=time.time)


@dataclass
class FallbackUsed(DomainEvent):
    key: str
    reason: str
    provider: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
