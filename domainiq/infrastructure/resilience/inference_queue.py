"""Rate-limited inference queue with quota-aware degradation.

Serializes calls to a quota-constrained InferenceProvider: one drain loop
dispatches queued keys one at a time, spaced at least `min_interval` apart
and never more than `per_window_limit` per window. Transient failures are
retried (the retried item jumps back to the head of the queue). A quota
error locks the provider out until the next scheduled reset and everything
still queued is answered by the FallbackAnalyzer.

IMPORTANT: get_analysis() never raises because of the provider. Every
provider exception is absorbed inside the drain loop and turned into a
fallback result. A caller can only see FallbackFailure (the fallback itself
raised) or ValueError (empty key). Upstream code treats get_analysis() as
"always succeeds", so no provider error may escape this module.

There is no caller-facing timeout; provider calls carry their own.
"""

import asyncio
import inspect
import logging
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from domainiq.domain.errors import (
    ErrorKind, FallbackFailure, InvalidProviderResponse, ProviderError,
)
from domainiq.domain.events.queue_events import (
    DomainEvent, DispatchDeferred, FallbackUsed, ProviderCallFailed,
    ProviderCallInitiated, ProviderCallSucceeded, QuotaExhausted,
    QuotaRestored, RetryScheduled,
)
from domainiq.domain.interfaces.cache import CacheService
from domainiq.domain.interfaces.clock import Clock, TimerHandle
from domainiq.domain.interfaces.inference import FallbackAnalyzer, InferenceProvider
from domainiq.domain.models.analysis import AnalysisResult
from domainiq.domain.models.common import CacheKey
from domainiq.domain.models.queue import ItemState, QueueItem, QueueSettings, QueueStats
from domainiq.infrastructure.cache.caching_service import CachingServiceImpl
from domainiq.infrastructure.resilience.clock import SystemClock
from domainiq.infrastructure.resilience.quota import QuotaTracker

logger = logging.getLogger(__name__)

# Why a key was answered by the fallback
REASON_NO_PROVIDER = "no_provider"
REASON_QUOTA_EXHAUSTED = "quota_exhausted"
REASON_QUOTA_LOCKOUT = "quota_lockout"          # queued behind the item that hit the quota
REASON_RETRIES_EXHAUSTED = "retries_exhausted"
REASON_PROVIDER_ERROR = "provider_error"

# Outcome of one dispatch, as seen by the drain loop
OUTCOME_SUCCESS = "success"
OUTCOME_RETRY = "retry"
OUTCOME_FALLBACK = "fallback"
OUTCOME_QUOTA = "quota"

EventListener = Callable[[DomainEvent], None]


def classify_error(error: BaseException) -> ErrorKind:
    """Maps an exception raised by a provider to the queue's reaction."""
    if isinstance(error, ProviderError):
        return error.kind
    if isinstance(error, (asyncio.TimeoutError, ConnectionError)):
        return ErrorKind.TRANSIENT
    return ErrorKind.OTHER


class RateLimitedInferenceQueue:
    """Single-drain-loop FIFO in front of a rate-limited provider."""

    def __init__(
        self,
        fallback: FallbackAnalyzer,
        provider: Optional[InferenceProvider] = None,
        settings: Optional[QueueSettings] = None,
        clock: Optional[Clock] = None,
        cache_service: Optional[CacheService] = None,
        event_listener: Optional[EventListener] = None,
    ):
        """Initializes the queue.

        Args:
            fallback: Local analyzer used whenever the provider is not.
            provider: The rate-limited provider; None means fallback only.
            settings: Limits, delays and TTLs (defaults if None).
            clock: Time source (SystemClock if None).
            cache_service: Result cache (in-memory cache on `clock` if None).
            event_listener: Optional callable receiving every domain event.
        """
        self.fallback = fallback
        self.provider = provider
        self.settings = settings or QueueSettings()
        self.clock = clock or SystemClock()
        self.cache_service = cache_service or CachingServiceImpl(self.clock, default_ttl=self.settings.cache_ttl)
        self.quota = QuotaTracker(self.settings, self.clock)
        self.event_listener = event_listener

        self._pending: Deque[QueueItem] = deque()
        self._in_flight: Dict[str, asyncio.Future] = {}
        self._current: Optional[QueueItem] = None
        self._draining = False
        self._drain_task: Optional[asyncio.Task] = None
        self._reset_timer: Optional[TimerHandle] = None
        self._closed = False

        logger.info(
            f"RateLimitedInferenceQueue initialized: provider='{self.provider_name or 'None'}', "
            f"max_retries={self.settings.max_retries}, retry_delay={self.settings.retry_delay:g}s, "
            f"cache_ttl={self.settings.cache_ttl:g}s"
        )

    # --- Introspection ---

    @property
    def provider_name(self) -> Optional[str]:
        return self.provider.name if self.provider is not None else None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def get_usage_stats(self) -> QueueStats:
        """Returns a snapshot of quota usage and queue depth."""
        self._apply_scheduled_reset()
        return QueueStats(
            provider=self.provider_name,
            requests_used=self.quota.requests_this_window,
            per_window_limit=self.settings.per_window_limit,
            remaining=self.quota.remaining,
            window_resets_at=self.quota.window_resets_at,
            exhausted=self.quota.exhausted,
            exhausted_until=self.quota.exhausted_until,
            next_reset_at=self.quota.next_reset_at,
            pending=len(self._pending),
            in_flight=len(self._in_flight),
            cache_size=len(self.cache_service),
            draining=self._draining,
        )

    # --- Lifecycle ---

    def start(self) -> None:
        """Arms the periodic reset check.

        With SystemClock this needs a running event loop; get_analysis()
        calls it on first use.
        """
        if self._reset_timer is not None:
            return
        self._closed = False
        self._schedule_reset_check()
        logger.debug(f"Reset check armed every {self.settings.reset_check_interval:g}s")

    def close(self) -> None:
        """Cancels the periodic reset check. Queued work still completes."""
        self._closed = True
        if self._reset_timer is not None:
            self._reset_timer.cancel()
            self._reset_timer = None

    def _schedule_reset_check(self) -> None:
        self._reset_timer = self.clock.call_later(self.settings.reset_check_interval, self._on_reset_check)

    def _on_reset_check(self) -> None:
        self._reset_timer = None
        if self._closed:
            return
        try:
            self._apply_scheduled_reset()
        finally:
            self._schedule_reset_check()

    def _apply_scheduled_reset(self) -> bool:
        if not self.quota.refresh():
            return False
        self.cache_service.prune(max_age=self.settings.cache_max_age, drop_fallbacks=True)
        self._dispatch_event(QuotaRestored(reason="scheduled", timestamp=self.clock.now()))
        return True

    def reset_quota(self) -> None:
        """Manual intervention: lifts a quota lockout immediately."""
        self.quota.reset()
        self.cache_service.prune(drop_fallbacks=True)
        self._dispatch_event(QuotaRestored(reason="manual", timestamp=self.clock.now()))

    # --- Public API ---

    async def get_analysis(self, key: str) -> AnalysisResult:
        """Returns the analysis for `key`, from cache, provider or fallback.

        Raises:
            ValueError: If key is empty.
            FallbackFailure: Only if the fallback analyzer itself raised.
        """
        if not isinstance(key, str) or not key:
            raise ValueError("Analysis key must be a non-empty string.")
        if self._reset_timer is None and not self._closed:
            self.start()
        self._apply_scheduled_reset()

        cached = await self.cache_service.get(CacheKey(key))
        if cached is not None:
            return cached

        in_flight = self._in_flight.get(key)
        if in_flight is not None:
            logger.debug(f"Coalescing request for '{key}' with the one already queued.")
            return await asyncio.shield(in_flight)

        if self.provider is None:
            return await self._fallback_result(key, REASON_NO_PROVIDER)
        if self.quota.exhausted:
            return await self._fallback_result(key, REASON_QUOTA_EXHAUSTED)

        future = asyncio.get_running_loop().create_future()
        item = QueueItem(key=key, enqueued_at=self.clock.now(), future=future)
        self._pending.append(item)
        self._in_flight[key] = future
        logger.debug(f"Enqueued '{key}' ({len(self._pending)} pending)")
        self._ensure_draining()
        # Shielded so one cancelled caller does not cancel a shared item.
        return await asyncio.shield(future)

    # --- Drain loop ---

    def _ensure_draining(self) -> None:
        if self._draining:
            return
        self._draining = True
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._pending:
                self._apply_scheduled_reset()
                if self.quota.exhausted:
                    await self._drain_rest_via_fallback(REASON_QUOTA_LOCKOUT)
                    break

                item = self._pending[0]
                wait, reason = self.quota.wait_time()
                if wait > 0:
                    logger.debug(f"Deferring '{item.key}' for {wait:.3f}s ({reason})")
                    self._dispatch_event(DispatchDeferred(
                        key=item.key, wait_time_seconds=wait, reason=reason, timestamp=self.clock.now(),
                    ))
                    await self.clock.sleep(wait)
                    continue

                self._pending.popleft()
                self._current = item
                outcome = await self._dispatch(item)
                self._current = None
                if outcome == OUTCOME_QUOTA:
                    await self._drain_rest_via_fallback(REASON_QUOTA_LOCKOUT)
                    break
        except Exception as e:
            logger.error(f"Inference queue drain loop failed: {e}", exc_info=True)
            self._abort_outstanding(e)
        finally:
            self._current = None
            self._draining = False
            self._drain_task = None

    async def _dispatch(self, item: QueueItem) -> str:
        """Sends one item to the provider and settles what happens next."""
        provider = self.provider
        item.state = ItemState.DISPATCHED
        self.quota.record_dispatch()
        self._dispatch_event(ProviderCallInitiated(
            provider=provider.name, key=item.key, attempt=item.attempt, timestamp=self.clock.now(),
        ))
        start_time = time.perf_counter()
        try:
            result = await provider.analyze(item.key)
            if not isinstance(result, AnalysisResult):
                raise InvalidProviderResponse(
                    f"Provider returned {type(result).__name__} instead of an AnalysisResult",
                    provider=provider.name,
                )
        except Exception as e:
            return await self._handle_failure(item, e)

        latency_ms = (time.perf_counter() - start_time) * 1000
        await self.cache_service.set(CacheKey(item.key), result, ttl=self.settings.cache_ttl)
        self._finish(item, result=result)
        self._dispatch_event(ProviderCallSucceeded(
            provider=provider.name, key=item.key, latency_ms=latency_ms, timestamp=self.clock.now(),
        ))
        return OUTCOME_SUCCESS

    async def _handle_failure(self, item: QueueItem, error: Exception) -> str:
        provider_name = self.provider_name or "unknown"
        kind = classify_error(error)
        self._dispatch_event(ProviderCallFailed(
            provider=provider_name, key=item.key, attempt=item.attempt,
            error_kind=kind.value, error_message=str(error), timestamp=self.clock.now(),
        ))

        if kind is ErrorKind.QUOTA:
            until = self.quota.mark_exhausted()
            self._dispatch_event(QuotaExhausted(provider=provider_name, exhausted_until=until, timestamp=self.clock.now()))
            await self._resolve_via_fallback(item, REASON_QUOTA_EXHAUSTED)
            return OUTCOME_QUOTA

        if kind is ErrorKind.TRANSIENT and item.attempt < self.settings.max_retries:
            item.attempt += 1
            item.state = ItemState.RETRYING
            logger.warning(
                f"Transient error from {provider_name} for '{item.key}': {error}. "
                f"Retry {item.attempt}/{self.settings.max_retries} in {self.settings.retry_delay:g}s"
            )
            self._dispatch_event(RetryScheduled(
                key=item.key, attempt_number=item.attempt,
                delay_seconds=self.settings.retry_delay, timestamp=self.clock.now(),
            ))
            await self.clock.sleep(self.settings.retry_delay)
            self._pending.appendleft(item)
            return OUTCOME_RETRY

        if kind is ErrorKind.TRANSIENT:
            logger.error(f"Max retries ({self.settings.max_retries}) reached for '{item.key}'. Last error: {error}")
            reason = REASON_RETRIES_EXHAUSTED
        else:
            logger.error(f"Non-retryable error from {provider_name} for '{item.key}': {error}")
            reason = REASON_PROVIDER_ERROR
        await self._resolve_via_fallback(item, reason)
        return OUTCOME_FALLBACK

    async def _drain_rest_via_fallback(self, reason: str) -> None:
        if self._pending:
            logger.warning(f"Answering {len(self._pending)} queued request(s) with the fallback ({reason}).")
        while self._pending:
            item = self._pending.popleft()
            await self._resolve_via_fallback(item, reason)

    # --- Resolution ---

    async def _fallback_result(self, key: str, reason: str) -> AnalysisResult:
        logger.info(f"Using fallback analysis for '{key}' ({reason})")
        try:
            result = self.fallback.heuristic(key)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Fallback analysis failed for '{key}': {e}", exc_info=True)
            raise FallbackFailure(key, e) from e

        self._dispatch_event(FallbackUsed(key=key, reason=reason, provider=self.provider_name, timestamp=self.clock.now()))
        if self.settings.fallback_cache_ttl > 0:
            await self.cache_service.set(CacheKey(key), result, ttl=self.settings.fallback_cache_ttl, is_fallback=True)
        return result

    async def _resolve_via_fallback(self, item: QueueItem, reason: str) -> None:
        try:
            result = await self._fallback_result(item.key, reason)
        except FallbackFailure as e:
            self._finish(item, error=e)
            return
        self._finish(item, result=result)

    def _finish(
        self, item: QueueItem, result: Optional[AnalysisResult] = None, error: Optional[BaseException] = None
    ) -> None:
        item.state = ItemState.RESOLVED
        if self._in_flight.get(item.key) is item.future:
            del self._in_flight[item.key]
        if item.future.done():
            return
        if error is not None:
            item.future.set_exception(error)
        else:
            item.future.set_result(result)

    def _abort_outstanding(self, error: BaseException) -> None:
        items = [self._current] if self._current is not None else []
        items.extend(self._pending)
        self._pending.clear()
        for item in items:
            self._finish(item, error=error)

    # --- Events ---

    def _dispatch_event(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        if self.event_listener is None:
            return
        try:
            self.event_listener(event)
        except Exception as e:
            logger.error(f"Event listener raised while handling {type(event).__name__}: {e}", exc_info=True)
