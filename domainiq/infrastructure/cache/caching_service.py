"""Concrete implementation of the analysis Caching Service.

In-memory only: entries live for a fixed TTL measured from creation (no
sliding expiry), are expired lazily on read and are swept in bulk by the
queue's daily reset. Growth between sweeps is unbounded; the key space is
the set of domains users actually ask about.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from domainiq.domain.interfaces.cache import CacheService
from domainiq.domain.interfaces.clock import Clock
from domainiq.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60  # 1 hour


@dataclass
class CacheEntry:
    """Internal representation of a cache entry."""
    key: CacheKey
    value: Any
    created_at: float
    ttl: float
    is_fallback: bool = False

    def is_live(self, now: float) -> bool:
        return now - self.created_at < self.ttl


class CachingServiceImpl(CacheService):
    """In-memory TTL cache for analysis results."""

    def __init__(self, clock: Clock, default_ttl: float = DEFAULT_TTL_SECONDS):
        """Initializes the caching service.

        Args:
            clock: Time source used for creation timestamps and expiry.
            default_ttl: TTL in seconds for entries stored without one.
        """
        self.clock = clock
        self.default_ttl = default_ttl
        self._entries: Dict[CacheKey, CacheEntry] = {}
        logger.info(f"CachingService initialized (ttl={default_ttl:g}s)")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and entry.is_live(self.clock.now())

    # --- CacheService Interface Implementation ---

    async def get(self, key: CacheKey) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss for key: {key}")
            return None
        if not entry.is_live(self.clock.now()):
            logger.debug(f"Cache entry expired for key: {key}. Removing.")
            del self._entries[key]
            return None
        logger.debug(f"Cache hit for key: {key}")
        return entry.value

    async def set(
        self, key: CacheKey, value: Any, ttl: Optional[float] = None, is_fallback: bool = False
    ) -> None:
        effective_ttl = self.default_ttl if ttl is None else ttl
        if effective_ttl <= 0:
            return
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=self.clock.now(),
            ttl=effective_ttl,
            is_fallback=is_fallback,
        )
        logger.debug(f"Stored item in cache: key={key}, ttl={effective_ttl:g}s, fallback={is_fallback}")

    async def delete(self, key: CacheKey) -> None:
        if self._entries.pop(key, None) is not None:
            logger.debug(f"Deleted item from cache: key={key}")

    async def clear(self) -> None:
        self._entries.clear()
        logger.info("Cleared analysis cache.")

    def prune(self, max_age: Optional[float] = None, drop_fallbacks: bool = False) -> int:
        now = self.clock.now()
        doomed = [
            key for key, entry in self._entries.items()
            if not entry.is_live(now)
            or (max_age is not None and now - entry.created_at >= max_age)
            or (drop_fallbacks and entry.is_fallback)
        ]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.info(f"Pruned {len(doomed)} cache entries ({len(self._entries)} remaining).")
        return len(doomed)
