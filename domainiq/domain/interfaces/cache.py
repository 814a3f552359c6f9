"""Interface for caching analysis results.

Defines the contract for storing, retrieving and pruning cached results
with per-entry TTLs. Entries produced by the fallback are flagged so they
can be dropped when the provider becomes available again.
"""

import abc
from typing import Any, Optional

from ..models.common import CacheKey


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    async def get(self, key: CacheKey) -> Optional[Any]:
        """Retrieves a live item from the cache asynchronously.

        Args:
            key: The cache key to retrieve.

        Returns:
            The cached item if found and not expired, otherwise None.
        """
        pass

    @abc.abstractmethod
    async def set(
        self,
        key: CacheKey,
        value: Any,
        ttl: Optional[float] = None,
        is_fallback: bool = False,
    ) -> None:
        """Stores an item asynchronously.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl: Time-to-live in seconds (uses the default if None).
            is_fallback: Whether the value came from the fallback analyzer.
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: CacheKey) -> None:
        """Deletes an item asynchronously."""
        pass

    @abc.abstractmethod
    async def clear(self) -> None:
        """Clears all items asynchronously."""
        pass

    @abc.abstractmethod
    def prune(self, max_age: Optional[float] = None, drop_fallbacks: bool = False) -> int:
        """Removes expired entries plus those matching the given filters.

        Synchronous so it can run from timer callbacks.

        Args:
            max_age: Also remove entries older than this many seconds.
            drop_fallbacks: Also remove every fallback-produced entry.

        Returns:
            Number of entries removed.
        """
        pass

    @abc.abstractmethod
    def __len__(self) -> int:
        pass
