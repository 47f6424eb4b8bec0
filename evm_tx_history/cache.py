"""
Response Cache - Pagination-aware TTL policy over an injected store.

Key:  txh:{chainId}:{address lowercased}:{pageKey or "first"}
TTL:  60s for the first page (new activity lands there),
      300s for cursor pages (fixed historical position).

Store failures never fail a request: reads degrade to a miss and writes
are skipped, both with a warning.
"""

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Optional

from evm_tx_history.clock import ClockProtocol, SystemClock
from evm_tx_history.models import CacheEntry, TxHistoryPage


logger = logging.getLogger(__name__)

FIRST_PAGE_MARKER = "first"
FIRST_PAGE_TTL_SECONDS = 60
PAGED_TTL_SECONDS = 300


# ─────────────────────────────────────────────────────────────
# Store Abstraction
# ─────────────────────────────────────────────────────────────

class CacheStore(ABC):
    """Key-value store with per-entry TTL."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_millis: int) -> None:
        """Store value for ttl_millis milliseconds."""
        pass


class InMemoryCacheStore(CacheStore):
    """
    Process-local store.

    Bounded: once max_entries is reached, expired entries are purged and
    then the oldest entries are evicted.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        clock: Optional[ClockProtocol] = None,
    ) -> None:
        self._max_entries = max_entries
        self._clock = clock or SystemClock()
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock.now()):
            del self._entries[key]
            return None
        return entry.data

    async def set(self, key: str, value: Any, ttl_millis: int) -> None:
        now = self._clock.now()
        # Re-insert so dict order tracks write recency
        self._entries.pop(key, None)
        self._entries[key] = CacheEntry(
            data=value,
            created_at=now,
            expires_at=now + timedelta(milliseconds=ttl_millis),
        )
        if len(self._entries) > self._max_entries:
            self._evict()

    def _evict(self) -> None:
        now = self._clock.now()
        expired_keys = [
            key for key, entry in self._entries.items()
            if entry.is_expired(now)
        ]
        for key in expired_keys:
            del self._entries[key]

        overflow = len(self._entries) - self._max_entries
        if overflow > 0:
            for key in list(self._entries)[:overflow]:
                del self._entries[key]

        logger.debug(
            f"[cache] Evicted {len(expired_keys)} expired and "
            f"{max(overflow, 0)} oldest entries"
        )

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Raw entry access for inspection."""
        return self._entries.get(key)

    def __len__(self) -> int:
        return len(self._entries)


# ─────────────────────────────────────────────────────────────
# Response Cache Policy
# ─────────────────────────────────────────────────────────────

class ResponseCache:
    """
    Cache policy for history pages.

    Usage:
        cache = ResponseCache(InMemoryCacheStore())
        key = cache.cache_key(1, address, page_key)
        page = await cache.get_page(key)
    """

    def __init__(
        self,
        store: CacheStore,
        first_page_ttl_seconds: int = FIRST_PAGE_TTL_SECONDS,
        paged_ttl_seconds: int = PAGED_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._first_page_ttl = first_page_ttl_seconds
        self._paged_ttl = paged_ttl_seconds
        self._cache_hits = 0
        self._cache_misses = 0
        self._store_errors = 0

    @staticmethod
    def cache_key(chain_id: int, address: str, page_key: Optional[str] = None) -> str:
        return f"txh:{chain_id}:{address.lower()}:{page_key or FIRST_PAGE_MARKER}"

    def ttl_seconds(self, page_key: Optional[str]) -> int:
        return self._paged_ttl if page_key else self._first_page_ttl

    async def get_page(self, key: str) -> Optional[TxHistoryPage]:
        """Return a cached page, or None on miss or store failure."""
        try:
            cached = await self._store.get(key)
        except Exception as e:
            self._store_errors += 1
            logger.warning(f"[cache] Read failed for {key}, treating as miss: {e}")
            self._cache_misses += 1
            return None

        if isinstance(cached, TxHistoryPage):
            self._cache_hits += 1
            return cached

        self._cache_misses += 1
        return None

    async def put_page(
        self,
        key: str,
        page: TxHistoryPage,
        page_key: Optional[str] = None,
    ) -> bool:
        """
        Store a page with the TTL its pagination state calls for.

        Returns:
            True if stored, False if the store failed
        """
        ttl = self.ttl_seconds(page_key)
        try:
            await self._store.set(key, page, ttl * 1000)
        except Exception as e:
            self._store_errors += 1
            logger.warning(f"[cache] Write failed for {key}, response not cached: {e}")
            return False
        return True

    def get_cache_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total_requests = self._cache_hits + self._cache_misses
        hit_rate = (self._cache_hits / total_requests * 100) if total_requests > 0 else 0

        return {
            "hits": self._cache_hits,
            "misses": self._cache_misses,
            "store_errors": self._store_errors,
            "hit_rate_percent": round(hit_rate, 2),
        }
