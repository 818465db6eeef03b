"""
Product cache with TTL support.

Caches resolved products in the key-value store so repeated scans
never reach Open Food Facts while the entry is fresh.
"""

from typing import Optional

import pydantic
import structlog

from productscan.domain.product.models import Product
from productscan.domain.shared.ports import Clock, KeyValueStore
from productscan.infrastructure.cache.models import CacheEntry, CacheStats
from productscan.infrastructure.clock import SystemClock

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400
RECENT_ACCESS_SECONDS = 7 * SECONDS_PER_DAY


class ProductCache:
    """TTL-gated product cache over a KeyValueStore.

    Expiry is enforced at read time; evict_expired is maintenance only.
    Entries are always replaced whole, never merged.
    """

    KEY_PREFIX = "product"

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        ttl_seconds: float = 7 * SECONDS_PER_DAY,
    ) -> None:
        """Initialize cache.

        Args:
            store: Backing key-value store
            clock: Time source (default: system clock)
            ttl_seconds: Cache TTL (default 7 days)
        """
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock or SystemClock()
        self._generation = 0

    @property
    def generation(self) -> int:
        """Counter bumped by every write or delete (hits do not count)."""
        return self._generation

    def _make_key(self, barcode: str) -> str:
        """Generate cache key.

        Args:
            barcode: EAN-13 barcode value

        Returns:
            Cache key string
        """
        return f"{self.KEY_PREFIX}:{barcode}"

    def _decode(self, key: str, raw: bytes) -> Optional[tuple[CacheEntry, Product]]:
        try:
            entry = CacheEntry.model_validate_json(raw)
            product = Product.model_validate_json(entry.payload)
        except pydantic.ValidationError as e:
            logger.warning("Dropping undecodable cache entry", key=key, error=str(e))
            return None
        return entry, product

    def get(self, barcode: str) -> Optional[Product]:
        """Get cached product by barcode.

        A hit refreshes last_accessed_at. Expired or undecodable entries
        are deleted.

        Args:
            barcode: EAN-13 barcode value

        Returns:
            Cached product or None

        Example:
            >>> from productscan.infrastructure.persistence.in_memory_store import (
            ...     InMemoryKeyValueStore,
            ... )
            >>> cache = ProductCache(InMemoryKeyValueStore())
            >>> assert cache.get("3017620422003") is None  # Cache is empty
        """
        key = self._make_key(barcode)
        raw = self.store.get(key)

        if raw is None:
            logger.debug("Cache miss", key=key)
            return None

        decoded = self._decode(key, raw)
        if decoded is None:
            self._remove(key)
            return None

        entry, product = decoded
        now = self._clock.now()

        if entry.is_expired(now, self.ttl_seconds):
            logger.debug("Cache expired", key=key, age_seconds=round(entry.age(now), 1))
            self._remove(key)
            return None

        touched = entry.model_copy(update={"last_accessed_at": max(now, entry.cached_at)})
        self.store.put(key, touched.model_dump_json().encode("utf-8"))

        logger.debug("Cache hit", key=key)
        return product

    def put(self, product: Product) -> None:
        """Insert or fully replace the cached product.

        Args:
            product: Product to cache, keyed by its barcode
        """
        key = self._make_key(product.barcode)
        now = self._clock.now()

        entry = CacheEntry(
            key=key,
            payload=product.model_dump_json(),
            cached_at=now,
            last_accessed_at=now,
        )

        self.store.put(key, entry.model_dump_json().encode("utf-8"))
        self._generation += 1
        logger.debug("Cached product", key=key, ttl=self.ttl_seconds)

    def delete(self, barcode: str) -> bool:
        """Delete one entry. Returns True if it existed."""
        return self._remove(self._make_key(barcode))

    def _remove(self, key: str) -> bool:
        removed = self.store.delete(key)
        if removed:
            self._generation += 1
        return removed

    def evict_expired(self, older_than_days: Optional[float] = None) -> int:
        """Remove entries cached more than older_than_days ago.

        Args:
            older_than_days: Age threshold (default: the cache TTL)

        Returns:
            Number of entries removed
        """
        threshold = (
            older_than_days * SECONDS_PER_DAY if older_than_days is not None else self.ttl_seconds
        )
        now = self._clock.now()
        removed = 0

        for key, raw, _ in self.store.scan_all(f"{self.KEY_PREFIX}:"):
            decoded = self._decode(key, raw)
            if decoded is None or decoded[0].age(now) > threshold:
                if self._remove(key):
                    removed += 1

        if removed:
            logger.info("Removed expired entries", count=removed)

        return removed

    def clear(self) -> int:
        """Clear all cache entries.

        Returns:
            Number of entries removed
        """
        removed = 0
        for key, _, _ in self.store.scan_all(f"{self.KEY_PREFIX}:"):
            if self.store.delete(key):
                removed += 1

        self._generation += 1
        logger.info("Cache cleared", count=removed)
        return removed

    def stats(self) -> CacheStats:
        """Count entries by freshness."""
        now = self._clock.now()
        total = valid = recent = total_bytes = 0

        for key, raw, metadata in self.store.scan_all(f"{self.KEY_PREFIX}:"):
            total += 1
            total_bytes += metadata.size
            try:
                entry = CacheEntry.model_validate_json(raw)
            except pydantic.ValidationError:
                continue
            if not entry.is_expired(now, self.ttl_seconds):
                valid += 1
            if now - entry.last_accessed_at <= RECENT_ACCESS_SECONDS:
                recent += 1

        return CacheStats(
            total_count=total,
            valid_count=valid,
            expired_count=total - valid,
            recently_accessed_count=recent,
            total_bytes=total_bytes,
        )

    def size(self) -> int:
        """Get cache size.

        Returns:
            Number of cached entries
        """
        return sum(1 for _ in self.store.scan_all(f"{self.KEY_PREFIX}:"))
