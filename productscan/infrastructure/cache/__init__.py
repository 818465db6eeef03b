"""Product cache."""

from productscan.infrastructure.cache.models import CacheEntry, CacheStats
from productscan.infrastructure.cache.product_cache import ProductCache

__all__ = ["CacheEntry", "CacheStats", "ProductCache"]
