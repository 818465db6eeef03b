"""Product cache entry and statistics models."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CacheEntry(BaseModel):
    """Cached product payload with timestamps.

    Example:
        >>> entry = CacheEntry(
        ...     key="product:3017620422003",
        ...     payload='{"barcode": "3017620422003", "name": "Nutella"}',
        ...     cached_at=1700000000.0,
        ...     last_accessed_at=1700000000.0,
        ... )
        >>> assert not entry.is_expired(now=1700000001.0, ttl_seconds=604800)
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Cache key")
    payload: str = Field(..., description="Serialized Product JSON")
    cached_at: float = Field(..., description="Unix timestamp of the last full write")
    last_accessed_at: float = Field(..., description="Unix timestamp of the last hit")

    @model_validator(mode="after")
    def _accessed_after_cached(self) -> "CacheEntry":
        if self.last_accessed_at < self.cached_at:
            raise ValueError("last_accessed_at must not precede cached_at")
        return self

    def age(self, now: float) -> float:
        return now - self.cached_at

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Expired once the age reaches the TTL."""
        return self.age(now) >= ttl_seconds


class CacheStats(BaseModel):
    """Snapshot of the product cache."""

    model_config = ConfigDict(frozen=True)

    total_count: int = 0
    valid_count: int = 0
    expired_count: int = 0
    recently_accessed_count: int = Field(0, description="Hit in the last 7 days")
    total_bytes: int = 0
