"""
Token-bucket rate limiter.

Guards outbound Open Food Facts lookups (100 requests per minute by
default). One limiter may be shared by several pipelines; its state is
only touched under a lock that is never held across an await.
"""

import asyncio
import threading
from typing import Awaitable, Callable, Optional

import structlog

from productscan.domain.shared.ports import Clock
from productscan.infrastructure.clock import SystemClock

logger = structlog.get_logger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

# Absorbs float error in elapsed * capacity / window
_EPSILON = 1e-9


class TokenBucketRateLimiter:
    """
    Lazy-refill token bucket.

    Tokens start at capacity. On every attempt the bucket refills:
    a full window since the last refill restores capacity; otherwise
    floor(elapsed * capacity / window) tokens are added and the refill
    time only advances when at least one was added. With no token left
    the caller sleeps until the next one is due and tries again.

    Example:
        >>> limiter = TokenBucketRateLimiter(capacity=100, window_seconds=60)
        >>> async def lookup():
        ...     await limiter.admit()
        ...     # call the API
    """

    def __init__(
        self,
        capacity: int = 100,
        window_seconds: float = 60.0,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ) -> None:
        """Initialize limiter.

        Args:
            capacity: Max requests per window
            window_seconds: Window length
            clock: Time source (default: system clock)
            sleep: Async sleeper (default: asyncio.sleep)
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock or SystemClock()
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._lock = threading.Lock()
        self._tokens = capacity
        self._last_refill = self._clock.now()

    async def admit(self) -> None:
        """Wait until a token is available, then consume it.

        Never fails, only delays. Cancelling the caller while it sleeps
        consumes nothing.
        """
        while True:
            with self._lock:
                wait = self._try_consume()

            if wait is None:
                return

            logger.debug(
                "Rate limit reached, waiting",
                wait_seconds=round(wait, 3),
                capacity=self.capacity,
            )
            await self._sleep(wait)

    def available_tokens(self) -> int:
        """Tokens left after a refill."""
        with self._lock:
            self._refill(self._clock.now())
            return self._tokens

    def _try_consume(self) -> Optional[float]:
        """Take a token, or return how long to wait for one. Lock held."""
        now = self._clock.now()
        self._refill(now)

        if self._tokens > 0:
            self._tokens -= 1
            return None

        per_token = self.window_seconds / self.capacity
        return max(0.0, per_token - (now - self._last_refill))

    def _refill(self, now: float) -> None:
        elapsed = now - self._last_refill

        if elapsed >= self.window_seconds:
            self._tokens = self.capacity
            self._last_refill = now
            return

        added = int(elapsed * self.capacity / self.window_seconds + _EPSILON)
        if added > 0:
            self._tokens = min(self.capacity, self._tokens + added)
            self._last_refill = now
