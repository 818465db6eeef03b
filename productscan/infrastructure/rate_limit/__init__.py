"""Outbound request rate limiting."""

from productscan.infrastructure.rate_limit.token_bucket import TokenBucketRateLimiter

__all__ = ["TokenBucketRateLimiter"]
