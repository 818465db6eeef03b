"""
Configuration and wiring.

Settings come from PRODUCTSCAN_* environment variables, optionally
loaded from a .env file. build_pipeline wires the default adapters.
"""

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from productscan.application.resolution.pipeline import ResolutionPipeline
from productscan.domain.shared.ports import (
    Clock,
    ConnectivityMonitor,
    HistoryLog,
    KeyValueStore,
    ProductFetcher,
)
from productscan.infrastructure.cache.product_cache import SECONDS_PER_DAY, ProductCache
from productscan.infrastructure.clock import SystemClock
from productscan.infrastructure.openfoodfacts.api_client import OpenFoodFactsClient
from productscan.infrastructure.persistence.in_memory_store import InMemoryKeyValueStore
from productscan.infrastructure.persistence.scan_history import ScanHistoryLog
from productscan.infrastructure.rate_limit.token_bucket import TokenBucketRateLimiter

ENV_PREFIX = "PRODUCTSCAN_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _system_locale() -> str:
    """Language part of LANG (it_IT.UTF-8 -> it), else "en"."""
    lang = os.getenv("LANG", "")
    code = lang.split(".")[0].split("_")[0].lower()
    if code.isalpha() and 2 <= len(code) <= 3:
        return code
    return "en"


class ResolverSettings(BaseModel):
    """
    Resolver configuration.

    Example:
        >>> settings = ResolverSettings(preferred_locale="it")
        >>> assert settings.rate_limit_capacity == 100
    """

    model_config = ConfigDict(frozen=True)

    off_base_url: str = Field("https://world.openfoodfacts.org")
    user_agent: str = Field(OpenFoodFactsClient.USER_AGENT, min_length=1)
    http_timeout_seconds: float = Field(10.0, gt=0)
    http_max_retries: int = Field(1, ge=1, description="Attempts per lookup")
    rate_limit_capacity: int = Field(100, ge=1)
    rate_limit_window_seconds: float = Field(60.0, gt=0)
    cache_ttl_days: float = Field(7.0, gt=0)
    scan_cooldown_seconds: float = Field(1.5, ge=0)
    preferred_locale: str = Field("en", pattern=r"^[a-z]{2,3}$")
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "ResolverSettings":
        """Read settings from the environment.

        Args:
            env_file: Optional .env file; existing variables win

        Raises:
            pydantic.ValidationError: If a value is malformed
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)

        values: dict[str, object] = {}
        for field, env_name in (
            ("off_base_url", "OFF_BASE_URL"),
            ("user_agent", "USER_AGENT"),
            ("http_timeout_seconds", "HTTP_TIMEOUT_SECONDS"),
            ("http_max_retries", "HTTP_MAX_RETRIES"),
            ("rate_limit_capacity", "RATE_LIMIT_CAPACITY"),
            ("rate_limit_window_seconds", "RATE_LIMIT_WINDOW_SECONDS"),
            ("cache_ttl_days", "CACHE_TTL_DAYS"),
            ("scan_cooldown_seconds", "SCAN_COOLDOWN_SECONDS"),
            ("log_level", "LOG_LEVEL"),
        ):
            value = _env(env_name)
            if value is not None:
                values[field] = value

        values["preferred_locale"] = (_env("PREFERRED_LOCALE") or _system_locale()).lower()

        log_json = _env("LOG_JSON")
        if log_json is not None:
            values["log_json"] = log_json.lower() in _TRUE_VALUES

        return cls.model_validate(values)

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_days * SECONDS_PER_DAY


def build_pipeline(
    settings: Optional[ResolverSettings] = None,
    store: Optional[KeyValueStore] = None,
    fetcher: Optional[ProductFetcher] = None,
    history: Optional[HistoryLog] = None,
    connectivity: Optional[ConnectivityMonitor] = None,
    clock: Optional[Clock] = None,
    limiter: Optional[TokenBucketRateLimiter] = None,
) -> ResolutionPipeline:
    """Wire a ResolutionPipeline with default adapters.

    Anything not passed in is built from settings: an in-memory store,
    the Open Food Facts client, a history log over the same store and
    a token bucket.

    Example:
        >>> pipeline = build_pipeline(ResolverSettings(preferred_locale="it"))
        >>> assert pipeline.preferred_locale == "it"
    """
    settings = settings or ResolverSettings.from_env()
    clock = clock or SystemClock()
    store = store if store is not None else InMemoryKeyValueStore(clock=clock)

    limiter = limiter or TokenBucketRateLimiter(
        capacity=settings.rate_limit_capacity,
        window_seconds=settings.rate_limit_window_seconds,
        clock=clock,
    )

    if fetcher is None:
        fetcher = OpenFoodFactsClient(
            base_url=settings.off_base_url,
            user_agent=settings.user_agent,
            timeout_seconds=settings.http_timeout_seconds,
            max_retries=settings.http_max_retries,
            limiter=limiter,
        )

    return ResolutionPipeline(
        cache=ProductCache(store, clock=clock, ttl_seconds=settings.cache_ttl_seconds),
        fetcher=fetcher,
        limiter=limiter,
        history=history if history is not None else ScanHistoryLog(store, clock=clock),
        connectivity=connectivity,
        clock=clock,
        preferred_locale=settings.preferred_locale,
        cooldown_seconds=settings.scan_cooldown_seconds,
    )
