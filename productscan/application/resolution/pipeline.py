"""
Barcode resolution pipeline.

Turns a scanned or typed barcode into a ResolutionOutcome:
cache first, then a rate-limited Open Food Facts lookup with cache
write-back and a history entry.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from productscan.application.resolution.outcome import (
    ErrorKind,
    ProductSource,
    ResolutionOutcome,
    ResolutionState,
)
from productscan.application.resolution.scan_channel import ScanChannel, ScanEvent
from productscan.domain.barcode.validator import BarcodeValidationResult, BarcodeValidator
from productscan.domain.product.models import Product
from productscan.domain.product.openfoodfacts_mapper import OpenFoodFactsMapper
from productscan.domain.shared.cancellation import CancellationToken
from productscan.domain.shared.errors import (
    BarcodeNotFoundError,
    DomainError,
    InvalidBarcodeError,
    LookupCancelledError,
    NetworkUnavailableError,
)
from productscan.domain.shared.ports import (
    Clock,
    ConnectivityMonitor,
    HistoryLog,
    ProductFetcher,
)
from productscan.domain.shared.value_objects import NormalizedBarcode, Symbology
from productscan.infrastructure.cache.product_cache import ProductCache
from productscan.infrastructure.clock import SystemClock
from productscan.infrastructure.rate_limit.token_bucket import TokenBucketRateLimiter

logger = structlog.get_logger(__name__)

OutcomeHandler = Callable[[ResolutionOutcome], Union[None, Awaitable[None]]]


class ResolutionRequest:
    """One in-flight lookup."""

    def __init__(self, barcode: NormalizedBarcode, started_at: float) -> None:
        self.barcode = barcode
        self.started_at = started_at
        self.state = ResolutionState.VALIDATING
        self.cancel_token = CancellationToken()
        self.task: Optional[asyncio.Task] = None

    @property
    def is_active(self) -> bool:
        return self.task is not None and not self.task.done()


class _HeldResult:
    """Last completed resolution, kept for the cooldown window."""

    def __init__(
        self,
        barcode: str,
        outcome: ResolutionOutcome,
        completed_at: float,
        cache_generation: int,
    ) -> None:
        self.barcode = barcode
        self.outcome = outcome
        self.completed_at = completed_at
        self.cache_generation = cache_generation


class ResolutionPipeline:
    """Orchestrates barcode resolution.

    Flow:
    1. Validate and normalize the barcode
    2. Coalesce repeats inside the cooldown, join a flight for the
       same barcode, cancel a flight for a different one
    3. Cache lookup (hit: done)
    4. Connectivity check, rate limiter, network fetch
    5. Cache write-back and history entry
    """

    def __init__(
        self,
        cache: ProductCache,
        fetcher: ProductFetcher,
        limiter: TokenBucketRateLimiter,
        history: Optional[HistoryLog] = None,
        connectivity: Optional[ConnectivityMonitor] = None,
        clock: Optional[Clock] = None,
        preferred_locale: str = "en",
        cooldown_seconds: float = 1.5,
    ) -> None:
        """Initialize pipeline.

        Args:
            cache: Product cache
            fetcher: Remote product database
            limiter: Rate limiter shared by every outbound lookup
            history: Scan history log (optional)
            connectivity: Network reachability signal (optional)
            clock: Time source (default: system clock)
            preferred_locale: Language used for localized fields
            cooldown_seconds: Window in which a repeat scan reuses the result
        """
        self.cache = cache
        self.fetcher = fetcher
        self.limiter = limiter
        self.history = history
        self.connectivity = connectivity
        self.preferred_locale = preferred_locale
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock or SystemClock()

        self._state = ResolutionState.IDLE
        self._current: Optional[ResolutionRequest] = None
        self._held: Optional[_HeldResult] = None

    @property
    def state(self) -> ResolutionState:
        return self._state

    # ── host operations ──────────────────────────────────────

    def validate_barcode(
        self, raw: str, symbology: Optional[Symbology] = None
    ) -> BarcodeValidationResult:
        """Validate without resolving (manual entry feedback)."""
        return BarcodeValidator.inspect(raw, symbology)

    def clear_cache(self) -> int:
        """Drop every cached product and the held result."""
        self._held = None
        return self.cache.clear()

    def evict_expired_cache(self, older_than_days: float = 7) -> int:
        """Maintenance sweep over the cache."""
        removed = self.cache.evict_expired(older_than_days)
        if removed:
            self._held = None
        return removed

    def reset(self) -> None:
        """Forget the held result, as when the scanner resumes."""
        self._held = None
        if self._current is None or not self._current.is_active:
            self._set_state(ResolutionState.IDLE)

    async def aclose(self) -> None:
        """Cancel the active lookup, if any, and wait for it to unwind."""
        request = self._current
        if request is not None and request.is_active:
            self._cancel(request)
            await asyncio.wait({request.task})

    # ── resolution ───────────────────────────────────────────

    async def resolve(
        self, raw_barcode: str, symbology: Optional[Symbology] = None
    ) -> Optional[ResolutionOutcome]:
        """Resolve a barcode.

        Args:
            raw_barcode: Scanned or typed barcode
            symbology: Symbology reported by the scanner, if known

        Returns:
            The outcome, or None if a newer request superseded this one

        Example:
            >>> async def scan(pipeline: ResolutionPipeline) -> None:
            ...     outcome = await pipeline.resolve("3017620422003")
            ...     if outcome and outcome.is_success:
            ...         print(outcome.product.name)
        """
        try:
            barcode = BarcodeValidator.validate(raw_barcode, symbology)
        except InvalidBarcodeError as e:
            logger.info("Invalid barcode", raw=raw_barcode, reason=str(e))
            return ResolutionOutcome.failure(raw_barcode or "", e)

        current = self._current
        active = current is not None and current.is_active

        if not active:
            held = self._held_outcome(barcode)
            if held is not None:
                logger.debug("Coalesced repeat scan", barcode=barcode.value)
                return held

        if active and current is not None:
            if current.barcode.value == barcode.value:
                logger.debug("Joining in-flight lookup", barcode=barcode.value)
                return await self._wait(current)
            self._cancel(current)

        request = ResolutionRequest(barcode, started_at=self._clock.now())
        self._current = request
        self._set_state(ResolutionState.VALIDATING, request)
        request.task = asyncio.create_task(self._run(request))
        return await self._wait(request)

    async def run(self, channel: ScanChannel, on_outcome: OutcomeHandler) -> None:
        """Consume scan events until the channel is closed.

        Each event supersedes the previous one; outcomes of superseded
        lookups are never delivered.

        Args:
            channel: Source of scan events
            on_outcome: Called (or awaited) with every delivered outcome
        """
        pending: set[asyncio.Task] = set()
        try:
            async for event in channel:
                task = asyncio.create_task(self._deliver(event, on_outcome))
                pending.add(task)
                task.add_done_callback(pending.discard)
            if pending:
                await asyncio.gather(*pending)
        finally:
            leftover = list(pending)
            for task in leftover:
                task.cancel()
            if leftover:
                await asyncio.gather(*leftover, return_exceptions=True)
            await self.aclose()

    async def _deliver(self, event: ScanEvent, on_outcome: OutcomeHandler) -> None:
        outcome = await self.resolve(event.raw, event.symbology)
        if outcome is None:
            return
        try:
            result: Any = on_outcome(outcome)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Outcome handler failed", barcode=outcome.barcode)

    # ── internals ────────────────────────────────────────────

    def _set_state(
        self, state: ResolutionState, request: Optional[ResolutionRequest] = None
    ) -> None:
        if request is not None:
            request.state = state
            if request is not self._current:
                return
        if state != self._state:
            logger.debug("Pipeline state", state=state.value)
        self._state = state

    def _held_outcome(self, barcode: NormalizedBarcode) -> Optional[ResolutionOutcome]:
        held = self._held
        if held is None or held.barcode != barcode.value:
            return None
        if held.outcome.product is None:
            return None
        if self._clock.now() - held.completed_at >= self.cooldown_seconds:
            return None
        if self.cache.generation != held.cache_generation:
            return None
        return held.outcome.model_copy(update={"coalesced": True})

    def _cancel(self, request: ResolutionRequest) -> None:
        logger.info(
            "Cancelling superseded lookup",
            barcode=request.barcode.value,
            state=request.state.value,
        )
        request.cancel_token.cancel()
        if request.task is not None:
            request.task.cancel()

    async def _wait(self, request: ResolutionRequest) -> Optional[ResolutionOutcome]:
        assert request.task is not None
        # asyncio.wait leaves the task running if this caller is cancelled
        await asyncio.wait({request.task})
        if request.task.cancelled():
            return None
        return request.task.result()

    async def _run(self, request: ResolutionRequest) -> Optional[ResolutionOutcome]:
        barcode = request.barcode
        try:
            self._set_state(ResolutionState.CACHE_LOOKUP, request)
            cached = self.cache.get(barcode.value)

            if cached is not None:
                logger.info("Resolved from cache", barcode=barcode.value)
                self._record_history(cached)
                outcome = ResolutionOutcome.found(cached, ProductSource.CACHE)
            else:
                outcome = await self._resolve_remote(request)

        except LookupCancelledError:
            logger.debug("Lookup cancelled", barcode=barcode.value)
            return None

        except DomainError as e:
            outcome = ResolutionOutcome.failure(barcode.value, e)
            self._log_failure(barcode, e, outcome.error_kind)

        except Exception as e:
            logger.exception("Unexpected resolution failure", barcode=barcode.value)
            outcome = ResolutionOutcome.failure(barcode.value, e)

        if request.cancel_token.is_cancelled:
            return None

        self._held = _HeldResult(
            barcode=barcode.value,
            outcome=outcome,
            completed_at=self._clock.now(),
            cache_generation=self.cache.generation,
        )
        self._set_state(ResolutionState.DONE, request)
        return outcome

    async def _resolve_remote(self, request: ResolutionRequest) -> ResolutionOutcome:
        barcode = request.barcode
        token = request.cancel_token

        if self.connectivity is not None and not self.connectivity.is_connected():
            raise NetworkUnavailableError("No network connection")

        self._set_state(ResolutionState.RATE_LIMIT_WAIT, request)
        await self.limiter.admit()
        token.raise_if_cancelled()

        self._set_state(ResolutionState.FETCHING, request)
        response = await self.fetcher.fetch_product(barcode, self.preferred_locale, token)
        token.raise_if_cancelled()

        if not response.is_found() or response.product is None:
            raise BarcodeNotFoundError(f"Barcode {barcode.value} not found")

        product = OpenFoodFactsMapper.to_product(
            response.product, self.preferred_locale, barcode=barcode.value
        )

        self._set_state(ResolutionState.WRITING_BACK, request)
        # No await between this check and the writes below
        token.raise_if_cancelled()
        try:
            self.cache.put(product)
        except DomainError as e:
            logger.error("Cache write-back failed", barcode=barcode.value, error=str(e))
        self._record_history(product)

        logger.info(
            "Resolved from network",
            barcode=barcode.value,
            name=product.name,
            completeness=product.completeness,
        )
        return ResolutionOutcome.found(product, ProductSource.NETWORK)

    def _record_history(self, product: Product) -> None:
        if self.history is None:
            return
        try:
            self.history.add_scan(product)
        except Exception as e:
            logger.warning("History log failed", barcode=product.barcode, error=str(e))

    def _log_failure(
        self, barcode: NormalizedBarcode, error: DomainError, kind: Optional[ErrorKind]
    ) -> None:
        if kind == ErrorKind.NOT_FOUND:
            logger.info("Product not found", barcode=barcode.value)
        elif error.retryable:
            logger.warning(
                "Transient lookup failure",
                barcode=barcode.value,
                kind=kind.value if kind else None,
                error=str(error),
            )
        else:
            logger.error(
                "Lookup failed",
                barcode=barcode.value,
                kind=kind.value if kind else None,
                error=str(error),
            )
