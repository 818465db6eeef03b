"""
Ports (Interfaces) for resolution dependencies.

Defines the collaborators the resolution pipeline talks to. The
pipeline only depends on these protocols; adapters live in
infrastructure and are wired by productscan.config.build_pipeline.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from productscan.domain.history.models import HistoryRecord
    from productscan.domain.product.models import Product
    from productscan.domain.product.openfoodfacts_models import OFFProductResponse
    from productscan.domain.shared.cancellation import CancellationToken
    from productscan.domain.shared.value_objects import NormalizedBarcode


class StoreMetadata(BaseModel):
    """Bookkeeping the store keeps next to each value."""

    model_config = ConfigDict(frozen=True)

    written_at: float = Field(..., description="Epoch seconds of the last write")
    size: int = Field(..., ge=0, description="Value size in bytes")


@runtime_checkable
class Clock(Protocol):
    """Port for wall-clock time (epoch seconds)."""

    def now(self) -> float:
        ...


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Port for a generic key-value store.

    Values are opaque bytes. Each put is atomic per key: readers see
    either the old value or the new one, never a mix.
    """

    def get(self, key: str) -> Optional[bytes]:
        """Return the stored value, or None if absent."""
        ...

    def put(self, key: str, value: bytes) -> None:
        """Insert or replace the value under key.

        Raises:
            StoreError: If the write fails
        """
        ...

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if something was deleted."""
        ...

    def scan_all(self, prefix: str = "") -> Iterator[tuple[str, bytes, StoreMetadata]]:
        """Iterate over (key, value, metadata) for keys starting with prefix."""
        ...


@runtime_checkable
class ProductFetcher(Protocol):
    """
    Port for the remote product database.

    Implementations translate transport failures into domain errors
    and poll the cancellation token around their suspension points.
    """

    async def fetch_product(
        self,
        barcode: "NormalizedBarcode",
        locale: str,
        cancel_token: "CancellationToken",
    ) -> "OFFProductResponse":
        """
        Fetch the raw product record.

        Args:
            barcode: Validated barcode
            locale: Preferred language code (e.g. "it")
            cancel_token: Cancelled when a newer scan supersedes this one

        Returns:
            Parsed response with status == 1 and a product

        Raises:
            BarcodeNotFoundError: Product unknown upstream
            NetworkUnavailableError: No connectivity
            TimeoutError: Request timed out
            ServerError: Upstream 5xx
            RateLimitError: Upstream 429
            HttpStatusError: Any other unexpected status
            DecodingError: Payload did not parse
            LookupCancelledError: Token was cancelled
        """
        ...


@runtime_checkable
class HistoryLog(Protocol):
    """Port for the scan history log. Write-only from the pipeline's side."""

    def add_scan(self, product: "Product") -> "HistoryRecord":
        """Append a history record for a resolved product."""
        ...


@runtime_checkable
class ConnectivityMonitor(Protocol):
    """Port for the host's network reachability signal."""

    def is_connected(self) -> bool:
        ...
