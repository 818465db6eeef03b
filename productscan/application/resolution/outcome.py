"""
Resolution outcome.

What the pipeline hands back to the host for every delivered scan.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from productscan.domain.product.models import Product
from productscan.domain.shared.errors import (
    BarcodeNotFoundError,
    DecodingError,
    DomainError,
    InvalidBarcodeError,
    NetworkUnavailableError,
    RateLimitError,
    ServerError,
    TimeoutError,
)


class ResolutionStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class ProductSource(str, Enum):
    CACHE = "cache"
    NETWORK = "network"


class ErrorKind(str, Enum):
    """Error classification exposed to the host."""

    INVALID_BARCODE = "invalid_barcode"
    NOT_FOUND = "not_found"
    NETWORK_UNAVAILABLE = "network_unavailable"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    RATE_LIMITED = "rate_limited"
    DECODING_FAILED = "decoding_failed"
    INTERNAL = "internal"


class ResolutionState(str, Enum):
    """Pipeline state machine."""

    IDLE = "idle"
    VALIDATING = "validating"
    CACHE_LOOKUP = "cache_lookup"
    RATE_LIMIT_WAIT = "rate_limit_wait"
    FETCHING = "fetching"
    WRITING_BACK = "writing_back"
    DONE = "done"


_ERROR_KINDS: tuple[tuple[type[DomainError], ErrorKind], ...] = (
    (InvalidBarcodeError, ErrorKind.INVALID_BARCODE),
    (BarcodeNotFoundError, ErrorKind.NOT_FOUND),
    (NetworkUnavailableError, ErrorKind.NETWORK_UNAVAILABLE),
    (TimeoutError, ErrorKind.TIMEOUT),
    (ServerError, ErrorKind.SERVER_ERROR),
    (RateLimitError, ErrorKind.RATE_LIMITED),
    (DecodingError, ErrorKind.DECODING_FAILED),
)


def classify_error(error: Exception) -> ErrorKind:
    """Map an exception to its ErrorKind. Anything unknown is INTERNAL."""
    for error_type, kind in _ERROR_KINDS:
        if isinstance(error, error_type):
            return kind
    return ErrorKind.INTERNAL


class ResolutionOutcome(BaseModel):
    """
    Result of one resolution.

    Example:
        >>> outcome = ResolutionOutcome.failure("3017620422003", BarcodeNotFoundError("gone"))
        >>> assert outcome.status == ResolutionStatus.NOT_FOUND
        >>> assert outcome.show_contribute_option
    """

    model_config = ConfigDict(frozen=True)

    barcode: str = Field(..., description="EAN-13 value, or the raw input if invalid")
    status: ResolutionStatus
    product: Optional[Product] = None
    source: Optional[ProductSource] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None
    retryable: bool = False
    show_contribute_option: bool = False
    coalesced: bool = Field(False, description="Served from the cooldown window")

    @property
    def is_success(self) -> bool:
        return self.status == ResolutionStatus.FOUND

    @classmethod
    def found(cls, product: Product, source: ProductSource) -> "ResolutionOutcome":
        return cls(
            barcode=product.barcode,
            status=ResolutionStatus.FOUND,
            product=product,
            source=source,
        )

    @classmethod
    def failure(cls, barcode: str, error: Exception) -> "ResolutionOutcome":
        kind = classify_error(error)
        return cls(
            barcode=barcode,
            status=(
                ResolutionStatus.NOT_FOUND if kind == ErrorKind.NOT_FOUND else ResolutionStatus.FAILED
            ),
            error_kind=kind,
            message=str(error) or type(error).__name__,
            retryable=getattr(error, "retryable", False),
            show_contribute_option=getattr(error, "show_contribute_option", False),
        )
