"""
Domain exceptions.

Typed exceptions for explicit error handling.
Every error carries its retry policy so callers never need
to pattern-match on messages.
"""

from __future__ import annotations

from typing import Optional


# ═══════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════


class DomainError(Exception):
    """
    Base exception for all domain errors.

    All domain-specific exceptions inherit from this.
    Allows catching all domain errors with single except clause.
    """

    retryable: bool = False
    show_contribute_option: bool = False


# ═══════════════════════════════════════════════════════════
# BARCODE / PRODUCT EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ValidationError(DomainError):
    """
    Input validation failed.

    Example:
        >>> raise ValidationError("Barcode cannot be empty")
    """

    pass


class InvalidBarcodeError(ValidationError):
    """
    Barcode is malformed or fails its checksum.

    Raised when:
    - Input has no digits
    - Digit count is not 8, 12 or 13
    - Check digit does not match

    Example:
        >>> raise InvalidBarcodeError("Checksum mismatch for 4006381333932")
    """

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class BarcodeNotFoundError(DomainError):
    """
    Barcode not found in the product database.

    Raised when:
    - Open Food Facts answers 404
    - Open Food Facts answers status=0

    The caller is expected to offer a "contribute this product" option.

    Example:
        >>> raise BarcodeNotFoundError("Barcode 3017620422003 not found")
    """

    show_contribute_option = True


# ═══════════════════════════════════════════════════════════
# EXTERNAL SERVICE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class ExternalServiceError(DomainError):
    """
    External service call failed.

    Base class for all external service errors.
    Unclassified failures stay non-retryable.
    """

    pass


class NetworkUnavailableError(ExternalServiceError):
    """
    No network path to the service.

    Raised when:
    - Device is offline
    - Connection refused or dropped

    Example:
        >>> raise NetworkUnavailableError("Connection lost")
    """

    retryable = True


class TimeoutError(ExternalServiceError):  # noqa: A001
    """
    API call timed out.

    Example:
        >>> raise TimeoutError("Open Food Facts timeout after 10s")
    """

    retryable = True


class ServerError(ExternalServiceError):
    """
    Service answered with a 5xx status.

    Example:
        >>> raise ServerError("Open Food Facts error", status_code=503)
    """

    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(ExternalServiceError):
    """
    Upstream rate limit exceeded (HTTP 429).

    Example:
        >>> raise RateLimitError("Open Food Facts rate limit")
    """

    retryable = True


class HttpStatusError(ExternalServiceError):
    """
    Unexpected HTTP status that fits no other category.

    Example:
        >>> raise HttpStatusError("Unexpected status", status_code=418)
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodingError(ExternalServiceError):
    """
    Response payload did not match the expected shape.

    Treated as an internal defect, never retried.

    Example:
        >>> raise DecodingError("product.nutriments is not an object")
    """

    pass


class LookupCancelledError(ExternalServiceError):
    """
    Lookup was superseded by a newer request.

    Never surfaced to users; the pipeline drops it silently.
    """

    pass


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE EXCEPTIONS
# ═══════════════════════════════════════════════════════════


class InfrastructureError(DomainError):
    """
    Infrastructure layer error.

    Base class for store, cache, etc. errors.
    """

    pass


class StoreError(InfrastructureError):
    """
    Key-value store operation failed.

    Example:
        >>> raise StoreError("Write failed for product:3017620422003")
    """

    pass
