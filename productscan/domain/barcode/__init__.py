"""Barcode checksum validation and symbology normalization."""

from productscan.domain.barcode.validator import (
    BarcodeValidationResult,
    BarcodeValidator,
)

__all__ = [
    "BarcodeValidationResult",
    "BarcodeValidator",
]
