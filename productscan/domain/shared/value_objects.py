"""
Shared value objects.

Immutable, validated domain primitives.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Symbology(str, Enum):
    """Barcode symbology reported by the capture collaborator."""

    EAN_13 = "ean13"
    EAN_8 = "ean8"
    UPC_A = "upca"
    UPC_E = "upce"


class NormalizedBarcode(BaseModel):
    """
    Validated barcode in canonical EAN-13 form.

    Only produced by BarcodeValidator, so the checksum is known good.

    Example:
        >>> barcode = NormalizedBarcode(
        ...     value="0036000291452",
        ...     symbology=Symbology.UPC_A,
        ...     raw="036000291452",
        ... )
        >>> assert len(barcode.value) == 13
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., pattern=r"^\d{13}$", description="EAN-13 digits")
    symbology: Symbology = Field(..., description="Symbology before normalization")
    raw: str = Field(..., pattern=r"^\d{8}$|^\d{12,13}$", description="Validated digits")

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"NormalizedBarcode('{self.value}', {self.symbology.value})"

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)
