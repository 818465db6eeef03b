"""
Scan history domain models.

Denormalized snapshot of a resolved product, kept for fast list
display without reading the product cache.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from productscan.domain.product.models import NovaGroup, NutriScore, Product


class HistoryRecord(BaseModel):
    """
    One scan in the history log.

    Example:
        >>> product = Product(barcode="3017620422003", name="Nutella", brand="Ferrero")
        >>> record = HistoryRecord.from_product(product, scanned_at=1700000000.0)
        >>> assert record.product_name == "Nutella"
        >>> assert not record.is_favorite
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    barcode: str
    product_name: str
    brand: Optional[str] = None
    thumbnail_url: Optional[str] = None
    nutri_score: Optional[NutriScore] = None
    nova_group: Optional[NovaGroup] = None
    scanned_at: float = Field(..., description="Epoch seconds")
    is_favorite: bool = False
    user_notes: Optional[str] = None

    @classmethod
    def from_product(cls, product: Product, scanned_at: float) -> "HistoryRecord":
        """Snapshot the display fields of product."""
        return cls(
            barcode=product.barcode,
            product_name=product.name,
            brand=product.brand,
            thumbnail_url=product.image_thumbnail_url,
            nutri_score=product.nutri_score,
            nova_group=product.nova_group,
            scanned_at=scanned_at,
        )

    def matches(self, query: str) -> bool:
        """Case-insensitive match on name, brand or barcode."""
        needle = query.lower()
        return (
            needle in self.product_name.lower()
            or (self.brand is not None and needle in self.brand.lower())
            or needle in self.barcode
        )


class HistoryStats(BaseModel):
    """Counts over the history log."""

    model_config = ConfigDict(frozen=True)

    total_scans: int = 0
    unique_products: int = 0
    favorites: int = 0
