"""
Product domain models.

Display-ready product record built from an Open Food Facts response.
"""

from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from productscan.domain.product.allergens import Allergen


class NutriScore(str, Enum):
    """Nutri-Score grade, A (best) to E (worst)."""

    A = "a"
    B = "b"
    C = "c"
    D = "d"
    E = "e"

    @property
    def grade(self) -> str:
        return self.value.upper()


class NovaGroup(IntEnum):
    """NOVA food processing classification."""

    UNPROCESSED = 1  # Unprocessed or minimally processed
    PROCESSED_INGREDIENTS = 2  # Processed culinary ingredients
    PROCESSED = 3
    ULTRA_PROCESSED = 4


class EcoScore(str, Enum):
    """Eco-Score environmental grade, A to E."""

    A = "a"
    B = "b"
    C = "c"
    D = "d"
    E = "e"

    @property
    def grade(self) -> str:
        return self.value.upper()


class DataQuality(str, Enum):
    """Bucketed completeness of the upstream record."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class Nutriments(BaseModel):
    """Nutritional values, per 100g/100ml when available.

    Example:
        >>> nutriments = Nutriments(energy_kcal=539.0, fat=30.9, proteins=6.3)
        >>> assert nutriments.has_data
    """

    model_config = ConfigDict(frozen=True)

    energy_kcal: Optional[float] = Field(None, ge=0, description="Energy in kcal")
    energy_kj: Optional[float] = Field(None, ge=0, description="Energy in kJ")
    fat: Optional[float] = Field(None, ge=0)
    saturated_fat: Optional[float] = Field(None, ge=0)
    carbohydrates: Optional[float] = Field(None, ge=0)
    sugars: Optional[float] = Field(None, ge=0)
    fiber: Optional[float] = Field(None, ge=0)
    proteins: Optional[float] = Field(None, ge=0)
    salt: Optional[float] = Field(None, ge=0)
    sodium: Optional[float] = Field(None, ge=0)
    energy_unit: str = Field("kcal", description="Unit reported upstream")

    @property
    def has_data(self) -> bool:
        """Enough values to render a nutrition table."""
        return any(
            v is not None for v in (self.energy_kcal, self.fat, self.carbohydrates, self.proteins)
        )


class Ingredient(BaseModel):
    """Single ingredient of a product."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    percent: Optional[float] = None
    percent_min: Optional[float] = None
    percent_max: Optional[float] = None
    is_vegan: Optional[bool] = None
    is_vegetarian: Optional[bool] = None
    is_from_palm_oil: Optional[bool] = None


class Product(BaseModel):
    """
    Display-ready product record.

    Immutable: a re-fetch replaces the whole record, never patches it.

    Example:
        >>> product = Product(
        ...     barcode="3017620422003",
        ...     name="Nutella",
        ...     brand="Ferrero",
        ...     quantity="400g",
        ... )
        >>> product.brand_and_quantity
        'Ferrero - 400g'
    """

    model_config = ConfigDict(frozen=True)

    barcode: str = Field(..., description="EAN-13 barcode")
    name: str = Field(..., description="Localized product name")
    generic_name: Optional[str] = None
    brand: Optional[str] = None
    quantity: Optional[str] = None

    manufacturer: Optional[str] = None
    origin: Optional[str] = None
    countries: list[str] = Field(default_factory=list)
    stores: Optional[str] = None

    categories: list[str] = Field(default_factory=list, max_length=5)

    ingredients_text: Optional[str] = None
    ingredients: list[Ingredient] = Field(default_factory=list)

    allergens: list[Allergen] = Field(default_factory=list)
    traces: list[Allergen] = Field(default_factory=list)
    additives: list[str] = Field(default_factory=list)

    nutri_score: Optional[NutriScore] = None
    nova_group: Optional[NovaGroup] = None
    eco_score: Optional[EcoScore] = None
    nutriments: Optional[Nutriments] = None

    image_url: Optional[str] = None
    image_thumbnail_url: Optional[str] = None
    ingredients_image_url: Optional[str] = None
    nutrition_image_url: Optional[str] = None

    completeness: float = Field(0.0, ge=0.0, le=1.0)
    last_modified: Optional[datetime] = None

    @property
    def has_allergen_warnings(self) -> bool:
        return bool(self.allergens) or bool(self.traces)

    @property
    def all_allergen_warnings(self) -> set[Allergen]:
        return set(self.allergens) | set(self.traces)

    @property
    def brand_and_quantity(self) -> Optional[str]:
        """Brand and quantity joined by " - ", skipping missing parts."""
        parts = [p for p in (self.brand, self.quantity) if p]
        return " - ".join(parts) or None

    @property
    def origin_display(self) -> Optional[str]:
        """Declared origin, else the list of countries."""
        if self.origin:
            return self.origin
        if self.countries:
            return ", ".join(self.countries)
        return None

    @property
    def is_complete(self) -> bool:
        return self.completeness >= 0.7

    @property
    def data_quality(self) -> DataQuality:
        if self.completeness >= 0.8:
            return DataQuality.EXCELLENT
        if self.completeness >= 0.6:
            return DataQuality.GOOD
        if self.completeness >= 0.4:
            return DataQuality.FAIR
        return DataQuality.POOR
