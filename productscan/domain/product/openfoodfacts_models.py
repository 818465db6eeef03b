"""
OpenFoodFacts API models.

Response DTOs for the Open Food Facts v2 product endpoint. Localized
siblings (``product_name_it`` and friends) are kept as extra fields so
the mapper can run the locale fallback over whatever the server sent.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OFFNutrimentsDTO(BaseModel):
    """OpenFoodFacts nutriments block.

    OFF uses hyphenated keys; both the raw and the per-100g value are
    kept and the mapper prefers the latter.

    Example:
        >>> dto = OFFNutrimentsDTO.model_validate({"energy-kcal_100g": 539.0})
        >>> assert dto.energy_kcal_100g == 539.0
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    energy_kcal: Optional[float] = Field(None, alias="energy-kcal")
    energy_kcal_100g: Optional[float] = Field(None, alias="energy-kcal_100g")
    energy_kj: Optional[float] = Field(None, alias="energy-kj")
    energy_kj_100g: Optional[float] = Field(None, alias="energy-kj_100g")
    energy_unit: Optional[str] = None
    fat: Optional[float] = None
    fat_100g: Optional[float] = None
    saturated_fat: Optional[float] = Field(None, alias="saturated-fat")
    saturated_fat_100g: Optional[float] = Field(None, alias="saturated-fat_100g")
    carbohydrates: Optional[float] = None
    carbohydrates_100g: Optional[float] = None
    sugars: Optional[float] = None
    sugars_100g: Optional[float] = None
    fiber: Optional[float] = None
    fiber_100g: Optional[float] = None
    proteins: Optional[float] = None
    proteins_100g: Optional[float] = None
    salt: Optional[float] = None
    salt_100g: Optional[float] = None
    sodium: Optional[float] = None
    sodium_100g: Optional[float] = None


class OFFIngredientDTO(BaseModel):
    """One entry of the OFF ``ingredients`` array."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[str] = None
    text: Optional[str] = None
    percent: Optional[float] = None
    percent_estimate: Optional[float] = None
    percent_min: Optional[float] = None
    percent_max: Optional[float] = None
    vegan: Optional[str] = None
    vegetarian: Optional[str] = None
    from_palm_oil: Optional[str] = None


class OFFProductDTO(BaseModel):
    """OpenFoodFacts product object.

    Example:
        >>> dto = OFFProductDTO.model_validate(
        ...     {"code": "3017620422003", "product_name": "Nutella", "product_name_it": "Nutella"}
        ... )
        >>> assert dto.model_extra["product_name_it"] == "Nutella"
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    code: Optional[str] = None

    product_name: Optional[str] = None
    generic_name: Optional[str] = None

    brands: Optional[str] = None
    brand_owner: Optional[str] = None
    quantity: Optional[str] = None
    origins: Optional[str] = None
    manufacturing_places: Optional[str] = None
    stores: Optional[str] = None
    countries_tags: Optional[list[str]] = None

    categories: Optional[str] = None
    categories_tags: Optional[list[str]] = None

    ingredients_text: Optional[str] = None
    ingredients: Optional[list[OFFIngredientDTO]] = None

    allergens_tags: Optional[list[str]] = None
    traces_tags: Optional[list[str]] = None
    additives_tags: Optional[list[str]] = None

    nutriscore_grade: Optional[str] = None
    nutrition_grade_fr: Optional[str] = None
    nova_group: Optional[int] = None
    ecoscore_grade: Optional[str] = None
    ecoscore: Optional[str] = None
    nutriments: Optional[OFFNutrimentsDTO] = None

    image_url: Optional[str] = None
    image_small_url: Optional[str] = None
    image_front_url: Optional[str] = None
    image_front_small_url: Optional[str] = None
    image_ingredients_url: Optional[str] = None
    image_nutrition_url: Optional[str] = None

    completeness: Optional[float] = None
    last_modified_t: Optional[int] = None

    def raw_fields(self) -> dict[str, Any]:
        """Declared and extra fields, for localized lookups."""
        return self.model_dump()


class OFFProductResponse(BaseModel):
    """OpenFoodFacts product endpoint response.

    Example:
        >>> response = OFFProductResponse(
        ...     status=1,
        ...     code="3017620422003",
        ...     product=OFFProductDTO(code="3017620422003", product_name="Nutella"),
        ... )
        >>> assert response.is_found()
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    status: int = Field(..., description="API status (1=found, 0=not)")
    code: Optional[str] = Field(None, description="Barcode echoed by the server")
    status_verbose: Optional[str] = None
    product: Optional[OFFProductDTO] = Field(None, description="Product data (if found)")

    def is_found(self) -> bool:
        """Check if product was found.

        Returns:
            True if product exists in database
        """
        return self.status == 1 and self.product is not None


class OFFSearchResponse(BaseModel):
    """OpenFoodFacts search endpoint response (one page of hits)."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    count: int = 0
    page: int = 1
    page_size: int = 0
    products: list[OFFProductDTO] = Field(default_factory=list)
