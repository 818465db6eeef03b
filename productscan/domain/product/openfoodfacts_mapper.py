"""
OpenFoodFacts data mapper.

Transforms OpenFoodFacts API responses to domain models.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

import pydantic

from productscan.domain.product.allergens import parse_allergen_tags
from productscan.domain.product.localization import localized_field
from productscan.domain.product.models import (
    EcoScore,
    Ingredient,
    NovaGroup,
    NutriScore,
    Nutriments,
    Product,
)
from productscan.domain.product.openfoodfacts_models import (
    OFFIngredientDTO,
    OFFNutrimentsDTO,
    OFFProductDTO,
    OFFProductResponse,
    OFFSearchResponse,
)
from productscan.domain.shared.errors import DecodingError

UNKNOWN_PRODUCT_NAME = "Unknown product"
MAX_CATEGORIES = 5

_LANGUAGE_PREFIX = re.compile(r"^[a-z]{2,3}:")


def _clean_tag(tag: str) -> str:
    """Turn a tag like en:united-kingdom into United Kingdom."""
    return _LANGUAGE_PREFIX.sub("", tag).replace("-", " ").strip().title()


def _parse_off_bool(value: Optional[str]) -> Optional[bool]:
    # OFF uses "yes" / "no" / "maybe"
    if value is None:
        return None
    lowered = value.lower()
    if lowered == "yes":
        return True
    if lowered == "no":
        return False
    return None


def _last_modified(timestamp: Optional[int]) -> Optional[datetime]:
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise DecodingError(f"Invalid last_modified_t {timestamp}: {e}") from e


class OpenFoodFactsMapper:
    """Maps OpenFoodFacts API data to domain models."""

    @staticmethod
    def parse_product_response(response_data: Any) -> OFFProductResponse:
        """Parse OpenFoodFacts product API response.

        Args:
            response_data: Raw API response JSON

        Returns:
            Parsed OFFProductResponse

        Raises:
            DecodingError: If the payload does not have the expected shape

        Example:
            >>> response = {
            ...     "status": 1,
            ...     "code": "3017620422003",
            ...     "product": {
            ...         "code": "3017620422003",
            ...         "product_name": "Nutella",
            ...         "nutriments": {"energy-kcal_100g": 539.0},
            ...     },
            ... }
            >>> result = OpenFoodFactsMapper.parse_product_response(response)
            >>> assert result.is_found()
        """
        if not isinstance(response_data, dict):
            raise DecodingError(
                f"Expected a JSON object, got {type(response_data).__name__}"
            )
        try:
            return OFFProductResponse.model_validate(response_data)
        except pydantic.ValidationError as e:
            raise DecodingError(f"Invalid OpenFoodFacts payload: {e}") from e

    @staticmethod
    def parse_search_response(response_data: Any) -> OFFSearchResponse:
        """Parse OpenFoodFacts search API response.

        Raises:
            DecodingError: If the payload does not have the expected shape
        """
        if not isinstance(response_data, dict):
            raise DecodingError(
                f"Expected a JSON object, got {type(response_data).__name__}"
            )
        try:
            return OFFSearchResponse.model_validate(response_data)
        except pydantic.ValidationError as e:
            raise DecodingError(f"Invalid OpenFoodFacts search payload: {e}") from e

    @staticmethod
    def to_product(dto: OFFProductDTO, preferred_locale: str, barcode: str = "") -> Product:
        """Build a display-ready Product.

        Localized fields go through the locale fallback chain
        (preferred, "en", unsuffixed, any).

        Args:
            dto: Parsed product object
            preferred_locale: Language code to prefer
            barcode: Canonical barcode; overrides the code echoed in the payload

        Returns:
            Product

        Raises:
            DecodingError: If values are out of range (e.g. negative fat,
                or a timestamp past the platform's datetime range)

        Example:
            >>> dto = OFFProductDTO.model_validate(
            ...     {"code": "3017620422003", "product_name": "Nutella",
            ...      "product_name_it": "Nutella Crema"}
            ... )
            >>> OpenFoodFactsMapper.to_product(dto, "it").name
            'Nutella Crema'
        """
        try:
            return OpenFoodFactsMapper._build_product(dto, preferred_locale, barcode)
        except pydantic.ValidationError as e:
            raise DecodingError(f"Invalid product values: {e}") from e

    @staticmethod
    def _build_product(dto: OFFProductDTO, preferred_locale: str, barcode: str) -> Product:
        raw = dto.raw_fields()

        name = localized_field(raw, "product_name", preferred_locale) or UNKNOWN_PRODUCT_NAME

        return Product(
            barcode=barcode or dto.code or "",
            name=name,
            generic_name=localized_field(raw, "generic_name", preferred_locale),
            brand=dto.brands,
            quantity=dto.quantity,
            manufacturer=dto.brand_owner,
            origin=dto.origins,
            countries=[_clean_tag(t) for t in dto.countries_tags or []],
            stores=dto.stores,
            categories=OpenFoodFactsMapper._categories(dto),
            ingredients_text=localized_field(raw, "ingredients_text", preferred_locale),
            ingredients=[
                OpenFoodFactsMapper._ingredient(i, index)
                for index, i in enumerate(dto.ingredients or [])
            ],
            allergens=parse_allergen_tags(dto.allergens_tags),
            traces=parse_allergen_tags(dto.traces_tags),
            additives=[_LANGUAGE_PREFIX.sub("", t).upper() for t in dto.additives_tags or []],
            nutri_score=OpenFoodFactsMapper._nutri_score(dto),
            nova_group=OpenFoodFactsMapper._nova_group(dto.nova_group),
            eco_score=OpenFoodFactsMapper._eco_score(dto),
            nutriments=(
                OpenFoodFactsMapper._nutriments(dto.nutriments) if dto.nutriments else None
            ),
            image_url=dto.image_front_url or dto.image_url,
            image_thumbnail_url=dto.image_front_small_url or dto.image_small_url,
            ingredients_image_url=dto.image_ingredients_url,
            nutrition_image_url=dto.image_nutrition_url,
            completeness=min(max(dto.completeness or 0.0, 0.0), 1.0),
            last_modified=_last_modified(dto.last_modified_t),
        )

    @staticmethod
    def _categories(dto: OFFProductDTO) -> list[str]:
        """Comma-separated text first, cleaned tags otherwise. At most 5."""
        if dto.categories:
            parts = [p.strip() for p in dto.categories.split(",")]
            return [p for p in parts if p][:MAX_CATEGORIES]
        return [_clean_tag(t) for t in dto.categories_tags or []][:MAX_CATEGORIES]

    @staticmethod
    def _ingredient(dto: OFFIngredientDTO, index: int) -> Ingredient:
        return Ingredient(
            id=dto.id or f"ingredient-{index}",
            text=(dto.text or "").strip(),
            percent=dto.percent if dto.percent is not None else dto.percent_estimate,
            percent_min=dto.percent_min,
            percent_max=dto.percent_max,
            is_vegan=_parse_off_bool(dto.vegan),
            is_vegetarian=_parse_off_bool(dto.vegetarian),
            is_from_palm_oil=_parse_off_bool(dto.from_palm_oil),
        )

    @staticmethod
    def _nutriments(dto: OFFNutrimentsDTO) -> Nutriments:
        """Per-100g values win over raw ones."""

        def pick(per_100g: Optional[float], raw: Optional[float]) -> Optional[float]:
            return per_100g if per_100g is not None else raw

        return Nutriments(
            energy_kcal=pick(dto.energy_kcal_100g, dto.energy_kcal),
            energy_kj=pick(dto.energy_kj_100g, dto.energy_kj),
            fat=pick(dto.fat_100g, dto.fat),
            saturated_fat=pick(dto.saturated_fat_100g, dto.saturated_fat),
            carbohydrates=pick(dto.carbohydrates_100g, dto.carbohydrates),
            sugars=pick(dto.sugars_100g, dto.sugars),
            fiber=pick(dto.fiber_100g, dto.fiber),
            proteins=pick(dto.proteins_100g, dto.proteins),
            salt=pick(dto.salt_100g, dto.salt),
            sodium=pick(dto.sodium_100g, dto.sodium),
            energy_unit=dto.energy_unit or "kcal",
        )

    @staticmethod
    def _nutri_score(dto: OFFProductDTO) -> Optional[NutriScore]:
        for raw in (dto.nutriscore_grade, dto.nutrition_grade_fr):
            if raw:
                try:
                    return NutriScore(raw.lower())
                except ValueError:
                    continue
        return None

    @staticmethod
    def _eco_score(dto: OFFProductDTO) -> Optional[EcoScore]:
        raw = dto.ecoscore_grade or dto.ecoscore
        if not raw:
            return None
        try:
            return EcoScore(raw.lower())
        except ValueError:
            # "unknown", "not-applicable"
            return None

    @staticmethod
    def _nova_group(raw: Optional[int]) -> Optional[NovaGroup]:
        if raw is None:
            return None
        try:
            return NovaGroup(raw)
        except ValueError:
            return None
