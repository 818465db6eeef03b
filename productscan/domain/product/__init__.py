"""Product records, Open Food Facts DTOs and localized field selection."""

from productscan.domain.product.allergens import Allergen, parse_allergen_tags
from productscan.domain.product.localization import (
    candidates_from_fields,
    localized_field,
    select_localized,
)
from productscan.domain.product.models import (
    DataQuality,
    EcoScore,
    Ingredient,
    NovaGroup,
    NutriScore,
    Nutriments,
    Product,
)
from productscan.domain.product.openfoodfacts_mapper import OpenFoodFactsMapper
from productscan.domain.product.openfoodfacts_models import (
    OFFIngredientDTO,
    OFFNutrimentsDTO,
    OFFProductDTO,
    OFFProductResponse,
)

__all__ = [
    "Allergen",
    "DataQuality",
    "EcoScore",
    "Ingredient",
    "NovaGroup",
    "NutriScore",
    "Nutriments",
    "OFFIngredientDTO",
    "OFFNutrimentsDTO",
    "OFFProductDTO",
    "OFFProductResponse",
    "OpenFoodFactsMapper",
    "Product",
    "candidates_from_fields",
    "localized_field",
    "parse_allergen_tags",
    "select_localized",
]
