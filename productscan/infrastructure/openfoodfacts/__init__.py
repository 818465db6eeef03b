"""Open Food Facts HTTP client."""

from productscan.infrastructure.openfoodfacts.api_client import OpenFoodFactsClient

__all__ = ["OpenFoodFactsClient"]
