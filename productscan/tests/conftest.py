"""
Shared fixtures for productscan tests.

Real-world test product: Nutella (Ferrero), barcode 3017620422003.
Time is always faked: FakeClock for "now", FakeSleeper for waits.
"""

from typing import Any
from unittest.mock import AsyncMock

import pytest

from productscan.application.resolution.pipeline import ResolutionPipeline
from productscan.domain.barcode.validator import BarcodeValidator
from productscan.domain.product.openfoodfacts_mapper import OpenFoodFactsMapper
from productscan.domain.product.openfoodfacts_models import OFFProductResponse
from productscan.domain.shared.value_objects import NormalizedBarcode
from productscan.infrastructure.cache.product_cache import ProductCache
from productscan.infrastructure.connectivity import ManualConnectivityMonitor
from productscan.infrastructure.persistence.in_memory_store import InMemoryKeyValueStore
from productscan.infrastructure.persistence.scan_history import ScanHistoryLog
from productscan.infrastructure.rate_limit.token_bucket import TokenBucketRateLimiter

NUTELLA_BARCODE = "3017620422003"
T0 = 1_700_000_000.0


# ═══════════════════════════════════════════════════════════
# TIME FIXTURES
# ═══════════════════════════════════════════════════════════


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = T0) -> None:
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class FakeSleeper:
    """Async sleeper that advances the fake clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        self.clock.advance(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_sleeper(fake_clock: FakeClock) -> FakeSleeper:
    return FakeSleeper(fake_clock)


# ═══════════════════════════════════════════════════════════
# DOMAIN MODEL FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def nutella_barcode() -> NormalizedBarcode:
    """Validated barcode for Nutella."""
    return BarcodeValidator.validate(NUTELLA_BARCODE)


@pytest.fixture
def nutella_payload() -> dict[str, Any]:
    """Raw OFF v2 response for Nutella (trimmed)."""
    return {
        "code": NUTELLA_BARCODE,
        "status": 1,
        "status_verbose": "product found",
        "product": {
            "code": NUTELLA_BARCODE,
            "product_name": "Nutella",
            "product_name_en": "Nutella",
            "product_name_it": "Nutella Crema Spalmabile",
            "product_name_pt": "",
            "generic_name": "Pâte à tartiner aux noisettes et au cacao",
            "generic_name_en": "Hazelnut spread with cocoa",
            "brands": "Ferrero",
            "brand_owner": "Ferrero France Commerciale",
            "quantity": "400 g",
            "origins": "",
            "stores": "Carrefour, Leclerc",
            "countries_tags": ["en:france", "en:united-kingdom", "en:italy"],
            "categories": (
                "Spreads, Breakfasts, Sweet spreads, Cocoa and hazelnuts spreads, "
                "Hazelnut spreads, Chocolate spreads"
            ),
            "ingredients_text": "Sucre, huile de palme, NOISETTES 13%, LAIT écrémé en poudre 8,7%",
            "ingredients_text_en": "Sugar, palm oil, HAZELNUTS 13%, skimmed MILK powder 8.7%",
            "ingredients": [
                {"id": "en:sugar", "text": "Sugar", "percent_estimate": 55.9, "vegan": "yes"},
                {
                    "id": "en:palm-oil",
                    "text": "palm oil",
                    "percent_estimate": 20.3,
                    "vegan": "yes",
                    "from_palm_oil": "yes",
                },
                {"id": "en:hazelnut", "text": "HAZELNUTS", "percent": 13},
                {
                    "id": "en:skimmed-milk-powder",
                    "text": "skimmed MILK powder",
                    "percent": 8.7,
                    "vegan": "no",
                },
            ],
            "allergens_tags": ["en:milk", "en:nuts", "en:soybeans"],
            "traces_tags": ["en:gluten"],
            "additives_tags": ["en:e322", "en:e322i"],
            "nutriscore_grade": "e",
            "nova_group": 4,
            "ecoscore_grade": "d",
            "nutriments": {
                "energy-kcal": 539,
                "energy-kcal_100g": 539,
                "energy-kj_100g": 2252,
                "energy_unit": "kcal",
                "fat_100g": 30.9,
                "saturated-fat_100g": 10.6,
                "carbohydrates_100g": 57.5,
                "sugars_100g": 56.3,
                "proteins_100g": 6.3,
                "salt_100g": 0.107,
                "sodium": 0.0428,
            },
            "image_front_url": (
                "https://images.openfoodfacts.org/images/products/301/762/042/2003/front_en.633.400.jpg"
            ),
            "image_front_small_url": (
                "https://images.openfoodfacts.org/images/products/301/762/042/2003/front_en.633.200.jpg"
            ),
            "image_url": "https://images.openfoodfacts.org/images/products/301/762/042/2003/x.jpg",
            "completeness": 0.9,
            "last_modified_t": 1700000000,
        },
    }


@pytest.fixture
def nutella_response(nutella_payload: dict[str, Any]) -> OFFProductResponse:
    """Parsed OFF response for Nutella."""
    return OpenFoodFactsMapper.parse_product_response(nutella_payload)


# ═══════════════════════════════════════════════════════════
# INFRASTRUCTURE FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def store(fake_clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=fake_clock)


@pytest.fixture
def product_cache(store: InMemoryKeyValueStore, fake_clock: FakeClock) -> ProductCache:
    """Product cache with the default 7-day TTL."""
    return ProductCache(store, clock=fake_clock)


@pytest.fixture
def history_log(store: InMemoryKeyValueStore, fake_clock: FakeClock) -> ScanHistoryLog:
    return ScanHistoryLog(store, clock=fake_clock)


@pytest.fixture
def rate_limiter(fake_clock: FakeClock, fake_sleeper: FakeSleeper) -> TokenBucketRateLimiter:
    """Default limiter: 100 requests per 60s on fake time."""
    return TokenBucketRateLimiter(
        capacity=100, window_seconds=60, clock=fake_clock, sleep=fake_sleeper
    )


@pytest.fixture
def connectivity() -> ManualConnectivityMonitor:
    return ManualConnectivityMonitor(connected=True)


# ═══════════════════════════════════════════════════════════
# MOCK CLIENT FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def mock_fetcher(nutella_response: OFFProductResponse) -> AsyncMock:
    """Mock product fetcher.

    Default behavior: returns the Nutella response.
    Override fetch_product.return_value / side_effect in tests.
    """
    fetcher = AsyncMock()
    fetcher.fetch_product.return_value = nutella_response
    return fetcher


# ═══════════════════════════════════════════════════════════
# SERVICE FIXTURES WITH DEPENDENCY INJECTION
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def pipeline(
    product_cache: ProductCache,
    mock_fetcher: AsyncMock,
    rate_limiter: TokenBucketRateLimiter,
    history_log: ScanHistoryLog,
    connectivity: ManualConnectivityMonitor,
    fake_clock: FakeClock,
) -> ResolutionPipeline:
    """Resolution pipeline with a mocked fetcher and fake time.

    Example usage in tests:
        async def test_something(pipeline, mock_fetcher):
            outcome = await pipeline.resolve("3017620422003")
            assert outcome.product.name == "Nutella"
            mock_fetcher.fetch_product.assert_awaited_once()
    """
    return ResolutionPipeline(
        cache=product_cache,
        fetcher=mock_fetcher,
        limiter=rate_limiter,
        history=history_log,
        connectivity=connectivity,
        clock=fake_clock,
        preferred_locale="en",
        cooldown_seconds=1.5,
    )


# ═══════════════════════════════════════════════════════════
# PARAMETRIZE HELPERS
# ═══════════════════════════════════════════════════════════


@pytest.fixture(
    params=[
        ("3017620422003", True),  # Valid EAN-13
        ("4006381333931", True),  # Valid EAN-13
        ("036000291452", True),  # Valid UPC-A
        ("96385074", True),  # Valid EAN-8
        ("4006381333932", False),  # Bad check digit
        ("12345", False),  # Wrong length
        ("", False),  # Empty
    ]
)
def barcode_validation_case(request: pytest.FixtureRequest) -> Any:
    """Parametrized fixture for barcode validation test cases.

    Returns: Tuple of (barcode_value, is_valid)
    """
    return request.param
