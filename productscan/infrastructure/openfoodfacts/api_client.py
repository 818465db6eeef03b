"""
OpenFoodFacts API client.

Handles HTTP requests to the OpenFoodFacts product database.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import aiohttp
import structlog

from productscan.domain.barcode.validator import BarcodeValidator
from productscan.domain.product.models import Product
from productscan.domain.product.openfoodfacts_mapper import OpenFoodFactsMapper
from productscan.domain.product.openfoodfacts_models import OFFProductResponse
from productscan.domain.shared.cancellation import CancellationToken
from productscan.domain.shared.errors import (
    BarcodeNotFoundError,
    DecodingError,
    HttpStatusError,
    NetworkUnavailableError,
    RateLimitError,
    ServerError,
    TimeoutError,
)
from productscan.domain.shared.value_objects import NormalizedBarcode
from productscan.infrastructure.rate_limit.token_bucket import TokenBucketRateLimiter

logger = structlog.get_logger(__name__)

Sleeper = Callable[[float], Awaitable[None]]

SEARCH_PAGE_SIZE = 24

# Fields needed for the scan result card
ESSENTIAL_FIELDS: tuple[str, ...] = (
    "code",
    "product_name",
    "product_name_en",
    "generic_name",
    "generic_name_en",
    "brands",
    "quantity",
    "image_front_url",
    "image_front_small_url",
    "nutriscore_grade",
    "nova_group",
    "allergens_tags",
    "traces_tags",
)

# Everything the product detail view renders
DETAILED_FIELDS: tuple[str, ...] = ESSENTIAL_FIELDS + (
    "ingredients_text",
    "ingredients_text_en",
    "ingredients",
    "additives_tags",
    "nutriments",
    "origins",
    "brand_owner",
    "stores",
    "countries_tags",
    "categories",
    "categories_tags",
    "image_url",
    "image_small_url",
    "image_ingredients_url",
    "image_nutrition_url",
    "nutrition_grade_fr",
    "ecoscore_grade",
    "completeness",
    "last_modified_t",
)

LOCALIZED_FIELDS: tuple[str, ...] = ("product_name", "generic_name", "ingredients_text")


def requested_fields(locale: str, base: tuple[str, ...] = DETAILED_FIELDS) -> list[str]:
    """Field list for the ``fields`` query parameter.

    Adds the preferred locale's translations of the localized fields.

    Example:
        >>> "product_name_it" in requested_fields("it")
        True
    """
    fields = list(base)
    for field in LOCALIZED_FIELDS:
        localized = f"{field}_{locale}"
        if localized not in fields:
            fields.append(localized)
    return fields


class OpenFoodFactsClient:
    """OpenFoodFacts API client."""

    BASE_URL = "https://world.openfoodfacts.org"
    USER_AGENT = "productscan/1.0 (barcode lookup library)"

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout_seconds: float = 10,
        max_retries: int = 1,
        sleep: Optional[Sleeper] = None,
        limiter: Optional[TokenBucketRateLimiter] = None,
    ) -> None:
        """Initialize API client.

        Args:
            base_url: API host (default: world.openfoodfacts.org)
            user_agent: Descriptive client identifier sent on every request
            timeout_seconds: Request timeout
            max_retries: Attempts per lookup (1 = no retry)
            sleep: Async sleeper used for backoff (default: asyncio.sleep)
            limiter: Rate limiter admitted by search_products and
                product_exists. fetch_product is admitted by the pipeline.
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.user_agent = user_agent or self.USER_AGENT
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self.limiter = limiter
        self._sleep: Sleeper = sleep or asyncio.sleep
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self) -> "OpenFoodFactsClient":
        """Async context manager entry."""
        self._ensure_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json",
                }
            )
        return self._session

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def product_url(self, barcode: NormalizedBarcode) -> str:
        return f"{self.base_url}/api/v2/product/{barcode.value}.json"

    def search_url(self) -> str:
        return f"{self.base_url}/cgi/search.pl"

    async def fetch_product(
        self,
        barcode: NormalizedBarcode,
        locale: str,
        cancel_token: CancellationToken,
    ) -> OFFProductResponse:
        """Get product by barcode.

        Args:
            barcode: Validated barcode
            locale: Preferred language code
            cancel_token: Checked before each attempt and after the response;
                cancelling it closes the response in flight

        Returns:
            Response with status == 1 and a product

        Raises:
            BarcodeNotFoundError: If barcode not in database (404 or status 0)
            RateLimitError: On HTTP 429
            ServerError: On HTTP 5xx
            HttpStatusError: On any other 4xx
            NetworkUnavailableError: If the connection fails
            TimeoutError: If request times out
            DecodingError: If the body is not a valid product response
            LookupCancelledError: If cancel_token was cancelled

        Example:
            >>> async def test():
            ...     async with OpenFoodFactsClient() as client:
            ...         barcode = BarcodeValidator.validate("3017620422003")
            ...         return await client.fetch_product(barcode, "en", CancellationToken())
        """
        params = {"fields": ",".join(requested_fields(locale)), "lc": locale}
        data = await self._get_json(
            self.product_url(barcode), params, f"Barcode {barcode.value}", cancel_token
        )

        result = OpenFoodFactsMapper.parse_product_response(data)

        if not result.is_found():
            logger.info("Product not found in OFF", barcode=barcode.value)
            raise BarcodeNotFoundError(f"Barcode {barcode.value} not found")

        logger.info(
            "Product found in OFF",
            barcode=barcode.value,
            name=result.product.product_name if result.product else None,
        )
        return result

    async def product_exists(
        self,
        barcode: NormalizedBarcode,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bool:
        """Check whether OFF knows a barcode, fetching only its code.

        Raises:
            Same transport errors as fetch_product, except that an unknown
            barcode returns False.
        """
        if self.limiter is not None:
            await self.limiter.admit()

        try:
            data = await self._get_json(
                self.product_url(barcode),
                {"fields": "code"},
                f"Barcode {barcode.value}",
                cancel_token or CancellationToken(),
            )
        except BarcodeNotFoundError:
            return False

        return OpenFoodFactsMapper.parse_product_response(data).is_found()

    async def search_products(
        self,
        query: str,
        locale: str,
        page: int = 1,
        page_size: int = SEARCH_PAGE_SIZE,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[Product]:
        """Search products by free text.

        Args:
            query: Search terms; blank queries return no results
            locale: Preferred language code for the mapped products
            page: 1-based results page
            page_size: Results per page
            cancel_token: Optional cancellation signal

        Returns:
            Products of the requested page, in server order. Hits without
            a code are skipped.

        Raises:
            DecodingError: If the body is not a valid search response
            (and the transport errors of fetch_product)

        Example:
            >>> async def test():
            ...     async with OpenFoodFactsClient() as client:
            ...         return await client.search_products("nutella", "it")
        """
        terms = query.strip()
        if not terms:
            return []

        if self.limiter is not None:
            await self.limiter.admit()

        params = {
            "search_terms": terms,
            "search_simple": 1,
            "action": "process",
            "json": 1,
            "page": page,
            "page_size": page_size,
            "lc": locale,
            "fields": ",".join(requested_fields(locale)),
        }
        data = await self._get_json(
            self.search_url(), params, f"Search {terms!r}", cancel_token or CancellationToken()
        )
        result = OpenFoodFactsMapper.parse_search_response(data)

        products: list[Product] = []
        for dto in result.products:
            if not dto.code:
                continue
            inspection = BarcodeValidator.inspect(dto.code)
            barcode = inspection.barcode.value if inspection.barcode else dto.code
            products.append(OpenFoodFactsMapper.to_product(dto, locale, barcode=barcode))

        logger.info(
            "OFF search completed",
            query=terms,
            page=page,
            count=result.count,
            returned=len(products),
        )
        return products

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any],
        subject: str,
        cancel_token: CancellationToken,
    ) -> Any:
        for attempt in range(self.max_retries):
            cancel_token.raise_if_cancelled()
            session = self._ensure_session()

            try:
                async with session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    cancel_token.on_cancel(response.close)
                    self._raise_for_status(response.status, subject)

                    try:
                        data = await response.json(content_type=None)
                    except (json.JSONDecodeError, UnicodeDecodeError) as e:
                        logger.error(
                            "Malformed OFF response body",
                            subject=subject,
                            error=str(e),
                        )
                        raise DecodingError(f"Response is not valid JSON: {e}") from e

                cancel_token.raise_if_cancelled()
                return data

            except asyncio.TimeoutError as e:
                cancel_token.raise_if_cancelled()
                if attempt == self.max_retries - 1:
                    msg = f"OpenFoodFacts API timeout after {self.timeout_seconds}s"
                    raise TimeoutError(msg) from e
                await self._backoff(attempt, subject, "timeout", cancel_token)

            except aiohttp.ClientError as e:
                # Closing the response on cancel surfaces here
                cancel_token.raise_if_cancelled()
                if attempt == self.max_retries - 1:
                    msg = f"OpenFoodFacts API connection error: {e}"
                    raise NetworkUnavailableError(msg) from e
                await self._backoff(attempt, subject, "connection", cancel_token)

        # Unreachable: the last attempt either returns or raises
        raise NetworkUnavailableError("OpenFoodFacts API unreachable")

    def _raise_for_status(self, status: int, subject: str) -> None:
        if status == 404:
            logger.info("Not found in OFF", subject=subject)
            raise BarcodeNotFoundError(f"{subject} not found")

        if status == 429:
            logger.warning("OFF rate limit hit", subject=subject)
            raise RateLimitError("OpenFoodFacts rate limit exceeded")

        if status >= 500:
            logger.warning("OFF server error", subject=subject, status=status)
            raise ServerError(f"OpenFoodFacts server error: {status}", status_code=status)

        if status >= 400:
            raise HttpStatusError(f"OpenFoodFacts API error: {status}", status_code=status)

    async def _backoff(
        self,
        attempt: int,
        subject: str,
        reason: str,
        cancel_token: CancellationToken,
    ) -> None:
        wait = 2**attempt
        logger.warning(
            f"OFF {reason} error, retrying in {wait}s",
            subject=subject,
            attempt=attempt + 1,
        )
        await self._sleep(wait)
        cancel_token.raise_if_cancelled()
