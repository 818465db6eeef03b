"""
Unit tests for OpenFoodFacts API client.

Tests based on actual implementation with real-world test case:
Product: Nutella, Barcode: 3017620422003
"""

import asyncio
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from productscan.domain.shared.cancellation import CancellationToken
from productscan.domain.shared.errors import (
    BarcodeNotFoundError,
    DecodingError,
    HttpStatusError,
    LookupCancelledError,
    NetworkUnavailableError,
    RateLimitError,
    ServerError,
    TimeoutError,
)
from productscan.domain.shared.value_objects import NormalizedBarcode
from productscan.infrastructure.openfoodfacts.api_client import (
    OpenFoodFactsClient,
    requested_fields,
)
from productscan.infrastructure.rate_limit.token_bucket import TokenBucketRateLimiter


def _response(status: int, payload: Any = None) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=payload)
    return response


class TestOpenFoodFactsClient:
    """Test OpenFoodFacts API client."""

    @pytest.fixture
    def mock_nutella_response(self, nutella_payload: dict) -> MagicMock:
        """Mock response with real Nutella product data."""
        return _response(200, nutella_payload)

    async def test_fetch_product_success(
        self, mock_nutella_response: MagicMock, nutella_barcode: NormalizedBarcode
    ) -> None:
        """Test successful product retrieval by barcode."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = mock_nutella_response

            async with OpenFoodFactsClient() as client:
                result = await client.fetch_product(nutella_barcode, "en", CancellationToken())

                assert result.is_found()
                assert result.product is not None
                assert result.product.code == "3017620422003"
                assert result.product.product_name == "Nutella"
                assert result.product.brands == "Ferrero"

    async def test_request_shape(
        self, mock_nutella_response: MagicMock, nutella_barcode: NormalizedBarcode
    ) -> None:
        """Test URL, locale and field selection."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = mock_nutella_response

            async with OpenFoodFactsClient() as client:
                await client.fetch_product(nutella_barcode, "it", CancellationToken())

            args, kwargs = mock_get.call_args
            assert args[0] == "https://world.openfoodfacts.org/api/v2/product/3017620422003.json"
            assert kwargs["params"]["lc"] == "it"
            assert "product_name_it" in kwargs["params"]["fields"].split(",")
            assert kwargs["timeout"].total == 10

    async def test_user_agent_header(self) -> None:
        async with OpenFoodFactsClient(user_agent="scanner-tests/0.1") as client:
            assert client._session is not None
            assert client._session.headers["User-Agent"] == "scanner-tests/0.1"

    async def test_not_found_404(self, nutella_barcode: NormalizedBarcode) -> None:
        """Test product not found with 404 status."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(404)

            async with OpenFoodFactsClient() as client:
                with pytest.raises(BarcodeNotFoundError) as exc_info:
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

                assert "3017620422003" in str(exc_info.value)
                assert exc_info.value.show_contribute_option

    async def test_not_found_status_zero(self, nutella_barcode: NormalizedBarcode) -> None:
        """Test product not found when API returns status=0."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(
                200, {"status": 0, "code": "3017620422003"}
            )

            async with OpenFoodFactsClient() as client:
                with pytest.raises(BarcodeNotFoundError):
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

    @pytest.mark.parametrize(
        "status, error_type",
        [
            (429, RateLimitError),
            (500, ServerError),
            (503, ServerError),
            (418, HttpStatusError),
            (401, HttpStatusError),
        ],
    )
    async def test_status_mapping(
        self, status: int, error_type: type, nutella_barcode: NormalizedBarcode
    ) -> None:
        """Test HTTP errors map to typed errors."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(status)

            async with OpenFoodFactsClient() as client:
                with pytest.raises(error_type):
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

    async def test_malformed_json(self, nutella_barcode: NormalizedBarcode) -> None:
        response = MagicMock()
        response.status = 200
        response.json = AsyncMock(side_effect=json.JSONDecodeError("Expecting value", "<html>", 0))

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = response

            async with OpenFoodFactsClient() as client:
                with pytest.raises(DecodingError):
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

    async def test_unexpected_shape(self, nutella_barcode: NormalizedBarcode) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(200, ["unexpected"])

            async with OpenFoodFactsClient() as client:
                with pytest.raises(DecodingError):
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

    async def test_timeout(self, nutella_barcode: NormalizedBarcode) -> None:
        """Test timeout handling."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.side_effect = asyncio.TimeoutError()

            async with OpenFoodFactsClient(timeout_seconds=5) as client:
                with pytest.raises(TimeoutError, match="5s"):
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

    async def test_connection_error(self, nutella_barcode: NormalizedBarcode) -> None:
        """Test connection error handling."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.side_effect = aiohttp.ClientConnectionError(
                "Connection refused"
            )

            async with OpenFoodFactsClient() as client:
                with pytest.raises(NetworkUnavailableError):
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

    async def test_retry_with_backoff(
        self,
        mock_nutella_response: MagicMock,
        nutella_barcode: NormalizedBarcode,
        fake_sleeper: Any,
    ) -> None:
        """Test transport errors are retried with exponential backoff."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.side_effect = [
                aiohttp.ClientConnectionError("reset"),
                asyncio.TimeoutError(),
                mock_nutella_response,
            ]

            async with OpenFoodFactsClient(max_retries=3, sleep=fake_sleeper) as client:
                result = await client.fetch_product(nutella_barcode, "en", CancellationToken())

        assert result.is_found()
        assert fake_sleeper.calls == [1, 2]
        assert mock_get.call_count == 3

    async def test_http_errors_not_retried(
        self, nutella_barcode: NormalizedBarcode, fake_sleeper: Any
    ) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(503)

            async with OpenFoodFactsClient(max_retries=3, sleep=fake_sleeper) as client:
                with pytest.raises(ServerError):
                    await client.fetch_product(nutella_barcode, "en", CancellationToken())

        assert mock_get.call_count == 1
        assert fake_sleeper.calls == []

    async def test_cancelled_before_request(self, nutella_barcode: NormalizedBarcode) -> None:
        token = CancellationToken()
        token.cancel()

        with patch("aiohttp.ClientSession.get") as mock_get:
            async with OpenFoodFactsClient() as client:
                with pytest.raises(LookupCancelledError):
                    await client.fetch_product(nutella_barcode, "en", token)

            mock_get.assert_not_called()

    async def test_cancelled_during_request(
        self, nutella_payload: dict, nutella_barcode: NormalizedBarcode
    ) -> None:
        """Test a response that arrives after cancellation is discarded."""
        token = CancellationToken()

        async def body(content_type: Any = None) -> dict:
            token.cancel()
            return nutella_payload

        response = MagicMock()
        response.status = 200
        response.json = body

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = response

            async with OpenFoodFactsClient() as client:
                with pytest.raises(LookupCancelledError):
                    await client.fetch_product(nutella_barcode, "en", token)

    async def test_cancel_closes_response_in_flight(
        self, nutella_barcode: NormalizedBarcode, fake_sleeper: Any
    ) -> None:
        """Test cancelling mid-body closes the response and is not retried."""
        token = CancellationToken()
        response = MagicMock()
        response.status = 200

        async def body(content_type: Any = None) -> dict:
            token.cancel()
            raise aiohttp.ClientPayloadError("Connection closed")

        response.json = body

        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = response

            async with OpenFoodFactsClient(max_retries=3, sleep=fake_sleeper) as client:
                with pytest.raises(LookupCancelledError):
                    await client.fetch_product(nutella_barcode, "en", token)

        response.close.assert_called_once()
        assert mock_get.call_count == 1
        assert fake_sleeper.calls == []

    async def test_close_releases_session(self) -> None:
        client = OpenFoodFactsClient()
        async with client:
            assert client._session is not None

        assert client._session is None


class TestRequestedFields:
    def test_adds_locale_variants_once(self) -> None:
        fields = requested_fields("en")

        assert fields.count("product_name_en") == 1
        assert "nutriments" in fields


class TestSearchProducts:
    """Test free-text product search."""

    @pytest.fixture
    def search_payload(self, nutella_payload: dict) -> dict:
        return {
            "count": 2,
            "page": 1,
            "page_size": 24,
            "products": [nutella_payload["product"], {"product_name": "Loose hazelnuts"}],
        }

    async def test_search_maps_hits(
        self, search_payload: dict, rate_limiter: TokenBucketRateLimiter
    ) -> None:
        """Test hits are mapped with the preferred locale and hits without code skipped."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(200, search_payload)

            async with OpenFoodFactsClient(limiter=rate_limiter) as client:
                products = await client.search_products("  nutella ", "it", page=2)

            args, kwargs = mock_get.call_args
            assert args[0] == "https://world.openfoodfacts.org/cgi/search.pl"
            assert kwargs["params"]["search_terms"] == "nutella"
            assert kwargs["params"]["page"] == 2
            assert kwargs["params"]["page_size"] == 24
            assert kwargs["params"]["json"] == 1
            assert kwargs["params"]["lc"] == "it"

        assert [p.barcode for p in products] == ["3017620422003"]
        assert products[0].name == "Nutella Crema Spalmabile"
        assert rate_limiter.available_tokens() == 99

    async def test_blank_query(self, rate_limiter: TokenBucketRateLimiter) -> None:
        """Test a blank query returns nothing without a request or a token."""
        with patch("aiohttp.ClientSession.get") as mock_get:
            async with OpenFoodFactsClient(limiter=rate_limiter) as client:
                assert await client.search_products("   ", "en") == []

            mock_get.assert_not_called()

        assert rate_limiter.available_tokens() == 100

    async def test_search_waits_for_limiter(
        self, search_payload: dict, fake_clock: Any, fake_sleeper: Any
    ) -> None:
        limiter = TokenBucketRateLimiter(
            capacity=1, window_seconds=60, clock=fake_clock, sleep=fake_sleeper
        )
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(200, search_payload)

            async with OpenFoodFactsClient(limiter=limiter) as client:
                await client.search_products("nutella", "en")
                await client.search_products("nutella", "en", page=2)

        assert fake_sleeper.calls == [60]
        assert mock_get.call_count == 2

    async def test_search_bad_payload(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(
                200, {"count": 1, "products": "nutella"}
            )

            async with OpenFoodFactsClient() as client:
                with pytest.raises(DecodingError):
                    await client.search_products("nutella", "en")

    async def test_search_server_error(self) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(502)

            async with OpenFoodFactsClient() as client:
                with pytest.raises(ServerError):
                    await client.search_products("nutella", "en")


class TestProductExists:
    async def test_exists(
        self, nutella_barcode: NormalizedBarcode, rate_limiter: TokenBucketRateLimiter
    ) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(
                200, {"status": 1, "product": {"code": "3017620422003"}}
            )

            async with OpenFoodFactsClient(limiter=rate_limiter) as client:
                assert await client.product_exists(nutella_barcode)

            _, kwargs = mock_get.call_args
            assert kwargs["params"] == {"fields": "code"}

        assert rate_limiter.available_tokens() == 99

    @pytest.mark.parametrize(
        "status, payload",
        [(404, None), (200, {"status": 0, "code": "3017620422003"})],
    )
    async def test_missing(
        self, status: int, payload: Any, nutella_barcode: NormalizedBarcode
    ) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(status, payload)

            async with OpenFoodFactsClient() as client:
                assert not await client.product_exists(nutella_barcode)

    async def test_transport_errors_propagate(self, nutella_barcode: NormalizedBarcode) -> None:
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = _response(429)

            async with OpenFoodFactsClient() as client:
                with pytest.raises(RateLimitError):
                    await client.product_exists(nutella_barcode)
