"""Tests for the article data adapters."""

import httpx
import pytest

from checkoutflow.domain.exceptions import ResolverUnavailableError
from checkoutflow.domain.resolution import ArticlePrice
from checkoutflow.domain.value_objects import Money, ProductId
from checkoutflow.infrastructure.article_client import (
    HttpArticleDataAdapter,
    StaticArticleDataAdapter,
    parse_article,
)

PRODUCT_IDS = [ProductId("SKU-001"), ProductId("SKU-002")]


def _adapter(handler) -> HttpArticleDataAdapter:
    return HttpArticleDataAdapter(
        base_url="http://articles.test",
        transport=httpx.MockTransport(handler),
        request_id="req-1",
    )


def _article(product_id: str, amount: int, stock: int = 5) -> dict:
    return {
        "product_id": product_id,
        "price": {"amount": amount, "currency": "EUR"},
        "available": True,
        "stock_quantity": stock,
    }


class TestParseArticle:
    """Tests for parsing article payload entries."""

    def test_parse(self) -> None:
        product_id, article = parse_article(_article("SKU-001", 2999, stock=3))

        assert product_id == ProductId("SKU-001")
        assert article == ArticlePrice(
            price=Money(amount_cents=2999, currency="EUR"),
            is_available=True,
            available_stock=3,
        )

    def test_missing_price(self) -> None:
        with pytest.raises(KeyError):
            parse_article({"product_id": "SKU-001"})


class TestHttpArticleDataAdapter:
    """Tests for HttpArticleDataAdapter against a mock transport."""

    @pytest.mark.asyncio
    async def test_fetches_requested_articles(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"items": [_article("SKU-001", 2999), _article("SKU-002", 1499)]},
            )

        async with _adapter(handler) as adapter:
            articles = await adapter.get_article_data(PRODUCT_IDS)

        assert articles[ProductId("SKU-002")].price == Money.from_decimal("14.99")
        assert seen[0].url.path == "/articles"
        assert seen[0].url.params["ids"] == "SKU-001,SKU-002"
        assert seen[0].headers["X-Request-ID"] == "req-1"

    @pytest.mark.asyncio
    async def test_no_ids_skips_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("unexpected request")

        async with _adapter(handler) as adapter:
            assert await adapter.get_article_data([]) == {}

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        async with _adapter(lambda request: httpx.Response(503)) as adapter:
            with pytest.raises(ResolverUnavailableError) as exc_info:
                await adapter.get_article_data(PRODUCT_IDS)

        assert "503" in exc_info.value.message
        assert exc_info.value.details["product_ids"] == ["SKU-001", "SKU-002"]

    @pytest.mark.asyncio
    async def test_malformed_payload(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": [{"product_id": "SKU-001"}]})

        async with _adapter(handler) as adapter:
            with pytest.raises(ResolverUnavailableError, match="malformed"):
                await adapter.get_article_data(PRODUCT_IDS)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        async with _adapter(handler) as adapter:
            with pytest.raises(ResolverUnavailableError, match="timed out"):
                await adapter.get_article_data(PRODUCT_IDS)

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _adapter(handler) as adapter:
            with pytest.raises(ResolverUnavailableError) as exc_info:
                await adapter.get_article_data(PRODUCT_IDS)

        assert exc_info.value.retryable


class TestStaticArticleDataAdapter:
    """Tests for the in-process article table."""

    @pytest.mark.asyncio
    async def test_returns_known_articles_only(
        self, article_table: dict[ProductId, ArticlePrice]
    ) -> None:
        adapter = StaticArticleDataAdapter(article_table)
        adapter.remove(ProductId("SKU-002"))

        articles = await adapter.get_article_data([*PRODUCT_IDS, ProductId("SKU-404")])

        assert list(articles) == [ProductId("SKU-001")]
        assert adapter.calls == 1
