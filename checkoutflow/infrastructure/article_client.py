"""Article data adapters.

Fetch current price, stock and availability from the context that owns
article data. Every failure to obtain a usable answer surfaces as
``ResolverUnavailableError`` so the caller can retry the confirmation.

Expected response of ``GET {base_url}/articles?ids=a,b``::

    {
        "items": [
            {
                "product_id": "SKU-001",
                "price": {"amount": 2999, "currency": "EUR"},
                "available": true,
                "stock_quantity": 12
            }
        ]
    }
"""

from collections.abc import Iterable, Mapping
from typing import Any

import httpx
import structlog

from checkoutflow.application.ports import ArticleDataPort
from checkoutflow.domain.exceptions import MoneyError, ResolverUnavailableError
from checkoutflow.domain.resolution import ArticlePrice
from checkoutflow.domain.value_objects import Money, ProductId

logger = structlog.get_logger()


def parse_article(data: dict[str, Any]) -> tuple[ProductId, ArticlePrice]:
    """Create an article entry from API response data.

    Raises:
        KeyError, TypeError, ValueError, MoneyError: If the entry is
            malformed.
    """
    price_data = data["price"]
    return ProductId(data["product_id"]), ArticlePrice(
        price=Money(amount_cents=int(price_data["amount"]), currency=price_data["currency"]),
        is_available=bool(data.get("available", True)),
        available_stock=int(data.get("stock_quantity", 0)),
    )


class HttpArticleDataAdapter(ArticleDataPort):
    """HTTP client for the article data service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize article client.

        Args:
            base_url: Article service base URL.
            timeout: Request timeout in seconds.
            transport: Optional transport (e.g. ``httpx.MockTransport``).
            request_id: Optional request ID for correlation.
        """
        self.base_url = base_url
        self.timeout = timeout
        self.request_id = request_id
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {}
            if self.request_id:
                headers["X-Request-ID"] = self.request_id
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HttpArticleDataAdapter":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def get_article_data(
        self,
        product_ids: Iterable[ProductId],
    ) -> dict[ProductId, ArticlePrice]:
        ids = [str(p) for p in dict.fromkeys(product_ids)]
        if not ids:
            return {}

        try:
            client = await self._get_client()
            response = await client.get("/articles", params={"ids": ",".join(ids)})
        except httpx.TimeoutException as e:
            logger.warning("Article service timed out", product_ids=ids, error=str(e))
            raise ResolverUnavailableError("article service timed out", ids) from e
        except httpx.HTTPError as e:
            logger.warning("Article service request failed", product_ids=ids, error=str(e))
            raise ResolverUnavailableError(f"article service request failed: {e}", ids) from e

        if response.status_code != 200:
            logger.warning(
                "Article service returned error",
                product_ids=ids,
                status_code=response.status_code,
            )
            raise ResolverUnavailableError(
                f"article service returned HTTP {response.status_code}", ids
            )

        try:
            articles = dict(parse_article(item) for item in response.json()["items"])
        except (KeyError, TypeError, ValueError, MoneyError) as e:
            logger.warning("Malformed article service response", product_ids=ids, error=str(e))
            raise ResolverUnavailableError("malformed article service response", ids) from e

        logger.debug("Fetched article data", requested=len(ids), received=len(articles))
        return articles


class StaticArticleDataAdapter(ArticleDataPort):
    """In-process article table for local wiring and tests."""

    def __init__(self, articles: Mapping[ProductId, ArticlePrice] | None = None) -> None:
        self._articles: dict[ProductId, ArticlePrice] = dict(articles or {})
        self.calls = 0

    def set(self, product_id: ProductId, article: ArticlePrice) -> None:
        self._articles[product_id] = article

    def remove(self, product_id: ProductId) -> None:
        self._articles.pop(product_id, None)

    async def get_article_data(
        self,
        product_ids: Iterable[ProductId],
    ) -> dict[ProductId, ArticlePrice]:
        self.calls += 1
        return {p: self._articles[p] for p in product_ids if p in self._articles}
