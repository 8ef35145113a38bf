"""Price and availability reconciliation.

At confirmation time the session's captured line items are compared
against fresh article data (current price, available stock, availability
flag) owned by other contexts. The aggregate never fetches that data
itself: the orchestrator fetches it and hands over an
:data:`ArticleResolver`, keeping the aggregate free of I/O.

The comparison produces a :class:`CheckoutVerdict` listing every problem
per product rather than a single boolean.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from checkoutflow.domain.base import ValueObject
from checkoutflow.domain.value_objects import CheckoutLineItem, Money, ProductId


@dataclass(frozen=True)
class ArticlePrice(ValueObject):
    """Current, authoritative article data for one product.

    Attributes:
        price: Current unit price.
        is_available: Whether the product may be sold at all.
        available_stock: Units currently in stock.
    """

    price: Money
    is_available: bool
    available_stock: int

    def __post_init__(self) -> None:
        if self.available_stock < 0:
            raise ValueError("Available stock cannot be negative")

    def has_stock_for(self, quantity: int) -> bool:
        return self.available_stock >= quantity


# A lookup from product id to its current article data. ``None`` means the
# owning context knows nothing about the product.
ArticleResolver = Callable[[ProductId], ArticlePrice | None]


def resolver_from_table(table: Mapping[ProductId, ArticlePrice]) -> ArticleResolver:
    """Wrap a pre-fetched table as an :data:`ArticleResolver`."""
    snapshot = dict(table)
    return snapshot.get


class ProblemType(str, Enum):
    """Kinds of line item problems that block confirmation."""

    PRODUCT_UNAVAILABLE = "product_unavailable"
    INSUFFICIENT_STOCK = "insufficient_stock"
    PRICE_CHANGED = "price_changed"


@dataclass(frozen=True)
class ValidationProblem(ValueObject):
    """A single reason a line item cannot be confirmed as captured."""

    product_id: ProductId
    type: ProblemType
    message: str
    requested_quantity: int | None = None
    available_stock: int | None = None

    @classmethod
    def product_unavailable(cls, product_id: ProductId) -> "ValidationProblem":
        return cls(
            product_id=product_id,
            type=ProblemType.PRODUCT_UNAVAILABLE,
            message="Product is not available for purchase",
        )

    @classmethod
    def insufficient_stock(
        cls, product_id: ProductId, requested: int, available: int
    ) -> "ValidationProblem":
        return cls(
            product_id=product_id,
            type=ProblemType.INSUFFICIENT_STOCK,
            message=f"Insufficient stock: requested {requested}, available {available}",
            requested_quantity=requested,
            available_stock=available,
        )

    @classmethod
    def price_changed(cls, change: "PriceChange") -> "ValidationProblem":
        return cls(
            product_id=change.product_id,
            type=ProblemType.PRICE_CHANGED,
            message=f"Price changed from {change.captured_price} to {change.current_price}",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "type": self.type.value,
            "message": self.message,
            "requested_quantity": self.requested_quantity,
            "available_stock": self.available_stock,
        }


@dataclass(frozen=True)
class PriceChange(ValueObject):
    """Difference between the captured and the current unit price."""

    product_id: ProductId
    captured_price: Money
    current_price: Money

    @property
    def is_increase(self) -> bool:
        return self.current_price.amount_cents > self.captured_price.amount_cents

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "captured_price_cents": self.captured_price.amount_cents,
            "current_price_cents": self.current_price.amount_cents,
            "currency": self.current_price.currency,
        }


@dataclass(frozen=True)
class CheckoutVerdict(ValueObject):
    """Outcome of reconciling line items with fresh article data.

    Attributes:
        problems: Availability and stock problems; any entry blocks
            confirmation.
        price_changes: Captured prices that no longer match. These are
            surfaced to the caller but only block confirmation when the
            caller asks for it.
        confirmed_prices: Current unit price per product for every line
            item that could be resolved.
    """

    problems: tuple[ValidationProblem, ...] = ()
    price_changes: tuple[PriceChange, ...] = ()
    confirmed_prices: Mapping[ProductId, Money] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.problems

    @property
    def has_price_changes(self) -> bool:
        return bool(self.price_changes)

    def blocking_problems(self, block_on_price_change: bool = False) -> list[ValidationProblem]:
        """Problems that prevent confirmation under the given policy."""
        blocking = list(self.problems)
        if block_on_price_change:
            blocking.extend(ValidationProblem.price_changed(c) for c in self.price_changes)
        return blocking


def build_verdict(
    line_items: Iterable[CheckoutLineItem],
    resolver: ArticleResolver,
) -> CheckoutVerdict:
    """Compare captured line items against current article data.

    Line items are checked per product, in order of first appearance. Missing
    data or a cleared availability flag is a ``PRODUCT_UNAVAILABLE`` problem.
    Requesting more than the available stock, summed over every line of the
    product, is an ``INSUFFICIENT_STOCK`` problem. A unit price differing
    from the captured one is recorded as a :class:`PriceChange`. Any
    difference counts; there is no tolerance.

    Args:
        line_items: Line items captured at session start.
        resolver: Lookup of current article data by product id.

    Returns:
        The full verdict for all line items.
    """
    problems: list[ValidationProblem] = []
    price_changes: list[PriceChange] = []
    confirmed_prices: dict[ProductId, Money] = {}

    lines_by_product: dict[ProductId, list[CheckoutLineItem]] = {}
    for item in line_items:
        lines_by_product.setdefault(item.product_id, []).append(item)

    for product_id, lines in lines_by_product.items():
        article = resolver(product_id)
        if article is None or not article.is_available:
            problems.append(ValidationProblem.product_unavailable(product_id))
            continue

        requested = sum(line.quantity for line in lines)
        if not article.has_stock_for(requested):
            problems.append(
                ValidationProblem.insufficient_stock(
                    product_id, requested, article.available_stock
                )
            )

        stale = next((line for line in lines if line.unit_price != article.price), None)
        if stale is not None:
            price_changes.append(
                PriceChange(
                    product_id=product_id,
                    captured_price=stale.unit_price,
                    current_price=article.price,
                )
            )
        confirmed_prices[product_id] = article.price

    return CheckoutVerdict(
        problems=tuple(problems),
        price_changes=tuple(price_changes),
        confirmed_prices=confirmed_prices,
    )
