"""Shared fixtures for checkout tests."""

from collections.abc import Callable
from datetime import datetime, timezone

import pytest

from checkoutflow.domain.clock import FixedClock
from checkoutflow.domain.entities import CheckoutSession
from checkoutflow.domain.resolution import ArticlePrice
from checkoutflow.domain.state_machines import CheckoutStep
from checkoutflow.domain.value_objects import (
    BuyerInfo,
    CartId,
    CheckoutLineItem,
    CustomerId,
    DeliveryAddress,
    Money,
    PaymentProviderId,
    PaymentSelection,
    ProductId,
    ShippingOption,
)


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(now: datetime) -> FixedClock:
    return FixedClock(now)


@pytest.fixture
def line_items() -> list[CheckoutLineItem]:
    """Two line items: 1 x 29.99 and 2 x 14.99 (subtotal 59.97 EUR)."""
    return [
        CheckoutLineItem.capture(
            product_id=ProductId("SKU-001"),
            product_name="Wireless Mouse",
            unit_price=Money.from_decimal("29.99"),
            quantity=1,
        ),
        CheckoutLineItem.capture(
            product_id=ProductId("SKU-002"),
            product_name="USB-C Cable",
            unit_price=Money.from_decimal("14.99"),
            quantity=2,
        ),
    ]


@pytest.fixture
def article_table(line_items: list[CheckoutLineItem]) -> dict[ProductId, ArticlePrice]:
    """Current article data matching the captured line items."""
    return {
        item.product_id: ArticlePrice(price=item.unit_price, is_available=True, available_stock=10)
        for item in line_items
    }


@pytest.fixture
def buyer_info() -> BuyerInfo:
    return BuyerInfo(
        email="jane.doe@example.com",
        first_name="Jane",
        last_name="Doe",
        phone="+49 30 1234567",
    )


@pytest.fixture
def delivery_address() -> DeliveryAddress:
    return DeliveryAddress(
        street="Hauptstrasse 1",
        city="Berlin",
        postal_code="10115",
        country="de",
    )


@pytest.fixture
def standard_shipping() -> ShippingOption:
    return ShippingOption(
        id="standard",
        name="Standard Shipping",
        estimated_delivery="3-5 business days",
        cost=Money.from_decimal("4.99"),
    )


@pytest.fixture
def payment_selection() -> PaymentSelection:
    return PaymentSelection(provider_id=PaymentProviderId("mock"), provider_reference="auth-123")


@pytest.fixture
def session(line_items: list[CheckoutLineItem], now: datetime) -> CheckoutSession:
    """A freshly started session (its start event is still pending)."""
    return CheckoutSession.start(
        cart_id=CartId.generate(),
        customer_id=CustomerId("customer-1"),
        line_items=line_items,
        subtotal=Money.from_decimal("59.97"),
        now=now,
    )


@pytest.fixture
def session_at(
    session: CheckoutSession,
    buyer_info: BuyerInfo,
    delivery_address: DeliveryAddress,
    standard_shipping: ShippingOption,
    payment_selection: PaymentSelection,
    now: datetime,
) -> Callable[[CheckoutStep], CheckoutSession]:
    """Advance the session along the happy path up to ``step``.

    Events registered on the way are drained.
    """

    def advance(step: CheckoutStep) -> CheckoutSession:
        moves = [
            (CheckoutStep.BUYER_INFO, lambda: session.submit_buyer_info(buyer_info, now=now)),
            (
                CheckoutStep.DELIVERY,
                lambda: session.submit_delivery(delivery_address, standard_shipping, now=now),
            ),
            (CheckoutStep.PAYMENT, lambda: session.submit_payment(payment_selection, now=now)),
            (CheckoutStep.REVIEW, lambda: session.enter_review(now=now)),
        ]
        for target, move in moves:
            if not target.is_after(step):
                move()
        session.drain_events()
        return session

    return advance
