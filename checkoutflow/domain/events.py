"""Domain events for checkout sessions.

One event per step transition. Events carry the session id plus the
minimal public data observers need; the confirmation event carries the
full order contents for downstream consumers such as inventory
reduction. The aggregate only registers events; the orchestrator drains
and dispatches them after the session has been saved.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from checkoutflow.domain.base import DomainEvent

AGGREGATE_TYPE = "CheckoutSession"


@dataclass(frozen=True, kw_only=True)
class CheckoutEvent(DomainEvent):
    """Base class for events registered by a checkout session."""

    session_id: str
    aggregate_type: str = AGGREGATE_TYPE

    def __post_init__(self) -> None:
        if not self.aggregate_id:
            object.__setattr__(self, "aggregate_id", self.session_id)

    def _payload(self) -> dict[str, Any]:
        return {"session_id": self.session_id}


@dataclass(frozen=True, kw_only=True)
class CheckoutSessionStarted(CheckoutEvent):
    """Event raised when a checkout session is started from a cart."""

    event_type: ClassVar[str] = "checkout.session_started"

    cart_id: str
    customer_id: str
    subtotal_cents: int
    currency: str
    item_count: int

    def _payload(self) -> dict[str, Any]:
        return {
            **super()._payload(),
            "cart_id": self.cart_id,
            "customer_id": self.customer_id,
            "subtotal_cents": self.subtotal_cents,
            "currency": self.currency,
            "item_count": self.item_count,
        }


@dataclass(frozen=True, kw_only=True)
class BuyerInfoSubmitted(CheckoutEvent):
    """Event raised when buyer contact information is (re)submitted."""

    event_type: ClassVar[str] = "checkout.buyer_info_submitted"

    email: str

    def _payload(self) -> dict[str, Any]:
        return {**super()._payload(), "email": self.email}


@dataclass(frozen=True, kw_only=True)
class DeliverySubmitted(CheckoutEvent):
    """Event raised when delivery address and shipping are (re)submitted."""

    event_type: ClassVar[str] = "checkout.delivery_submitted"

    country: str
    shipping_option_id: str
    shipping_cents: int
    total_cents: int
    currency: str

    def _payload(self) -> dict[str, Any]:
        return {
            **super()._payload(),
            "country": self.country,
            "shipping_option_id": self.shipping_option_id,
            "shipping_cents": self.shipping_cents,
            "total_cents": self.total_cents,
            "currency": self.currency,
        }


@dataclass(frozen=True, kw_only=True)
class PaymentSubmitted(CheckoutEvent):
    """Event raised when a payment provider is (re)selected."""

    event_type: ClassVar[str] = "checkout.payment_submitted"

    provider_id: str
    has_reference: bool = False

    def _payload(self) -> dict[str, Any]:
        return {
            **super()._payload(),
            "provider_id": self.provider_id,
            "has_reference": self.has_reference,
        }


@dataclass(frozen=True, kw_only=True)
class ReviewStarted(CheckoutEvent):
    """Event raised when the buyer moves on to the review step."""

    event_type: ClassVar[str] = "checkout.review_started"


@dataclass(frozen=True)
class ConfirmedLineItem:
    """Line item data carried by :class:`CheckoutConfirmed`."""

    product_id: str
    product_name: str
    quantity: int
    unit_price_cents: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
        }


@dataclass(frozen=True, kw_only=True)
class CheckoutConfirmed(CheckoutEvent):
    """Event raised when the buyer confirms the order.

    Carries every line item at its confirmed price so that consumers
    (inventory reduction, order creation) never need to read the session.
    """

    event_type: ClassVar[str] = "checkout.confirmed"

    cart_id: str
    customer_id: str
    items: tuple[ConfirmedLineItem, ...] = field(default_factory=tuple)
    subtotal_cents: int
    shipping_cents: int
    tax_cents: int
    total_cents: int
    currency: str
    price_changed_product_ids: tuple[str, ...] = field(default_factory=tuple)

    def _payload(self) -> dict[str, Any]:
        return {
            **super()._payload(),
            "cart_id": self.cart_id,
            "customer_id": self.customer_id,
            "items": [item.to_dict() for item in self.items],
            "subtotal_cents": self.subtotal_cents,
            "shipping_cents": self.shipping_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "currency": self.currency,
            "price_changed_product_ids": list(self.price_changed_product_ids),
        }


@dataclass(frozen=True, kw_only=True)
class CheckoutCompleted(CheckoutEvent):
    """Event raised when a confirmed checkout has been fully processed."""

    event_type: ClassVar[str] = "checkout.completed"

    total_cents: int
    currency: str
    order_reference: str | None = None

    def _payload(self) -> dict[str, Any]:
        return {
            **super()._payload(),
            "total_cents": self.total_cents,
            "currency": self.currency,
            "order_reference": self.order_reference,
        }


@dataclass(frozen=True, kw_only=True)
class CheckoutAbandoned(CheckoutEvent):
    """Event raised when the buyer abandons the checkout."""

    event_type: ClassVar[str] = "checkout.abandoned"

    abandoned_at_step: str

    def _payload(self) -> dict[str, Any]:
        return {**super()._payload(), "abandoned_at_step": self.abandoned_at_step}


@dataclass(frozen=True, kw_only=True)
class CheckoutExpired(CheckoutEvent):
    """Event raised when an idle session is expired."""

    event_type: ClassVar[str] = "checkout.expired"

    expired_at_step: str
    idle_seconds: int

    def _payload(self) -> dict[str, Any]:
        return {
            **super()._payload(),
            "expired_at_step": self.expired_at_step,
            "idle_seconds": self.idle_seconds,
        }


# ============================================================================
# Event Registry
# ============================================================================


# Registry of all event types for deserialization
EVENT_REGISTRY: dict[str, type[CheckoutEvent]] = {
    cls.event_type: cls
    for cls in (
        CheckoutSessionStarted,
        BuyerInfoSubmitted,
        DeliverySubmitted,
        PaymentSubmitted,
        ReviewStarted,
        CheckoutConfirmed,
        CheckoutCompleted,
        CheckoutAbandoned,
        CheckoutExpired,
    )
}


def get_event_class(event_type: str) -> type[CheckoutEvent] | None:
    """Get event class by event type string (e.g. 'checkout.confirmed')."""
    return EVENT_REGISTRY.get(event_type)
