"""Tests for checkout domain events."""

from collections.abc import Callable

from checkoutflow.domain.entities import CheckoutSession
from checkoutflow.domain.events import (
    EVENT_REGISTRY,
    BuyerInfoSubmitted,
    CheckoutConfirmed,
    CheckoutEvent,
    get_event_class,
)
from checkoutflow.domain.resolution import ArticlePrice, resolver_from_table
from checkoutflow.domain.state_machines import CheckoutStep
from checkoutflow.domain.value_objects import ProductId


class TestEventSerialization:
    """Tests for event to_dict output."""

    def test_to_dict_envelope(self) -> None:
        event = BuyerInfoSubmitted(session_id="session-1", email="jane@example.com")

        data = event.to_dict()

        assert data["event_type"] == "checkout.buyer_info_submitted"
        assert data["aggregate_id"] == "session-1"
        assert data["aggregate_type"] == "CheckoutSession"
        assert data["payload"] == {"session_id": "session-1", "email": "jane@example.com"}
        assert data["event_id"]
        assert data["occurred_at"]

    def test_confirmed_payload_lists_items(
        self,
        session_at: Callable[[CheckoutStep], CheckoutSession],
        article_table: dict[ProductId, ArticlePrice],
    ) -> None:
        session = session_at(CheckoutStep.PAYMENT)
        session.confirm(resolver_from_table(article_table))
        (event,) = session.drain_events()

        payload = event.to_dict()["payload"]

        assert payload["items"] == [
            {
                "product_id": "SKU-001",
                "product_name": "Wireless Mouse",
                "quantity": 1,
                "unit_price_cents": 2999,
            },
            {
                "product_id": "SKU-002",
                "product_name": "USB-C Cable",
                "quantity": 2,
                "unit_price_cents": 1499,
            },
        ]
        assert payload["total_cents"] == 6496
        assert payload["currency"] == "EUR"


class TestEventRegistry:
    """Tests for the event registry."""

    def test_lookup_by_type(self) -> None:
        assert get_event_class("checkout.confirmed") is CheckoutConfirmed
        assert get_event_class("checkout.unknown") is None

    def test_registry_covers_every_transition(self) -> None:
        assert len(EVENT_REGISTRY) == 9
        assert all(issubclass(cls, CheckoutEvent) for cls in EVENT_REGISTRY.values())
