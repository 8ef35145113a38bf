"""Tests for EventDispatcher."""

import pytest

from checkoutflow.application.event_dispatcher import EventDispatcher
from checkoutflow.domain.base import DomainEvent
from checkoutflow.domain.events import (
    BuyerInfoSubmitted,
    CheckoutAbandoned,
    CheckoutEvent,
)


def _buyer_info_event() -> BuyerInfoSubmitted:
    return BuyerInfoSubmitted(session_id="session-1", email="jane@example.com")


class TestEventDispatcher:
    """Tests for subscribing and dispatching."""

    @pytest.mark.asyncio
    async def test_dispatch_to_sync_and_async_handlers(self) -> None:
        dispatcher = EventDispatcher()
        received: list[str] = []

        def sync_handler(event: DomainEvent) -> None:
            received.append(f"sync:{event.event_type}")

        async def async_handler(event: DomainEvent) -> None:
            received.append(f"async:{event.event_type}")

        dispatcher.subscribe(BuyerInfoSubmitted, sync_handler)
        dispatcher.subscribe(BuyerInfoSubmitted, async_handler)

        await dispatcher.dispatch([_buyer_info_event()])

        assert received == [
            "sync:checkout.buyer_info_submitted",
            "async:checkout.buyer_info_submitted",
        ]

    @pytest.mark.asyncio
    async def test_base_class_subscription_receives_all(self) -> None:
        dispatcher = EventDispatcher()
        received: list[DomainEvent] = []
        dispatcher.subscribe(CheckoutEvent, received.append)

        events = [
            _buyer_info_event(),
            CheckoutAbandoned(session_id="session-1", abandoned_at_step="delivery"),
        ]
        await dispatcher.dispatch(events)

        assert received == events

    @pytest.mark.asyncio
    async def test_unsubscribed_events_are_ignored(self) -> None:
        dispatcher = EventDispatcher()
        received: list[DomainEvent] = []
        dispatcher.subscribe(CheckoutAbandoned, received.append)

        await dispatcher.dispatch([_buyer_info_event()])

        assert received == []

    @pytest.mark.asyncio
    async def test_handler_failure_propagates(self) -> None:
        dispatcher = EventDispatcher()

        def failing(event: DomainEvent) -> None:
            raise RuntimeError("handler down")

        dispatcher.subscribe(BuyerInfoSubmitted, failing)

        with pytest.raises(RuntimeError, match="handler down"):
            await dispatcher.dispatch([_buyer_info_event()])
