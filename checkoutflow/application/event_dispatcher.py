"""Dispatch of drained domain events.

The orchestrator drains events from a session only after it has been
saved and hands them over here. Handlers subscribe per event class;
subscribing to a base class (e.g. ``CheckoutEvent``) receives every
subclass as well.
"""

import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import structlog

from checkoutflow.domain.base import DomainEvent

logger = structlog.get_logger()

EventHandler = Callable[[DomainEvent], Awaitable[None] | None]


class EventDispatcher:
    """Routes domain events to subscribed handlers in registration order."""

    def __init__(self) -> None:
        self._handlers: list[tuple[type[DomainEvent], EventHandler]] = []

    def subscribe(self, event_cls: type[DomainEvent], handler: EventHandler) -> None:
        """Register ``handler`` for ``event_cls`` and its subclasses.

        Handlers may be plain functions or coroutine functions.
        """
        self._handlers.append((event_cls, handler))

    def handlers_for(self, event: DomainEvent) -> list[EventHandler]:
        return [handler for cls, handler in self._handlers if isinstance(event, cls)]

    async def dispatch(self, events: Iterable[DomainEvent]) -> None:
        """Deliver events in order.

        Raises:
            Exception: Whatever a handler raised; remaining events are not
                delivered.
        """
        for event in events:
            handlers = self.handlers_for(event)
            if not handlers:
                logger.debug(
                    "No handler for event type",
                    event_type=event.event_type,
                    aggregate_id=event.aggregate_id,
                )
                continue

            for handler in handlers:
                try:
                    result: Any = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(
                        "Event handler failed",
                        event_type=event.event_type,
                        event_id=str(event.event_id),
                        aggregate_id=event.aggregate_id,
                        handler=getattr(handler, "__qualname__", repr(handler)),
                        error=str(e),
                    )
                    raise

            logger.info(
                "Event dispatched",
                event_type=event.event_type,
                event_id=str(event.event_id),
                aggregate_id=event.aggregate_id,
                handler_count=len(handlers),
            )
