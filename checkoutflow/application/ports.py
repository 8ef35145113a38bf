"""Ports consumed by the application layer.

The orchestrator only talks to storage and to the article data owner
through these interfaces; concrete adapters live in
``checkoutflow.infrastructure``.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime, timedelta

from checkoutflow.domain.entities import DEFAULT_IDLE_TIMEOUT, CheckoutSession
from checkoutflow.domain.resolution import ArticlePrice
from checkoutflow.domain.value_objects import (
    CartId,
    CheckoutSessionId,
    CustomerId,
    ProductId,
)


class CheckoutSessionRepository(ABC):
    """Storage for checkout sessions.

    Implementations must make ``save`` atomic per session id and reject a
    save whose aggregate was loaded at an older version than the stored
    one. Returned sessions are never shared between callers.
    """

    @abstractmethod
    def save(self, session: CheckoutSession) -> None:
        """Insert or update a session.

        Raises:
            ConcurrentModificationError: If the stored version is not the
                version the session was loaded at.
        """

    @abstractmethod
    def find_by_id(self, session_id: CheckoutSessionId) -> CheckoutSession | None:
        """Get a session by id."""

    @abstractmethod
    def find_by_cart_id(self, cart_id: CartId) -> CheckoutSession | None:
        """The non-terminal session for a cart, if any.

        Used to keep a cart from having two open sessions at once.
        """

    @abstractmethod
    def find_all_by_cart_id(self, cart_id: CartId) -> list[CheckoutSession]:
        """All sessions started from a cart, newest first."""

    @abstractmethod
    def find_active_by_customer_id(self, customer_id: CustomerId) -> list[CheckoutSession]:
        """Non-terminal sessions of a customer, newest first."""

    @abstractmethod
    def find_expired_sessions(
        self,
        now: datetime,
        idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT,
    ) -> list[CheckoutSession]:
        """Non-terminal sessions idle for at least ``idle_timeout`` at ``now``."""


class ArticleDataPort(ABC):
    """Source of current price, stock and availability per product."""

    @abstractmethod
    async def get_article_data(
        self,
        product_ids: Iterable[ProductId],
    ) -> dict[ProductId, ArticlePrice]:
        """Fetch fresh article data.

        Products the owner does not know are simply absent from the result.

        Raises:
            ResolverUnavailableError: If the data could not be fetched.
        """
