"""Checkout application service.

Orchestrates the multi-step checkout flow:
- Starting a session from a cart snapshot
- Submitting buyer info, delivery and payment
- Entering review and confirming with fresh article data
- Completing or abandoning the session

Every mutation follows the same path: load, mutate, save, drain events,
dispatch. Mutations of one session are serialised in-process with an
``asyncio.Lock``; the repository's version check catches writers outside
this process, and such conflicts are retried by reloading.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog

from checkoutflow.application.event_dispatcher import EventDispatcher
from checkoutflow.application.options import (
    PaymentProvider,
    PaymentProviderRegistry,
    ShippingOptionCatalog,
)
from checkoutflow.application.ports import ArticleDataPort, CheckoutSessionRepository
from checkoutflow.domain.clock import Clock, SystemClock
from checkoutflow.domain.entities import CheckoutSession
from checkoutflow.domain.exceptions import (
    ConcurrentModificationError,
    DomainError,
    ResolverUnavailableError,
    SessionClosedError,
    SessionNotFoundError,
)
from checkoutflow.domain.resolution import (
    ArticlePrice,
    CheckoutVerdict,
    resolver_from_table,
)
from checkoutflow.domain.state_machines import CheckoutStep
from checkoutflow.domain.step_access import AccessDecision, StepAccessValidator
from checkoutflow.domain.value_objects import (
    BuyerInfo,
    CartId,
    CheckoutLineItem,
    CheckoutSessionId,
    CustomerId,
    DeliveryAddress,
    Money,
    PaymentProviderId,
    PaymentSelection,
    ProductId,
    ShippingOption,
)
from checkoutflow.infrastructure.config import Settings
from checkoutflow.infrastructure.config import settings as default_settings

logger = structlog.get_logger()

R = TypeVar("R")


# ============================================================================
# Service Result Types
# ============================================================================


@dataclass
class CheckoutResult:
    """Result of a checkout operation."""

    session: CheckoutSession | None = None
    success: bool = True
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False
    verdict: CheckoutVerdict | None = None

    @classmethod
    def from_error(cls, error: DomainError) -> "CheckoutResult":
        return cls(
            success=False,
            error=error.message,
            error_code=error.error_code,
            details=error.details,
            retryable=error.retryable,
        )


# ============================================================================
# Checkout Service
# ============================================================================


class CheckoutService:
    """Application service for the checkout session flow.

    Orchestrates the flow:
    1. Start session from cart
    2. Submit buyer info
    3. Submit delivery address and shipping option
    4. Submit payment selection
    5. Review (optional)
    6. Confirm against fresh price and stock data
    7. Complete
    """

    def __init__(
        self,
        repository: CheckoutSessionRepository,
        article_data: ArticleDataPort,
        dispatcher: EventDispatcher | None = None,
        clock: Clock | None = None,
        settings: Settings | None = None,
        shipping_options: ShippingOptionCatalog | None = None,
        payment_providers: PaymentProviderRegistry | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repository: Checkout session repository.
            article_data: Source of current article data.
            dispatcher: Receives drained events after every save.
            clock: Time source.
            settings: Timeouts, retry limits and confirmation policy.
            shipping_options: Offered shipping options.
            payment_providers: Selectable payment providers.
            request_id: Request ID for correlation.
        """
        self.repository = repository
        self.article_data = article_data
        self.dispatcher = dispatcher or EventDispatcher()
        self.clock = clock or SystemClock()
        self.settings = settings or default_settings
        self.shipping_options = shipping_options or ShippingOptionCatalog.default(
            self.settings.default_currency
        )
        self.payment_providers = payment_providers or PaymentProviderRegistry.default()
        self.request_id = request_id
        self.step_validator = StepAccessValidator()
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Start & Read
    # -------------------------------------------------------------------------

    async def start_checkout(
        self,
        cart_id: str,
        customer_id: str,
        line_items: list[CheckoutLineItem],
    ) -> CheckoutResult:
        """Start a checkout session for a cart.

        If the cart already has an active session, that session is
        returned instead of creating a second one. An active session that
        has gone idle is expired first.

        Args:
            cart_id: Cart identifier (UUID string).
            customer_id: Customer identifier.
            line_items: Items captured from the cart.

        Returns:
            CheckoutResult with the new or existing session.

        Raises:
            ValueError: If ``cart_id`` is not a UUID.
        """
        cart = CartId.from_string(cart_id)
        try:
            async with self._locked(f"cart:{cart}"):
                existing = self.repository.find_by_cart_id(cart)
                if existing is not None:
                    existing = await self._expire_if_idle(existing)
                if existing is not None and not existing.is_terminal:
                    logger.info(
                        "Returning existing checkout session for cart",
                        cart_id=cart_id,
                        session_id=str(existing.id),
                        step=existing.current_step.value,
                        request_id=self.request_id,
                    )
                    return CheckoutResult(session=existing)

                currency = (
                    line_items[0].unit_price.currency
                    if line_items
                    else self.settings.default_currency
                )
                subtotal = Money.zero(currency)
                for item in line_items:
                    subtotal = subtotal + item.line_total
                session = CheckoutSession.start(
                    cart_id=cart,
                    customer_id=CustomerId(customer_id),
                    line_items=line_items,
                    subtotal=subtotal,
                    now=self.clock.now(),
                )
                self.repository.save(session)
                await self._publish(session)

            logger.info(
                "Checkout session started",
                session_id=str(session.id),
                cart_id=cart_id,
                customer_id=customer_id,
                item_count=len(session.line_items),
                subtotal_cents=session.totals.subtotal.amount_cents,
                request_id=self.request_id,
            )
            return CheckoutResult(session=session)

        except DomainError as e:
            return self._failure(e, "start checkout", cart_id=cart_id)

    async def get_session(self, session_id: str) -> CheckoutSession | None:
        """Get a checkout session by ID.

        An open session that has been idle past the configured timeout is
        expired (and the expiry saved) before it is returned.

        Args:
            session_id: Session identifier.

        Returns:
            CheckoutSession if found, None otherwise.
        """
        sid = self._parse_session_id(session_id)
        if sid is None:
            return None
        async with self._locked(str(sid)):
            session = self.repository.find_by_id(sid)
            if session is None:
                return None
            return await self._expire_if_idle(session)

    async def check_step_access(
        self,
        session_id: str | None,
        requested_step: CheckoutStep,
    ) -> AccessDecision:
        """Decide whether the buyer may view ``requested_step``.

        An unknown or missing session id sends the buyer back to the cart.
        """
        session = await self.get_session(session_id) if session_id else None
        return self.step_validator.validate_access(session, requested_step)

    def get_shipping_options(self) -> list[ShippingOption]:
        return self.shipping_options.list_options()

    def get_payment_providers(self) -> list[PaymentProvider]:
        return self.payment_providers.list_available()

    # -------------------------------------------------------------------------
    # Step Submissions
    # -------------------------------------------------------------------------

    async def submit_buyer_info(self, session_id: str, buyer_info: BuyerInfo) -> CheckoutResult:
        """Submit (or resubmit) buyer contact information."""
        return await self._run(
            session_id,
            "submit buyer info",
            lambda session, now: session.submit_buyer_info(buyer_info, now=now),
        )

    async def submit_delivery(
        self,
        session_id: str,
        address: DeliveryAddress,
        shipping_option_id: str,
    ) -> CheckoutResult:
        """Submit delivery address and shipping option.

        Args:
            session_id: Session identifier.
            address: Delivery address.
            shipping_option_id: One of the offered shipping option ids.

        Returns:
            CheckoutResult; ``UNKNOWN_SHIPPING_OPTION`` for an unknown id.
        """
        try:
            option = self.shipping_options.get(shipping_option_id)
        except DomainError as e:
            return self._failure(e, "submit delivery", session_id=session_id)

        return await self._run(
            session_id,
            "submit delivery",
            lambda session, now: session.submit_delivery(address, option, now=now),
        )

    async def submit_payment(
        self,
        session_id: str,
        provider_id: str,
        provider_reference: str | None = None,
    ) -> CheckoutResult:
        """Select a payment provider.

        Returns:
            CheckoutResult; ``PAYMENT_PROVIDER_UNAVAILABLE`` if the provider
            is unknown or currently disabled.
        """
        try:
            provider = self.payment_providers.require_available(PaymentProviderId(provider_id))
        except DomainError as e:
            return self._failure(e, "submit payment", session_id=session_id)

        selection = PaymentSelection(
            provider_id=provider.id,
            provider_reference=provider_reference,
        )
        return await self._run(
            session_id,
            "submit payment",
            lambda session, now: session.submit_payment(selection, now=now),
        )

    async def enter_review(self, session_id: str) -> CheckoutResult:
        """Move a session with a payment selection to the review step."""
        return await self._run(
            session_id,
            "enter review",
            lambda session, now: session.enter_review(now=now),
        )

    # -------------------------------------------------------------------------
    # Confirmation & Closing
    # -------------------------------------------------------------------------

    async def confirm_checkout(self, session_id: str) -> CheckoutResult:
        """Confirm a checkout against fresh price and stock data.

        Article data is fetched once per attempt with a bounded timeout
        and handed to the session as a resolver. On any failure the
        session is left exactly as it was.

        Args:
            session_id: Session identifier.

        Returns:
            CheckoutResult with the confirmed session and its verdict.
            Failures carry ``CHECKOUT_VALIDATION_FAILED`` (with the
            problems in ``details``) or the retryable
            ``RESOLVER_UNAVAILABLE``.
        """
        operation = "confirm"
        block = self.settings.block_on_price_change
        try:
            sid = self._require_session_id(session_id)
            async with self._locked(str(sid)):
                session = self._load(sid)
                idle = session.is_idle(self.clock.now(), self.settings.session_idle_timeout)
                table: dict[ProductId, ArticlePrice] = {}
                # An idle session is expired by _apply; skip the fetch.
                if session.current_step.can_transition_to(CheckoutStep.CONFIRMED) and not idle:
                    table = await self._fetch_article_data(session)
                resolver = resolver_from_table(table)

                session, verdict = await self._apply(
                    sid,
                    operation,
                    lambda s, now: s.confirm(resolver, block_on_price_change=block, now=now),
                )

            logger.info(
                "Checkout confirmed",
                session_id=session_id,
                total_cents=session.totals.total.amount_cents,
                currency=session.currency,
                price_changes=len(verdict.price_changes),
                request_id=self.request_id,
            )
            return CheckoutResult(session=session, verdict=verdict)

        except DomainError as e:
            return self._failure(e, operation, session_id=session_id)

    async def complete_checkout(
        self,
        session_id: str,
        order_reference: str | None = None,
    ) -> CheckoutResult:
        """Complete a confirmed checkout."""
        return await self._run(
            session_id,
            "complete",
            lambda session, now: session.complete(order_reference, now=now),
        )

    async def abandon_checkout(self, session_id: str) -> CheckoutResult:
        """Abandon a checkout from any open step."""
        return await self._run(
            session_id,
            "abandon",
            lambda session, now: session.abandon(now=now),
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run(
        self,
        session_id: str,
        operation: str,
        mutate: Callable[[CheckoutSession, Any], object],
    ) -> CheckoutResult:
        """Apply ``mutate`` under the session lock and wrap the outcome."""
        try:
            sid = self._require_session_id(session_id)
            async with self._locked(str(sid)):
                session, _ = await self._apply(sid, operation, mutate)

            logger.info(
                "Checkout step applied",
                operation=operation,
                session_id=session_id,
                step=session.current_step.value,
                request_id=self.request_id,
            )
            return CheckoutResult(session=session)

        except DomainError as e:
            return self._failure(e, operation, session_id=session_id)

    async def _apply(
        self,
        session_id: CheckoutSessionId,
        operation: str,
        mutate: Callable[[CheckoutSession, Any], R],
    ) -> tuple[CheckoutSession, R]:
        """Load, mutate, save and publish; the caller holds the session lock.

        An idle session is expired instead of mutated, and the operation
        then fails with ``SessionClosedError``.

        Raises:
            SessionNotFoundError: If the session does not exist.
            ConcurrentModificationError: If saving kept conflicting.
            DomainError: Whatever the mutation raised.
        """
        attempt = 0
        while True:
            attempt += 1
            session = self._load(session_id)
            now = self.clock.now()
            expired = session.expire(now=now, idle_timeout=self.settings.session_idle_timeout)
            outcome = None if expired else mutate(session, now)

            try:
                self.repository.save(session)
            except ConcurrentModificationError:
                if attempt >= self.settings.max_save_attempts:
                    raise
                logger.warning(
                    "Concurrent modification, reloading checkout session",
                    operation=operation,
                    session_id=str(session_id),
                    attempt=attempt,
                    request_id=self.request_id,
                )
                continue

            await self._publish(session)
            if expired:
                logger.info(
                    "Checkout session expired on access",
                    session_id=str(session_id),
                    expired_at_step=session.closed_at_step.value,
                    request_id=self.request_id,
                )
                raise SessionClosedError(str(session_id), session.current_step.value, operation)
            return session, outcome

    async def _fetch_article_data(self, session: CheckoutSession) -> dict[ProductId, ArticlePrice]:
        """Fetch article data for the session's line items with timeout and retry.

        Raises:
            ResolverUnavailableError: If every attempt failed or timed out.
        """
        product_ids = [item.product_id for item in session.line_items]
        timeout = self.settings.resolver_timeout_seconds
        attempts = self.settings.resolver_max_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                return await asyncio.wait_for(
                    self.article_data.get_article_data(product_ids),
                    timeout=timeout,
                )
            except (asyncio.TimeoutError, ResolverUnavailableError) as e:
                if attempt >= attempts:
                    logger.error(
                        "Article data unavailable",
                        session_id=str(session.id),
                        attempts=attempt,
                        error=str(e) or type(e).__name__,
                        request_id=self.request_id,
                    )
                    if isinstance(e, ResolverUnavailableError):
                        raise
                    raise ResolverUnavailableError(
                        f"no answer within {timeout}s",
                        [str(p) for p in product_ids],
                    ) from e
                logger.warning(
                    "Article data fetch failed, retrying",
                    session_id=str(session.id),
                    attempt=attempt,
                    error=str(e) or type(e).__name__,
                    request_id=self.request_id,
                )

    async def _expire_if_idle(self, session: CheckoutSession) -> CheckoutSession:
        """Expire ``session`` if it went idle; return the current state."""
        if not session.expire(
            now=self.clock.now(),
            idle_timeout=self.settings.session_idle_timeout,
        ):
            return session
        try:
            self.repository.save(session)
        except ConcurrentModificationError:
            # Someone else wrote first; their state wins.
            return self.repository.find_by_id(session.id) or session
        await self._publish(session)
        logger.info(
            "Checkout session expired on access",
            session_id=str(session.id),
            expired_at_step=session.closed_at_step.value,
            request_id=self.request_id,
        )
        return session

    async def _publish(self, session: CheckoutSession) -> None:
        events = session.drain_events()
        if events:
            await self.dispatcher.dispatch(events)

    def _load(self, session_id: CheckoutSessionId) -> CheckoutSession:
        session = self.repository.find_by_id(session_id)
        if session is None:
            raise SessionNotFoundError(str(session_id))
        return session

    @asynccontextmanager
    async def _locked(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key``; it is dropped once nobody holds or awaits it."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    @staticmethod
    def _parse_session_id(session_id: str) -> CheckoutSessionId | None:
        try:
            return CheckoutSessionId.from_string(session_id)
        except ValueError:
            return None

    def _require_session_id(self, session_id: str) -> CheckoutSessionId:
        sid = self._parse_session_id(session_id)
        if sid is None:
            raise SessionNotFoundError(session_id)
        return sid

    def _failure(self, error: DomainError, operation: str, **context: Any) -> CheckoutResult:
        logger.warning(
            "Checkout operation failed",
            operation=operation,
            error_code=error.error_code,
            error=error.message,
            retryable=error.retryable,
            request_id=self.request_id,
            **context,
        )
        return CheckoutResult.from_error(error)
