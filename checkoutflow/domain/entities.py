"""Domain entities for checkout.

This module contains the CheckoutSession aggregate root: one buyer's
in-progress checkout attempt, moving through buyer info, delivery,
payment and review to confirmation.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from checkoutflow.domain.base import AggregateRoot, utc_now
from checkoutflow.domain.events import (
    BuyerInfoSubmitted,
    CheckoutAbandoned,
    CheckoutCompleted,
    CheckoutConfirmed,
    CheckoutExpired,
    CheckoutSessionStarted,
    ConfirmedLineItem,
    DeliverySubmitted,
    PaymentSubmitted,
    ReviewStarted,
)
from checkoutflow.domain.exceptions import (
    CheckoutValidationFailedError,
    CurrencyMismatchError,
    EmptyCheckoutError,
    SessionClosedError,
)
from checkoutflow.domain.resolution import (
    ArticleResolver,
    CheckoutVerdict,
    PriceChange,
    build_verdict,
)
from checkoutflow.domain.state_machines import (
    CheckoutSessionStatus,
    CheckoutStep,
    validate_step_transition,
)
from checkoutflow.domain.value_objects import (
    BuyerInfo,
    CartId,
    CheckoutLineItem,
    CheckoutSessionId,
    CheckoutTotals,
    CustomerId,
    DeliveryAddress,
    Money,
    PaymentSelection,
    ShippingOption,
)

DEFAULT_IDLE_TIMEOUT = timedelta(minutes=30)


@dataclass(kw_only=True, eq=False)
class CheckoutSession(AggregateRoot[CheckoutSessionId]):
    """Checkout session aggregate root.

    The session is mutated exclusively through its transition methods.
    ``current_step`` is the single source of truth for which step data is
    populated: buyer info exists once the session has reached BUYER_INFO,
    delivery data once it has reached DELIVERY, and so on. Steps only
    move forward; going back to an earlier form is a read concern handled
    by :class:`~checkoutflow.domain.step_access.StepAccessValidator`.

    Terminal sessions (COMPLETED, ABANDONED, EXPIRED) are read-only.

    Attributes:
        id: Unique session identifier.
        cart_id: Cart the session was started from.
        customer_id: Customer (or guest) checking out.
        line_items: Items captured at session start; never changed.
        totals: Current totals (subtotal, shipping, tax, total).
        current_step: Current step of the state machine.
        buyer_info: Contact data, once submitted.
        delivery_address: Delivery address, once submitted.
        shipping_option: Shipping choice, once submitted.
        payment_selection: Payment choice, once submitted.
        price_changes: Captured prices found stale at confirmation.
        closed_at_step: Step the session had reached when it was
            abandoned or expired.
        order_reference: Reference handed over on completion.
        last_activity_at: Timestamp of the last successful transition.
    """

    id: CheckoutSessionId
    cart_id: CartId
    customer_id: CustomerId
    line_items: tuple[CheckoutLineItem, ...]
    totals: CheckoutTotals
    current_step: CheckoutStep = CheckoutStep.STARTED
    buyer_info: BuyerInfo | None = None
    delivery_address: DeliveryAddress | None = None
    shipping_option: ShippingOption | None = None
    payment_selection: PaymentSelection | None = None
    price_changes: tuple[PriceChange, ...] = ()
    closed_at_step: CheckoutStep | None = None
    order_reference: str | None = None
    last_activity_at: datetime = field(default_factory=utc_now)

    @classmethod
    def start(
        cls,
        cart_id: CartId,
        customer_id: CustomerId,
        line_items: Iterable[CheckoutLineItem],
        subtotal: Money,
        *,
        session_id: CheckoutSessionId | None = None,
        now: datetime | None = None,
    ) -> "CheckoutSession":
        """Start a new checkout session from a cart snapshot.

        Args:
            cart_id: Originating cart.
            customer_id: Customer checking out.
            line_items: Captured line items; must not be empty.
            subtotal: Subtotal of the line items.
            session_id: Optional pre-generated session id.
            now: Creation time; defaults to the current UTC time.

        Returns:
            New session at STARTED with a ``CheckoutSessionStarted`` event.

        Raises:
            EmptyCheckoutError: If there are no line items.
            CurrencyMismatchError: If a line item is priced in a currency
                other than the subtotal's.
        """
        items = tuple(line_items)
        if not items:
            raise EmptyCheckoutError(str(cart_id))
        for item in items:
            if item.unit_price.currency != subtotal.currency:
                raise CurrencyMismatchError(subtotal.currency, item.unit_price.currency)

        now = now or utc_now()
        session = cls(
            id=session_id or CheckoutSessionId.generate(),
            cart_id=cart_id,
            customer_id=customer_id,
            line_items=items,
            totals=CheckoutTotals.from_subtotal(subtotal),
            created_at=now,
            updated_at=now,
            last_activity_at=now,
        )
        session._register_event(
            CheckoutSessionStarted(
                session_id=str(session.id),
                occurred_at=now,
                cart_id=str(cart_id),
                customer_id=str(customer_id),
                subtotal_cents=subtotal.amount_cents,
                currency=subtotal.currency,
                item_count=len(items),
            )
        )
        return session

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def status(self) -> CheckoutSessionStatus:
        return self.current_step.status

    @property
    def currency(self) -> str:
        return self.totals.currency

    @property
    def is_terminal(self) -> bool:
        return self.current_step.is_terminal()

    @property
    def progress_step(self) -> CheckoutStep:
        """Furthest happy-path step the session reached.

        Equal to ``current_step`` while the session is open; for closed
        sessions it is the step reached before closing.
        """
        if self.current_step.is_ranked():
            return self.current_step
        if self.current_step == CheckoutStep.COMPLETED:
            return CheckoutStep.CONFIRMED
        return self.closed_at_step or CheckoutStep.STARTED

    def is_step_completed(self, step: CheckoutStep) -> bool:
        """Check whether ``step`` has been reached (and its data submitted)."""
        return not step.is_after(self.progress_step)

    def idle_for(self, now: datetime) -> timedelta:
        return now - self.last_activity_at

    def is_idle(self, now: datetime, idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT) -> bool:
        """Check whether the session has been inactive for ``idle_timeout``."""
        return self.idle_for(now) >= idle_timeout

    # -------------------------------------------------------------------------
    # Step Transitions
    # -------------------------------------------------------------------------

    def submit_buyer_info(self, info: BuyerInfo, *, now: datetime | None = None) -> None:
        """Store buyer contact information and move to BUYER_INFO.

        Resubmission while still at BUYER_INFO replaces the previous data.

        Raises:
            SessionClosedError: If the session is terminal.
            InvalidStepTransitionError: If the session is past BUYER_INFO.
        """
        self._ensure_open("submit buyer info")
        validate_step_transition(str(self.id), self.current_step, CheckoutStep.BUYER_INFO)

        now = now or utc_now()
        self.buyer_info = info
        self._move_to(CheckoutStep.BUYER_INFO, now)
        self._register_event(
            BuyerInfoSubmitted(session_id=str(self.id), occurred_at=now, email=info.email)
        )

    def submit_delivery(
        self,
        address: DeliveryAddress,
        shipping_option: ShippingOption,
        *,
        now: datetime | None = None,
    ) -> None:
        """Store delivery data, add the shipping cost and move to DELIVERY.

        Raises:
            SessionClosedError: If the session is terminal.
            InvalidStepTransitionError: Unless at BUYER_INFO or DELIVERY.
            CurrencyMismatchError: If shipping is priced in another currency.
        """
        self._ensure_open("submit delivery")
        validate_step_transition(str(self.id), self.current_step, CheckoutStep.DELIVERY)
        totals = self.totals.with_shipping(shipping_option.cost)

        now = now or utc_now()
        self.delivery_address = address
        self.shipping_option = shipping_option
        self.totals = totals
        self._move_to(CheckoutStep.DELIVERY, now)
        self._register_event(
            DeliverySubmitted(
                session_id=str(self.id),
                occurred_at=now,
                country=address.country,
                shipping_option_id=shipping_option.id,
                shipping_cents=shipping_option.cost.amount_cents,
                total_cents=totals.total.amount_cents,
                currency=totals.currency,
            )
        )

    def submit_payment(self, selection: PaymentSelection, *, now: datetime | None = None) -> None:
        """Store the payment selection and move to PAYMENT.

        Raises:
            SessionClosedError: If the session is terminal.
            InvalidStepTransitionError: Unless at DELIVERY or PAYMENT.
        """
        self._ensure_open("submit payment")
        validate_step_transition(str(self.id), self.current_step, CheckoutStep.PAYMENT)

        now = now or utc_now()
        self.payment_selection = selection
        self._move_to(CheckoutStep.PAYMENT, now)
        self._register_event(
            PaymentSubmitted(
                session_id=str(self.id),
                occurred_at=now,
                provider_id=str(selection.provider_id),
                has_reference=selection.has_reference(),
            )
        )

    def enter_review(self, *, now: datetime | None = None) -> None:
        """Move from PAYMENT to REVIEW; a repeat call only refreshes activity."""
        self._ensure_open("enter review")
        validate_step_transition(str(self.id), self.current_step, CheckoutStep.REVIEW)

        now = now or utc_now()
        entering = self.current_step != CheckoutStep.REVIEW
        self._move_to(CheckoutStep.REVIEW, now)
        if entering:
            self._register_event(ReviewStarted(session_id=str(self.id), occurred_at=now))

    def confirm(
        self,
        resolver: ArticleResolver,
        *,
        block_on_price_change: bool = False,
        now: datetime | None = None,
    ) -> CheckoutVerdict:
        """Reconcile line items with fresh article data and confirm.

        The verdict is computed before anything changes; if it carries a
        blocking problem the session is left exactly as it was. On success
        the totals are recomputed from the confirmed prices and any price
        changes are recorded on the session.

        Args:
            resolver: Lookup of current article data, supplied per call.
            block_on_price_change: Treat a pure price change as blocking.
            now: Confirmation time.

        Returns:
            The verdict, including non-blocking price changes.

        Raises:
            SessionClosedError: If the session is terminal.
            InvalidStepTransitionError: Unless at PAYMENT or REVIEW.
            CheckoutValidationFailedError: If any item is unavailable, short
                on stock, or (when blocking) repriced.
        """
        self._ensure_open("confirm")
        validate_step_transition(str(self.id), self.current_step, CheckoutStep.CONFIRMED)

        verdict = build_verdict(self.line_items, resolver)
        blocking = verdict.blocking_problems(block_on_price_change)
        if blocking:
            raise CheckoutValidationFailedError(str(self.id), blocking)

        subtotal = Money.zero(self.currency)
        for item in self.line_items:
            subtotal = subtotal + verdict.confirmed_prices[item.product_id] * item.quantity
        totals = self.totals.with_subtotal(subtotal)

        now = now or utc_now()
        self.totals = totals
        self.price_changes = verdict.price_changes
        self._move_to(CheckoutStep.CONFIRMED, now)
        self._register_event(
            CheckoutConfirmed(
                session_id=str(self.id),
                occurred_at=now,
                cart_id=str(self.cart_id),
                customer_id=str(self.customer_id),
                items=tuple(
                    ConfirmedLineItem(
                        product_id=str(item.product_id),
                        product_name=item.product_name,
                        quantity=item.quantity,
                        unit_price_cents=verdict.confirmed_prices[item.product_id].amount_cents,
                    )
                    for item in self.line_items
                ),
                subtotal_cents=totals.subtotal.amount_cents,
                shipping_cents=totals.shipping.amount_cents,
                tax_cents=totals.tax.amount_cents,
                total_cents=totals.total.amount_cents,
                currency=totals.currency,
                price_changed_product_ids=tuple(
                    str(change.product_id) for change in verdict.price_changes
                ),
            )
        )
        return verdict

    def complete(self, order_reference: str | None = None, *, now: datetime | None = None) -> None:
        """Complete a confirmed checkout. Irreversible.

        Raises:
            SessionClosedError: If the session is terminal.
            InvalidStepTransitionError: Unless at CONFIRMED.
        """
        self._ensure_open("complete")
        validate_step_transition(str(self.id), self.current_step, CheckoutStep.COMPLETED)

        now = now or utc_now()
        self.order_reference = order_reference
        self._move_to(CheckoutStep.COMPLETED, now)
        self._register_event(
            CheckoutCompleted(
                session_id=str(self.id),
                occurred_at=now,
                total_cents=self.totals.total.amount_cents,
                currency=self.currency,
                order_reference=order_reference,
            )
        )

    def abandon(self, *, now: datetime | None = None) -> None:
        """Abandon the session from any non-terminal step.

        Raises:
            SessionClosedError: If the session is already terminal.
        """
        self._ensure_open("abandon")
        abandoned_at = self.current_step

        now = now or utc_now()
        self.closed_at_step = abandoned_at
        self._move_to(CheckoutStep.ABANDONED, now)
        self._register_event(
            CheckoutAbandoned(
                session_id=str(self.id),
                occurred_at=now,
                abandoned_at_step=abandoned_at.value,
            )
        )

    def expire(
        self,
        *,
        now: datetime | None = None,
        idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT,
    ) -> bool:
        """Expire the session if it is open and has been idle long enough.

        Safe to call repeatedly and from racing sweeps: a terminal or
        recently active session is left alone.

        Returns:
            True if the session was expired by this call.
        """
        if self.is_terminal:
            return False
        now = now or utc_now()
        if not self.is_idle(now, idle_timeout):
            return False

        expired_at = self.current_step
        idle_seconds = int(self.idle_for(now).total_seconds())
        self.closed_at_step = expired_at
        self._move_to(CheckoutStep.EXPIRED, now, refresh_activity=False)
        self._register_event(
            CheckoutExpired(
                session_id=str(self.id),
                occurred_at=now,
                expired_at_step=expired_at.value,
                idle_seconds=idle_seconds,
            )
        )
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _ensure_open(self, operation: str) -> None:
        if self.is_terminal:
            raise SessionClosedError(str(self.id), self.current_step.value, operation)

    def _move_to(self, step: CheckoutStep, now: datetime, refresh_activity: bool = True) -> None:
        self.current_step = step
        if refresh_activity:
            self.last_activity_at = now
        self._touch(now)
