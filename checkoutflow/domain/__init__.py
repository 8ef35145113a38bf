"""Domain layer - Checkout session aggregate, value objects, state machine, events.

This module exports the core domain building blocks following DDD patterns:

- **Aggregate**: CheckoutSession, the only object that changes checkout state
- **Value Objects**: Immutable objects compared by value (Money, BuyerInfo, typed IDs)
- **State Machine**: Ranked checkout steps and their legal transitions
- **Reconciliation**: Price/stock verdict computed at confirmation time
- **Step Access**: Read-only navigation decisions (Allow / RedirectTo)
- **Domain Events**: One per step transition, drained after saving
- **Exceptions**: Domain-specific errors with stable error codes

Example usage:
    from checkoutflow.domain import (
        CartId, CheckoutLineItem, CheckoutSession, CustomerId, Money, ProductId,
    )

    item = CheckoutLineItem.capture(
        product_id=ProductId("SKU-001"),
        product_name="Widget",
        unit_price=Money.from_decimal("29.99"),
        quantity=2,
    )
    session = CheckoutSession.start(
        cart_id=CartId.generate(),
        customer_id=CustomerId("customer-1"),
        line_items=[item],
        subtotal=item.line_total,
    )
    print(session.totals.total)  # €59.98 EUR
"""

# Base classes
from checkoutflow.domain.base import AggregateRoot, DomainEvent, Entity, ValueObject

# Clock
from checkoutflow.domain.clock import Clock, FixedClock, SystemClock

# Entities
from checkoutflow.domain.entities import DEFAULT_IDLE_TIMEOUT, CheckoutSession

# Domain Events
from checkoutflow.domain.events import (
    EVENT_REGISTRY,
    BuyerInfoSubmitted,
    CheckoutAbandoned,
    CheckoutCompleted,
    CheckoutConfirmed,
    CheckoutEvent,
    CheckoutExpired,
    CheckoutSessionStarted,
    ConfirmedLineItem,
    DeliverySubmitted,
    PaymentSubmitted,
    ReviewStarted,
    get_event_class,
)

# Exceptions
from checkoutflow.domain.exceptions import (
    CheckoutError,
    CheckoutValidationFailedError,
    ConcurrentModificationError,
    CurrencyMismatchError,
    DomainError,
    EmptyCheckoutError,
    InvalidQuantityError,
    InvalidStepTransitionError,
    MoneyError,
    NegativeMoneyError,
    PaymentProviderUnavailableError,
    ResolverUnavailableError,
    SessionClosedError,
    SessionNotFoundError,
    UnknownShippingOptionError,
)

# Reconciliation
from checkoutflow.domain.resolution import (
    ArticlePrice,
    ArticleResolver,
    CheckoutVerdict,
    PriceChange,
    ProblemType,
    ValidationProblem,
    build_verdict,
    resolver_from_table,
)

# State Machine
from checkoutflow.domain.state_machines import (
    CheckoutSessionStatus,
    CheckoutStep,
    ranked_steps,
    validate_step_transition,
)

# Step Access
from checkoutflow.domain.step_access import (
    AccessDecision,
    Allow,
    RedirectTo,
    StepAccessValidator,
    current_step_path,
    path_for_step,
    validate_access,
)

# Value Objects
from checkoutflow.domain.value_objects import (
    BuyerInfo,
    CartId,
    CheckoutLineItem,
    CheckoutLineItemId,
    CheckoutSessionId,
    CheckoutTotals,
    CustomerId,
    DeliveryAddress,
    Money,
    PaymentProviderId,
    PaymentSelection,
    ProductId,
    ShippingOption,
)

__all__ = [
    # Base classes
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "ValueObject",
    # Clock
    "Clock",
    "FixedClock",
    "SystemClock",
    # Entities
    "CheckoutSession",
    "DEFAULT_IDLE_TIMEOUT",
    # Value Objects
    "BuyerInfo",
    "CartId",
    "CheckoutLineItem",
    "CheckoutLineItemId",
    "CheckoutSessionId",
    "CheckoutTotals",
    "CustomerId",
    "DeliveryAddress",
    "Money",
    "PaymentProviderId",
    "PaymentSelection",
    "ProductId",
    "ShippingOption",
    # State Machine
    "CheckoutSessionStatus",
    "CheckoutStep",
    "ranked_steps",
    "validate_step_transition",
    # Reconciliation
    "ArticlePrice",
    "ArticleResolver",
    "CheckoutVerdict",
    "PriceChange",
    "ProblemType",
    "ValidationProblem",
    "build_verdict",
    "resolver_from_table",
    # Step Access
    "AccessDecision",
    "Allow",
    "RedirectTo",
    "StepAccessValidator",
    "current_step_path",
    "path_for_step",
    "validate_access",
    # Domain Events
    "CheckoutEvent",
    "CheckoutSessionStarted",
    "BuyerInfoSubmitted",
    "DeliverySubmitted",
    "PaymentSubmitted",
    "ReviewStarted",
    "CheckoutConfirmed",
    "ConfirmedLineItem",
    "CheckoutCompleted",
    "CheckoutAbandoned",
    "CheckoutExpired",
    # Event utilities
    "EVENT_REGISTRY",
    "get_event_class",
    # Exceptions
    "DomainError",
    "CheckoutError",
    "SessionNotFoundError",
    "InvalidStepTransitionError",
    "SessionClosedError",
    "CheckoutValidationFailedError",
    "EmptyCheckoutError",
    "UnknownShippingOptionError",
    "PaymentProviderUnavailableError",
    "ResolverUnavailableError",
    "ConcurrentModificationError",
    "InvalidQuantityError",
    "MoneyError",
    "CurrencyMismatchError",
    "NegativeMoneyError",
]
