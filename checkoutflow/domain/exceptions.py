"""Domain exceptions.

All domain-level errors that represent business rule violations or
failures the caller has to react to. Every error carries a stable
``error_code`` and a ``retryable`` flag so the orchestrating layer can
decide whether to retry an operation without inspecting messages.
"""

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from checkoutflow.domain.resolution import ValidationProblem


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    error_code: ClassVar[str] = "DOMAIN_ERROR"
    retryable: ClassVar[bool] = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Session Errors
# ============================================================================


class CheckoutError(DomainError):
    """Base class for checkout-session errors."""

    pass


class SessionNotFoundError(CheckoutError):
    """Raised when a session id has no backing record."""

    error_code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Checkout session {session_id} not found",
            details={"session_id": session_id},
        )


class InvalidStepTransitionError(CheckoutError):
    """Raised when a step is submitted out of order.

    Skipping ahead and resubmitting a step the session has already left
    behind both end up here. It always points at a caller bug or stale
    UI state.
    """

    error_code = "INVALID_STEP_TRANSITION"

    def __init__(
        self,
        session_id: str,
        from_step: str,
        attempted_step: str,
        allowed_steps: list[str] | None = None,
    ) -> None:
        """Initialize invalid step transition error.

        Args:
            session_id: ID of the checkout session.
            from_step: Step the session is currently at.
            attempted_step: Step the caller tried to move to.
            allowed_steps: Steps reachable from the current step.
        """
        allowed = allowed_steps or []
        super().__init__(
            f"Cannot move checkout session {session_id} "
            f"from '{from_step}' to '{attempted_step}'. "
            f"Allowed transitions: {allowed}",
            details={
                "session_id": session_id,
                "from": from_step,
                "attempted": attempted_step,
                "allowed_transitions": allowed,
            },
        )
        self.from_step = from_step
        self.attempted_step = attempted_step


class SessionClosedError(CheckoutError):
    """Raised when a terminal session is asked to change."""

    error_code = "SESSION_CLOSED"

    def __init__(self, session_id: str, current_step: str, operation: str) -> None:
        super().__init__(
            f"Checkout session {session_id} is closed ('{current_step}'); "
            f"cannot {operation}",
            details={
                "session_id": session_id,
                "current_step": current_step,
                "operation": operation,
            },
        )
        self.current_step = current_step


class CheckoutValidationFailedError(CheckoutError):
    """Raised when confirmation finds items that can no longer be bought.

    The session stays at its prior step so the buyer can adjust and
    retry; ``problems`` lists every offending line item.
    """

    error_code = "CHECKOUT_VALIDATION_FAILED"

    def __init__(self, session_id: str, problems: list["ValidationProblem"]) -> None:
        super().__init__(
            f"Checkout session {session_id} failed validation "
            f"with {len(problems)} problem(s)",
            details={
                "session_id": session_id,
                "problems": [problem.to_dict() for problem in problems],
            },
        )
        self.problems = list(problems)


class EmptyCheckoutError(CheckoutError):
    """Raised when a session would start without line items."""

    error_code = "EMPTY_CHECKOUT"

    def __init__(self, cart_id: str) -> None:
        super().__init__(
            f"Cannot start checkout for cart {cart_id} without line items",
            details={"cart_id": cart_id},
        )


class UnknownShippingOptionError(CheckoutError):
    """Raised when the requested shipping option is not offered."""

    error_code = "UNKNOWN_SHIPPING_OPTION"

    def __init__(self, option_id: str) -> None:
        super().__init__(
            f"Shipping option '{option_id}' is not available",
            details={"shipping_option_id": option_id},
        )


class PaymentProviderUnavailableError(CheckoutError):
    """Raised when the selected payment provider is unknown or offline."""

    error_code = "PAYMENT_PROVIDER_UNAVAILABLE"

    def __init__(self, provider_id: str) -> None:
        super().__init__(
            f"Payment provider '{provider_id}' is not available",
            details={"provider_id": provider_id},
        )


# ============================================================================
# Retryable Errors
# ============================================================================


class ResolverUnavailableError(CheckoutError):
    """Raised when fresh price/stock data could not be fetched in time.

    Transient: the whole confirmation may be retried. The session is
    left untouched when this is raised.
    """

    error_code = "RESOLVER_UNAVAILABLE"
    retryable = True

    def __init__(self, reason: str, product_ids: list[str] | None = None) -> None:
        super().__init__(
            f"Article data unavailable: {reason}",
            details={"reason": reason, "product_ids": product_ids or []},
        )


class ConcurrentModificationError(CheckoutError):
    """Raised by a repository when a save would overwrite a newer version."""

    error_code = "CONCURRENT_MODIFICATION"
    retryable = True

    def __init__(
        self,
        session_id: str,
        expected_version: int | None,
        actual_version: int | None,
    ) -> None:
        super().__init__(
            f"Checkout session {session_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            details={
                "session_id": session_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )


# ============================================================================
# Value Errors
# ============================================================================


class InvalidQuantityError(DomainError):
    """Raised when an invalid quantity is provided."""

    error_code = "INVALID_QUANTITY"

    def __init__(self, quantity: int, reason: str = "Quantity must be positive") -> None:
        super().__init__(
            f"Invalid quantity {quantity}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


class MoneyError(DomainError):
    """Base class for money-related errors."""

    error_code = "MONEY_ERROR"


class CurrencyMismatchError(MoneyError):
    """Raised when attempting to combine money with different currencies."""

    error_code = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str) -> None:
        super().__init__(
            f"Cannot combine money with different currencies: {currency1} and {currency2}",
            details={"currency1": currency1, "currency2": currency2},
        )


class NegativeMoneyError(MoneyError):
    """Raised when attempting to create money with negative amount."""

    error_code = "NEGATIVE_MONEY"

    def __init__(self, amount: int) -> None:
        super().__init__(
            f"Money amount cannot be negative: {amount}",
            details={"amount": amount},
        )
