"""Step access decisions for navigation.

Given a (possibly missing) session and the step a buyer asks to view,
decide whether the view may be shown or where to send the buyer instead.
Viewing earlier steps is always allowed; skipping ahead never is. The
decision is a pure read and never changes the session.
"""

from dataclasses import dataclass

from checkoutflow.domain.entities import CheckoutSession
from checkoutflow.domain.state_machines import CheckoutStep

CART_PATH = "/cart"
CHECKOUT_PATH_PREFIX = "/checkout"

# URL segment per viewable step
_STEP_PATHS: dict[CheckoutStep, str] = {
    CheckoutStep.STARTED: "start",
    CheckoutStep.BUYER_INFO: "buyer-info",
    CheckoutStep.DELIVERY: "delivery",
    CheckoutStep.PAYMENT: "payment",
    CheckoutStep.REVIEW: "review",
    CheckoutStep.CONFIRMED: "confirmation",
}


def path_for_step(step: CheckoutStep) -> str:
    """Return the navigation path of a happy-path step.

    Raises:
        ValueError: If ``step`` is an outcome without its own view.
    """
    segment = _STEP_PATHS.get(step)
    if segment is None:
        raise ValueError(f"Step '{step.value}' has no checkout view")
    return f"{CHECKOUT_PATH_PREFIX}/{segment}"


@dataclass(frozen=True)
class AccessDecision:
    """Base class for the outcome of a step access check."""

    @property
    def allowed(self) -> bool:
        return False


@dataclass(frozen=True)
class Allow(AccessDecision):
    """The requested step may be shown."""

    @property
    def allowed(self) -> bool:
        return True


@dataclass(frozen=True)
class RedirectTo(AccessDecision):
    """The buyer must be sent elsewhere.

    Attributes:
        step: Target step, or ``None`` to send the buyer back to the cart.
    """

    step: CheckoutStep | None = None

    @property
    def to_cart(self) -> bool:
        return self.step is None

    @property
    def path(self) -> str:
        if self.step is None:
            return CART_PATH
        return path_for_step(self.step)


class StepAccessValidator:
    """Decides whether a session may view a requested step."""

    def validate_access(
        self,
        session: CheckoutSession | None,
        requested_step: CheckoutStep,
    ) -> AccessDecision:
        """Decide whether ``requested_step`` may be shown for ``session``.

        Rules, first match wins:

        1. No session: back to the cart.
        2. Terminal session: only the confirmation view is shown; every
           other request is redirected there.
        3. Requested step after the current one: redirect to the current
           step.
        4. Otherwise the step may be shown.

        Raises:
            ValueError: If ``requested_step`` is an outcome (COMPLETED,
                ABANDONED, EXPIRED) rather than a viewable step.
        """
        if not requested_step.is_ranked():
            raise ValueError(f"Step '{requested_step.value}' is not a viewable checkout step")

        if session is None:
            return RedirectTo()

        if session.is_terminal:
            if requested_step == CheckoutStep.CONFIRMED:
                return Allow()
            return RedirectTo(CheckoutStep.CONFIRMED)

        if requested_step.is_after(session.current_step):
            return RedirectTo(session.current_step)

        return Allow()


_default_validator = StepAccessValidator()


def validate_access(
    session: CheckoutSession | None,
    requested_step: CheckoutStep,
) -> AccessDecision:
    """Module-level shortcut for :meth:`StepAccessValidator.validate_access`."""
    return _default_validator.validate_access(session, requested_step)


def current_step_path(session: CheckoutSession | None) -> str:
    """Path the buyer should land on to resume ``session``."""
    if session is None:
        return CART_PATH
    if session.is_terminal:
        return path_for_step(CheckoutStep.CONFIRMED)
    return path_for_step(session.current_step)
