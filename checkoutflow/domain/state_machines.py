"""State machine for checkout sessions.

Defines the checkout steps, their explicit ordering and the legal step
transitions. Order is expressed as an integer rank per step rather than
enum declaration order, so reordering the enum cannot silently change
which transitions count as "skipping ahead".
"""

from enum import Enum

from checkoutflow.domain.exceptions import InvalidStepTransitionError


# ============================================================================
# Checkout Steps
# ============================================================================


class CheckoutStep(str, Enum):
    """Checkout session steps.

    State diagram:
        STARTED
          │ submit_buyer_info
          ▼
        BUYER_INFO ◄─┐ resubmit
          │ submit_delivery
          ▼
        DELIVERY ◄───┐ resubmit
          │ submit_payment
          ▼
        PAYMENT ◄────┐ resubmit
          │ enter_review      │
          ▼                   │ confirm
        REVIEW                │
          │ confirm           │
          ▼                   │
        CONFIRMED ◄───────────┘
          │ complete
          ▼
        COMPLETED

        Any non-terminal step ──abandon──► ABANDONED
        Any non-terminal step ──expire───► EXPIRED

    The six happy-path steps are totally ordered by rank. COMPLETED,
    ABANDONED and EXPIRED are absorbing outcomes without a rank.
    """

    STARTED = "started"
    BUYER_INFO = "buyer_info"
    DELIVERY = "delivery"
    PAYMENT = "payment"
    REVIEW = "review"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    EXPIRED = "expired"

    @property
    def rank(self) -> int | None:
        """Position in the happy path, or ``None`` for outcomes."""
        return _STEP_RANKS.get(self)

    def is_ranked(self) -> bool:
        """Check if this is one of the six ordered happy-path steps."""
        return self in _STEP_RANKS

    def is_terminal(self) -> bool:
        """Check if no further transitions are possible."""
        return len(_STEP_TRANSITIONS.get(self, set())) == 0

    def is_before(self, other: "CheckoutStep") -> bool:
        return _rank_of(self) < _rank_of(other)

    def is_after(self, other: "CheckoutStep") -> bool:
        return _rank_of(self) > _rank_of(other)

    def can_transition_to(self, target: "CheckoutStep") -> bool:
        return target in _STEP_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CheckoutStep"]:
        """Get valid target steps, ordered for stable error messages."""
        return sorted(_STEP_TRANSITIONS.get(self, set()), key=_sort_key)

    @property
    def status(self) -> "CheckoutSessionStatus":
        return _STEP_STATUS.get(self, CheckoutSessionStatus.ACTIVE)


class CheckoutSessionStatus(str, Enum):
    """Coarse lifecycle status derived from the current step."""

    ACTIVE = "active"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    EXPIRED = "expired"


_STEP_RANKS: dict[CheckoutStep, int] = {
    CheckoutStep.STARTED: 0,
    CheckoutStep.BUYER_INFO: 1,
    CheckoutStep.DELIVERY: 2,
    CheckoutStep.PAYMENT: 3,
    CheckoutStep.REVIEW: 4,
    CheckoutStep.CONFIRMED: 5,
}

_CLOSING_STEPS = {CheckoutStep.ABANDONED, CheckoutStep.EXPIRED}

# Step transitions (defined outside enum to avoid Enum restrictions).
# Self-transitions are resubmissions of the current step.
_STEP_TRANSITIONS: dict[CheckoutStep, set[CheckoutStep]] = {
    CheckoutStep.STARTED: {CheckoutStep.BUYER_INFO, *_CLOSING_STEPS},
    CheckoutStep.BUYER_INFO: {CheckoutStep.BUYER_INFO, CheckoutStep.DELIVERY, *_CLOSING_STEPS},
    CheckoutStep.DELIVERY: {CheckoutStep.DELIVERY, CheckoutStep.PAYMENT, *_CLOSING_STEPS},
    CheckoutStep.PAYMENT: {
        CheckoutStep.PAYMENT,
        CheckoutStep.REVIEW,
        CheckoutStep.CONFIRMED,
        *_CLOSING_STEPS,
    },
    CheckoutStep.REVIEW: {CheckoutStep.REVIEW, CheckoutStep.CONFIRMED, *_CLOSING_STEPS},
    CheckoutStep.CONFIRMED: {CheckoutStep.COMPLETED, *_CLOSING_STEPS},
    CheckoutStep.COMPLETED: set(),  # Terminal state
    CheckoutStep.ABANDONED: set(),  # Terminal state
    CheckoutStep.EXPIRED: set(),  # Terminal state
}

_STEP_STATUS: dict[CheckoutStep, CheckoutSessionStatus] = {
    CheckoutStep.CONFIRMED: CheckoutSessionStatus.CONFIRMED,
    CheckoutStep.COMPLETED: CheckoutSessionStatus.COMPLETED,
    CheckoutStep.ABANDONED: CheckoutSessionStatus.ABANDONED,
    CheckoutStep.EXPIRED: CheckoutSessionStatus.EXPIRED,
}


def _rank_of(step: CheckoutStep) -> int:
    rank = _STEP_RANKS.get(step)
    if rank is None:
        raise ValueError(f"Step '{step.value}' is an outcome and has no position in the step order")
    return rank


def _sort_key(step: CheckoutStep) -> tuple[int, str]:
    rank = _STEP_RANKS.get(step)
    return (rank if rank is not None else len(_STEP_RANKS), step.value)


def ranked_steps() -> list[CheckoutStep]:
    """Happy-path steps in order."""
    return sorted(_STEP_RANKS, key=_STEP_RANKS.__getitem__)


# ============================================================================
# State Machine Helpers
# ============================================================================


def validate_step_transition(
    session_id: str,
    current_step: CheckoutStep,
    target_step: CheckoutStep,
) -> None:
    """Validate and raise if a checkout step transition is invalid.

    Args:
        session_id: Session identifier for error message.
        current_step: Current step.
        target_step: Step the caller wants to move to.

    Raises:
        InvalidStepTransitionError: If transition is not valid.
    """
    if not current_step.can_transition_to(target_step):
        raise InvalidStepTransitionError(
            session_id=session_id,
            from_step=current_step.value,
            attempted_step=target_step.value,
            allowed_steps=[s.value for s in current_step.allowed_transitions()],
        )
