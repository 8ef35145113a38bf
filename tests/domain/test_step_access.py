"""Tests for step access decisions."""

from collections.abc import Callable
from datetime import datetime, timedelta

import pytest

from checkoutflow.domain.entities import CheckoutSession
from checkoutflow.domain.state_machines import CheckoutStep, ranked_steps
from checkoutflow.domain.step_access import (
    Allow,
    RedirectTo,
    StepAccessValidator,
    current_step_path,
    path_for_step,
    validate_access,
)

SessionAt = Callable[[CheckoutStep], CheckoutSession]


@pytest.fixture
def validator() -> StepAccessValidator:
    return StepAccessValidator()


class TestValidateAccess:
    """Tests for StepAccessValidator.validate_access."""

    def test_skipping_ahead_redirects_to_current(
        self, validator: StepAccessValidator, session_at: SessionAt
    ) -> None:
        session = session_at(CheckoutStep.DELIVERY)

        assert validator.validate_access(session, CheckoutStep.PAYMENT) == RedirectTo(
            CheckoutStep.DELIVERY
        )

    def test_going_back_is_allowed(
        self, validator: StepAccessValidator, session_at: SessionAt
    ) -> None:
        session = session_at(CheckoutStep.DELIVERY)

        assert validator.validate_access(session, CheckoutStep.BUYER_INFO) == Allow()

    def test_current_step_is_allowed(
        self, validator: StepAccessValidator, session_at: SessionAt
    ) -> None:
        session = session_at(CheckoutStep.PAYMENT)
        assert validator.validate_access(session, CheckoutStep.PAYMENT).allowed

    def test_missing_session_redirects_to_cart(self, validator: StepAccessValidator) -> None:
        decision = validator.validate_access(None, CheckoutStep.BUYER_INFO)

        assert decision == RedirectTo()
        assert decision.to_cart
        assert decision.path == "/cart"

    def test_terminal_session_redirects_to_confirmation(
        self, validator: StepAccessValidator, session_at: SessionAt
    ) -> None:
        session = session_at(CheckoutStep.DELIVERY)
        session.abandon()

        decision = validator.validate_access(session, CheckoutStep.BUYER_INFO)

        assert decision == RedirectTo(CheckoutStep.CONFIRMED)
        assert decision.path == "/checkout/confirmation"

    def test_terminal_session_may_view_confirmation(
        self, validator: StepAccessValidator, session: CheckoutSession, now: datetime
    ) -> None:
        session.expire(now=now + timedelta(hours=1))

        assert validator.validate_access(session, CheckoutStep.CONFIRMED) == Allow()

    @pytest.mark.parametrize(
        "requested", [CheckoutStep.COMPLETED, CheckoutStep.ABANDONED, CheckoutStep.EXPIRED]
    )
    def test_outcomes_are_not_viewable(
        self,
        validator: StepAccessValidator,
        session: CheckoutSession,
        requested: CheckoutStep,
    ) -> None:
        with pytest.raises(ValueError):
            validator.validate_access(session, requested)

    @pytest.mark.parametrize("current", ranked_steps()[:-1])
    def test_never_allows_a_later_step(self, session_at: SessionAt, current: CheckoutStep) -> None:
        """For every open step, no later step is ever allowed."""
        session = session_at(current)
        for requested in ranked_steps():
            decision = validate_access(session, requested)
            if requested.is_after(current):
                assert decision == RedirectTo(current)
            else:
                assert decision == Allow()

    def test_validation_does_not_change_session(
        self, validator: StepAccessValidator, session_at: SessionAt
    ) -> None:
        session = session_at(CheckoutStep.BUYER_INFO)
        version = session.version

        validator.validate_access(session, CheckoutStep.REVIEW)

        assert session.current_step == CheckoutStep.BUYER_INFO
        assert session.version == version
        assert session.pending_events == []


class TestPaths:
    """Tests for navigation paths."""

    def test_step_paths(self) -> None:
        assert path_for_step(CheckoutStep.BUYER_INFO) == "/checkout/buyer-info"
        assert RedirectTo(CheckoutStep.DELIVERY).path == "/checkout/delivery"

    def test_outcome_has_no_path(self) -> None:
        with pytest.raises(ValueError):
            path_for_step(CheckoutStep.ABANDONED)

    def test_current_step_path(self, session_at: SessionAt) -> None:
        assert current_step_path(None) == "/cart"
        session = session_at(CheckoutStep.PAYMENT)
        assert current_step_path(session) == "/checkout/payment"
        session.abandon()
        assert current_step_path(session) == "/checkout/confirmation"
