"""In-memory checkout session repository.

Sessions are stored as deep copies, so no two callers ever share an
aggregate instance. ``save`` is atomic and performs a version
compare-and-swap: the stored version must equal the version the caller
loaded (``persisted_version``), otherwise the save is rejected.
"""

import threading
from copy import deepcopy
from datetime import datetime, timedelta

import structlog

from checkoutflow.application.ports import CheckoutSessionRepository
from checkoutflow.domain.entities import DEFAULT_IDLE_TIMEOUT, CheckoutSession
from checkoutflow.domain.exceptions import ConcurrentModificationError
from checkoutflow.domain.value_objects import CartId, CheckoutSessionId, CustomerId

logger = structlog.get_logger()


class InMemoryCheckoutSessionRepository(CheckoutSessionRepository):
    """Thread-safe in-memory repository for checkout sessions."""

    def __init__(self) -> None:
        self._sessions: dict[CheckoutSessionId, CheckoutSession] = {}
        self._lock = threading.Lock()

    def save(self, session: CheckoutSession) -> None:
        snapshot = deepcopy(session)
        snapshot.drain_events()
        snapshot.persisted_version = snapshot.version

        with self._lock:
            stored = self._sessions.get(session.id)
            stored_version = stored.version if stored is not None else None
            if stored_version != session.persisted_version:
                logger.warning(
                    "Rejected stale checkout session save",
                    session_id=str(session.id),
                    expected_version=session.persisted_version,
                    actual_version=stored_version,
                )
                raise ConcurrentModificationError(
                    str(session.id),
                    expected_version=session.persisted_version,
                    actual_version=stored_version,
                )
            self._sessions[session.id] = snapshot

        session.persisted_version = session.version

    def find_by_id(self, session_id: CheckoutSessionId) -> CheckoutSession | None:
        with self._lock:
            stored = self._sessions.get(session_id)
        return deepcopy(stored) if stored is not None else None

    def find_by_cart_id(self, cart_id: CartId) -> CheckoutSession | None:
        sessions = self._select(lambda s: s.cart_id == cart_id and not s.is_terminal)
        return sessions[0] if sessions else None

    def find_all_by_cart_id(self, cart_id: CartId) -> list[CheckoutSession]:
        return self._select(lambda s: s.cart_id == cart_id)

    def find_active_by_customer_id(self, customer_id: CustomerId) -> list[CheckoutSession]:
        return self._select(lambda s: s.customer_id == customer_id and not s.is_terminal)

    def find_expired_sessions(
        self,
        now: datetime,
        idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT,
    ) -> list[CheckoutSession]:
        return self._select(lambda s: not s.is_terminal and s.is_idle(now, idle_timeout))

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _select(self, predicate) -> list[CheckoutSession]:
        with self._lock:
            stored = list(self._sessions.values())
        matches = [deepcopy(s) for s in stored if predicate(s)]
        matches.sort(key=lambda s: s.created_at, reverse=True)
        return matches
