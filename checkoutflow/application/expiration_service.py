"""Expiration of idle checkout sessions.

Runs independently of buyer requests. Expiring is idempotent and
re-checks idleness on a freshly loaded copy, so a sweep racing a buyer's
transition either loses the version check or finds the session active
again; both cases are skipped.
"""

import asyncio
from datetime import timedelta

import structlog

from checkoutflow.application.event_dispatcher import EventDispatcher
from checkoutflow.application.ports import CheckoutSessionRepository
from checkoutflow.domain.clock import Clock, SystemClock
from checkoutflow.domain.entities import DEFAULT_IDLE_TIMEOUT
from checkoutflow.domain.exceptions import ConcurrentModificationError

logger = structlog.get_logger()


class ExpirationSweeper:
    """Expires sessions that have been idle for too long."""

    def __init__(
        self,
        repository: CheckoutSessionRepository,
        dispatcher: EventDispatcher | None = None,
        clock: Clock | None = None,
        idle_timeout: timedelta = DEFAULT_IDLE_TIMEOUT,
    ) -> None:
        self.repository = repository
        self.dispatcher = dispatcher or EventDispatcher()
        self.clock = clock or SystemClock()
        self.idle_timeout = idle_timeout

    async def sweep_once(self) -> int:
        """Expire every currently idle session.

        Returns:
            Number of sessions expired by this sweep.
        """
        now = self.clock.now()
        candidates = self.repository.find_expired_sessions(now, self.idle_timeout)
        expired = 0

        for session in candidates:
            if not session.expire(now=now, idle_timeout=self.idle_timeout):
                continue
            try:
                self.repository.save(session)
            except ConcurrentModificationError:
                logger.info(
                    "Skipping session modified during sweep",
                    session_id=str(session.id),
                )
                continue

            await self.dispatcher.dispatch(session.drain_events())
            expired += 1
            logger.info(
                "Checkout session expired",
                session_id=str(session.id),
                expired_at_step=session.closed_at_step.value,
            )

        if candidates:
            logger.info("Expiration sweep finished", candidates=len(candidates), expired=expired)
        return expired

    async def run(self, interval_seconds: float, stop_event: asyncio.Event) -> None:
        """Sweep every ``interval_seconds`` until ``stop_event`` is set."""
        logger.info("Expiration sweeper started", interval_seconds=interval_seconds)
        while not stop_event.is_set():
            try:
                await self.sweep_once()
            except Exception as e:
                # One failed sweep must not stop the loop; the next one retries.
                logger.error("Expiration sweep failed", error=str(e), exc_info=True)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue
        logger.info("Expiration sweeper stopped")
