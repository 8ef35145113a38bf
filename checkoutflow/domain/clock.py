"""Time sources.

The aggregate takes ``now`` as an argument; services ask a :class:`Clock`
for it so expiration can be tested without sleeping.
"""

from datetime import datetime, timedelta
from typing import Protocol

from checkoutflow.domain.base import utc_now


class Clock(Protocol):
    """Anything that can tell the current UTC time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock."""

    def now(self) -> datetime:
        return utc_now()


class FixedClock:
    """Manually driven clock for tests and simulations."""

    def __init__(self, now: datetime | None = None) -> None:
        self._now = now or utc_now()

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, delta: timedelta) -> datetime:
        """Move the clock forward and return the new time."""
        self._now = self._now + delta
        return self._now
