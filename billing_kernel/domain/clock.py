"""
Injectable time source.

Whether a discount applies depends on "now". Engines take an explicit
``now`` or read it from a Clock handed to them; they never read the wall
clock directly, so a draft invoice priced in a test or replayed later sees
the same instant it was priced at.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to already be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current instant as an aware UTC datetime."""


class SystemClock(Clock):
    """Wall-clock time. The only place the engines' "now" touches the OS."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at a chosen instant until moved explicitly.

    Used by tests and by replays of a previously priced draft.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._now = as_utc(fixed_time or _DEFAULT_TEST_TIME)

    def now(self) -> datetime:
        return self._now

    def set_time(self, moment: datetime) -> None:
        self._now = as_utc(moment)

    def advance(self, seconds: float | None = None, **delta: float) -> None:
        """
        Move forward by ``seconds`` plus any timedelta keywords (days=, hours=...).

        With no arguments the clock moves one second.
        """
        if seconds is None:
            seconds = 0 if delta else 1
        self._now += timedelta(seconds=seconds, **delta)
