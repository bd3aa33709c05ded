"""
Clock -- injectable source of "now".

Responsibility:
    Services never call ``datetime.now()`` themselves.  The injected clock
    decides the default ``as_of`` of stock reads, the ``occurred_at`` of
    movements written by reconciliation, and work order start and end times.

Architecture position:
    Kernel > Domain.  SystemClock is the only place that reads wall time.

Invariants:
    Every clock returns timezone-aware UTC datetimes, so they compare
    directly with the UTC values stored on movements.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):
    """Constructor-injected time source for services."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current instant as an aware UTC datetime."""


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Stays on the same instant across calls, so several movements recorded
    in one test step share an ``occurred_at`` and are ordered by ``seq``.
    """

    def __init__(self, start: datetime | None = None):
        self._current = _as_utc(start or DEFAULT_TEST_TIME)

    def now(self) -> datetime:
        return self._current

    def set_time(self, value: datetime) -> None:
        self._current = _as_utc(value)

    def advance(self, seconds: float | timedelta = 1) -> datetime:
        """Move forward and return the new instant."""
        step = seconds if isinstance(seconds, timedelta) else timedelta(seconds=seconds)
        if step < timedelta(0):
            raise ValueError("DeterministicClock cannot move backwards; use set_time()")
        self._current += step
        return self._current
