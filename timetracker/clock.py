"""
Clock -- injectable time source.

Ledgers and the settlement engine never call ``datetime.now()``
directly. The monthly rent rule and "today's earnings" depend on the
calendar day, so tests drive them with a DeterministicClock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta


class Clock(ABC):
    """Abstract clock interface."""

    @abstractmethod
    def now(self) -> datetime:
        """Current local time, timezone-aware."""
        ...

    def today(self) -> date:
        """Current local calendar day."""
        return self.now().date()


class SystemClock(Clock):
    """Production clock returning the system's local time."""

    def now(self) -> datetime:
        return datetime.now().astimezone()


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Time only moves when ``advance`` or ``set`` is called.
    """

    def __init__(self, fixed: datetime):
        self._current = fixed

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> datetime:
        self._current = self._current + delta
        return self._current

    def set(self, moment: datetime) -> None:
        self._current = moment
