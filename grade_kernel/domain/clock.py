"""
Clock -- where the kernel gets "now" and "today".

Decision timestamps, resolution timestamps and the attachment directory all
come from ``Clock.now()``.  The current academic period is chosen with
``Clock.today()``, so the calendar date is taken in the clock's own
timezone rather than the server's.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only implementation that reads
    the real time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone, tzinfo

DEFAULT_TEST_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Injected into every service and handler that needs the time.

    ``now()`` is always timezone-aware.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in ``tz`` (UTC unless told otherwise)."""

    def __init__(self, tz: tzinfo | None = None):
        self.tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self.tz)


class DeterministicClock(Clock):
    """
    A clock that only moves when a test moves it.

    Starts at 2024-03-01 12:00 UTC unless another start is given.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, when: datetime) -> None:
        self._current = when

    def advance(self, seconds: float = 0, *, days: int = 0) -> datetime:
        """Move forward and return the new time."""
        self._current += timedelta(days=days, seconds=seconds)
        return self._current
