"""
Clock -- the single source of "now" for the trade recorder.

Responsibility:
    Services never call ``datetime.now()`` or ``date.today()``.  The booking
    date embedded in trade references, "today" for trade-date validation and
    every created_at/updated_at/audit_timestamp come from one injected Clock,
    so a request sees one consistent time and tests can pin it.

Invariants enforced:
    - ``now()`` is timezone-aware UTC.
    - ``today()`` is the UTC calendar date, so the reference date does not
      depend on the host's local timezone.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from threading import Lock

_EPOCH_FOR_TESTS = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Injectable time source."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """UTC booking date of ``now()``."""
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Shared by every worker thread in the concurrency tests, so all reads and
    moves go through a lock.  ``advance(24 * 3600)`` rolls the booking date
    to the next day.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or _EPOCH_FOR_TESTS
        self._lock = Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._current

    def set_time(self, moment: datetime) -> None:
        with self._lock:
            self._current = moment

    def advance(self, seconds: float = 1) -> None:
        with self._lock:
            self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move one second forward and return the new time."""
        with self._lock:
            self._current += timedelta(seconds=1)
            return self._current
