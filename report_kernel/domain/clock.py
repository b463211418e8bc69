"""
Clock -- Injectable source of the statement generation timestamp.

Responsibility:
    The renderer stamps every StatementData with ``generated_at``; that is
    the only wall-clock read in the engine.  Taking the clock as a
    constructor argument keeps rendering reproducible under test.

Architecture position:
    Kernel > Domain -- zero I/O except SystemClock, the one sanctioned
    boundary for time.

Invariants enforced:
    DETERMINISTIC_RENDERING -- with a DeterministicClock, rendering the same
    definition twice yields equal statements.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Source of UTC timestamps, injected into renderer and service."""

    @abstractmethod
    def now_utc(self) -> datetime:
        """Current time as a timezone-aware UTC ``datetime``."""

    def generated_at(self) -> str:
        """ISO 8601 timestamp for a rendered statement."""
        return self.now_utc().isoformat()


class SystemClock(Clock):
    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock frozen at ``fixed_time`` (default 2024-01-01 12:00 UTC).

    Time moves only through ``advance``, ``tick`` or ``set_time``.
    """

    DEFAULT_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        self._current = self._aware(fixed_time or self.DEFAULT_TIME)

    @staticmethod
    def _aware(value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")
        return value.astimezone(timezone.utc)

    def now_utc(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = self._aware(time)

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Advance by one second and return the new time."""
        self.advance(1)
        return self._current
