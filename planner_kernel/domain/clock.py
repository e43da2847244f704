"""
Clock -- the single source of "now" for the planner.

Responsibility:
    ``computed_at`` on the cached engine result and the timestamps on
    recalculation tasks are read from an injected Clock, so services never
    call ``datetime.now()`` themselves and tests can pin time.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place that reads the
    wall clock.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_DEFAULT_TEST_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Injectable time source.  ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Pinned clock for tests.

    Repeated ``now()`` calls return the same instant; ``tick()`` moves it
    forward explicitly.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or _DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def tick(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
