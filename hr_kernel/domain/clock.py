"""
Time sources.

Approval stamps, request age for the auto-approval sweep, payroll months
and overtime buckets all read the time from an injected ``Clock``;
``SystemClock`` is the only place that asks the operating system.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    @abstractmethod
    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen time for tests and batch runs.

    A batch job hands each task ``DeterministicClock(as_of)`` so every row
    it stamps carries the job's start time.
    """

    def __init__(self, at: datetime | None = None):
        self._at = at or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._at

    def advance(self, seconds: float = 0, **delta: float) -> datetime:
        """Move forward by ``seconds`` plus any ``timedelta`` keywords (``hours=49``)."""
        self._at += timedelta(seconds=seconds, **delta)
        return self._at
