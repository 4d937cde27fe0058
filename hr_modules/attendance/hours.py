"""Worked and overtime hour arithmetic for a single attendance day."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal

STANDARD_DAILY_HOURS = Decimal("8")
HUNDREDTH = Decimal("0.01")


@dataclass(frozen=True)
class WorkedHours:
    exit_next_day: bool
    worked_hours: Decimal
    overtime_hours: Decimal


def compute_worked_hours(
    attendance_date: date,
    entry_time: time,
    exit_time: time,
    standard_hours: Decimal = STANDARD_DAILY_HOURS,
) -> WorkedHours:
    """
    Hours between entry and exit.  An exit at or before the entry time is
    taken to be on the following day (overnight shift).
    """
    entry = datetime.combine(attendance_date, entry_time)
    exit_ = datetime.combine(attendance_date, exit_time)
    next_day = exit_ <= entry
    if next_day:
        exit_ += timedelta(days=1)

    seconds = Decimal(int((exit_ - entry).total_seconds()))
    worked = (seconds / Decimal(3600)).quantize(HUNDREDTH, rounding=ROUND_HALF_UP)
    overtime = max(worked - standard_hours, Decimal("0")).quantize(HUNDREDTH)
    return WorkedHours(exit_next_day=next_day, worked_hours=worked, overtime_hours=overtime)
