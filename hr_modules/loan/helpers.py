"""Installment schedule arithmetic for loans."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_DOWN, Decimal

from hr_kernel.exceptions import InvalidLoanRequestError

CENT = Decimal("0.01")


@dataclass(frozen=True)
class ScheduledInstallment:
    installment_no: int
    due_date: date
    amount: Decimal


def add_months(start: date, months: int) -> date:
    """Same day-of-month ``months`` later, clamped to the month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def build_installment_schedule(
    principal: Decimal, count: int, first_due_date: date
) -> list[ScheduledInstallment]:
    """
    Split ``principal`` into ``count`` monthly installments.

    Every installment but the last is ``principal / count`` rounded down
    to cents; the last one carries the remainder, so it is never smaller
    than the others and the schedule sums to the principal exactly.  Due
    dates are computed from ``first_due_date`` (not chained), so a 31st
    start date does not drift after February.
    """
    if count < 1:
        raise InvalidLoanRequestError(f"Installment count must be at least 1, got {count}")
    principal = Decimal(principal)
    if principal != principal.quantize(CENT):
        raise InvalidLoanRequestError(
            f"Principal {principal} has more than 2 decimal places"
        )
    principal = principal.quantize(CENT)
    regular = (principal / count).quantize(CENT, rounding=ROUND_DOWN)
    if regular <= 0:
        raise InvalidLoanRequestError(
            f"Principal {principal} is too small for {count} installments"
        )
    last = principal - regular * (count - 1)

    return [
        ScheduledInstallment(
            installment_no=n,
            due_date=add_months(first_due_date, n - 1),
            amount=last if n == count else regular,
        )
        for n in range(1, count + 1)
    ]
