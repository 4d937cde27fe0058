"""
Batch task: monthly overtime alert scan.

Parameters:
    year, month -- the month to scan.  Default: the month of ``as_of``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from hr_batch.domain.types import BatchItemStatus
from hr_batch.tasks.base import BatchItemInput, BatchTaskResult
from hr_kernel.domain.clock import DeterministicClock
from hr_kernel.exceptions import HrKernelError
from hr_modules.attendance.overtime import DEFAULT_THRESHOLDS, OvertimeAlertService, OvertimeThreshold


def _period(parameters: dict[str, Any], as_of: datetime) -> tuple[int, int]:
    return int(parameters.get("year", as_of.year)), int(parameters.get("month", as_of.month))


class OvertimeAlertTask:
    """One item per employee whose monthly overtime reaches a threshold."""

    def __init__(self, thresholds: tuple[OvertimeThreshold, ...] = DEFAULT_THRESHOLDS):
        self._thresholds = thresholds

    @property
    def task_type(self) -> str:
        return "attendance.overtime_alerts"

    @property
    def description(self) -> str:
        return "Alert direct managers about monthly overtime over threshold"

    def _service(self, session: Session, as_of: datetime) -> OvertimeAlertService:
        return OvertimeAlertService(
            session, DeterministicClock(as_of), thresholds=self._thresholds
        )

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        year, month = _period(parameters, as_of)
        service = self._service(session, as_of)
        totals = service.monthly_overtime(year, month)
        eligible = sorted(
            (employee_no, hours)
            for employee_no, hours in totals.items()
            if hours >= service.lowest_threshold
        )
        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=f"{employee_no}:{year:04d}-{month:02d}",
                payload={"employee_no": employee_no, "overtime_hours": str(hours)},
            )
            for i, (employee_no, hours) in enumerate(eligible)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        year, month = _period(parameters, as_of)
        try:
            alert = self._service(session, as_of).check_employee(
                item.payload["employee_no"],
                year,
                month,
                Decimal(item.payload["overtime_hours"]),
            )
        except HrKernelError as exc:
            return BatchTaskResult.from_error(BatchItemStatus.FAILED, exc)
        if alert is None:
            return BatchTaskResult(
                status=BatchItemStatus.SKIPPED,
                result_data={"reason": "already_alerted"},
            )
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={
                "alert_id": str(alert.id),
                "threshold_hours": alert.threshold_hours,
                "recipient_employee_no": alert.recipient_employee_no,
            },
        )
