"""
OvertimeAlertService -- monthly overtime threshold alerts.

Responsibility:
    Sums each employee's overtime hours for a month from
    ``attendance_records`` and, when a threshold is crossed, records an
    ``overtime_alerts`` row and queues one OVERTIME_ALERT notification per
    recipient: the employee's direct manager when there is one, and every
    active holder of the alert roles (HR, finance and general manager).

    Thresholds are checked highest first; an employee already past the
    urgent threshold gets the urgent alert only.

Invariants enforced:
    - At most one alert per (employee, month, threshold), across job runs
      and concurrent workers.  The unique key is the arbiter: a losing
      insert is rolled back to its savepoint and reported as "already
      alerted".
    - Outbox rows are written only when the alert row was inserted, one
      per distinct recipient.  An employee without a direct manager still
      reaches the role holders.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hr_kernel.db.base import SYSTEM_ACTOR_NO
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.logging_config import get_logger
from hr_kernel.services.organization_directory import SqlOrganizationDirectory
from hr_modules._helpers import load_employee, month_bounds, month_key
from hr_modules.attendance.orm import AttendanceRecordModel, OvertimeAlertModel
from hr_services.notifications import NotificationOutbox, NotificationPriority

logger = get_logger("modules.attendance.overtime")


@dataclass(frozen=True)
class OvertimeThreshold:
    hours: int
    priority: NotificationPriority


DEFAULT_THRESHOLDS: tuple[OvertimeThreshold, ...] = (
    OvertimeThreshold(30, NotificationPriority.HIGH),
    OvertimeThreshold(50, NotificationPriority.URGENT),
)

OVERTIME_ALERT_EVENT = "OVERTIME_ALERT"

ALERT_ROLES: tuple[str, ...] = ("HR_MANAGER", "FINANCE_MANAGER", "GENERAL_MANAGER")


class OvertimeAlertService:
    """
    Threshold checks over monthly overtime totals.

    Contract:
        Methods flush but never commit; the caller (a batch task or a
        service method) owns the transaction.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        outbox: NotificationOutbox | None = None,
        thresholds: tuple[OvertimeThreshold, ...] = DEFAULT_THRESHOLDS,
        alert_roles: tuple[str, ...] = ALERT_ROLES,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._outbox = outbox or NotificationOutbox(session, self._clock)
        self._thresholds = tuple(sorted(thresholds, key=lambda t: t.hours, reverse=True))
        self._alert_roles = tuple(alert_roles)
        self._directory = SqlOrganizationDirectory(session)

    @property
    def lowest_threshold(self) -> int:
        return self._thresholds[-1].hours

    def monthly_overtime(self, year: int, month: int) -> dict[int, Decimal]:
        """Overtime hours per employee for the month (employees with any)."""
        start, end = month_bounds(year, month)
        rows = self._session.execute(
            select(
                AttendanceRecordModel.employee_no,
                func.sum(AttendanceRecordModel.overtime_hours),
            )
            .where(
                AttendanceRecordModel.attendance_date >= start,
                AttendanceRecordModel.attendance_date <= end,
            )
            .group_by(AttendanceRecordModel.employee_no)
            .having(func.sum(AttendanceRecordModel.overtime_hours) > 0)
        ).all()
        return {employee_no: Decimal(str(total)) for employee_no, total in rows}

    def threshold_for(self, overtime_hours: Decimal) -> OvertimeThreshold | None:
        for threshold in self._thresholds:
            if overtime_hours >= threshold.hours:
                return threshold
        return None

    def recipients_for(self, direct_manager_no: int | None) -> tuple[int, ...]:
        """Direct manager first, then the role holders, without repeats."""
        candidates = [direct_manager_no] if direct_manager_no is not None else []
        for role in self._alert_roles:
            candidates.extend(self._directory.role_holders(role))
        return tuple(dict.fromkeys(candidates))

    def check_employee(
        self, employee_no: int, year: int, month: int, overtime_hours: Decimal
    ) -> OvertimeAlertModel | None:
        """
        Record and announce the highest crossed threshold.

        Returns the new alert row, or None when no threshold is crossed or
        the alert was already recorded.
        """
        threshold = self.threshold_for(overtime_hours)
        if threshold is None:
            return None

        alert_month = month_key(year, month)
        if self._already_alerted(employee_no, alert_month, threshold.hours):
            return None

        employee = load_employee(self._session, employee_no)
        alert = OvertimeAlertModel(
            employee_no=employee_no,
            alert_month=alert_month,
            threshold_hours=threshold.hours,
            overtime_hours=overtime_hours,
            priority=threshold.priority.value,
            recipient_employee_no=employee.direct_manager_no,
            alerted_at=self._clock.now(),
            created_by=SYSTEM_ACTOR_NO,
        )

        savepoint = self._session.begin_nested()
        try:
            self._session.add(alert)
            self._session.flush()
            savepoint.commit()
        except IntegrityError:
            savepoint.rollback()
            logger.debug(
                "overtime_alert_race_lost",
                extra={
                    "employee_no": employee_no,
                    "alert_month": alert_month,
                    "threshold_hours": threshold.hours,
                },
            )
            return None

        recipients = self.recipients_for(employee.direct_manager_no)
        for recipient_no in recipients:
            self._outbox.enqueue(
                event_type=OVERTIME_ALERT_EVENT,
                recipient_employee_no=recipient_no,
                priority=threshold.priority,
                entity_type="OvertimeAlert",
                entity_id=str(alert.id),
                variables={
                    "employee_no": employee_no,
                    "employee_name": employee.name,
                    "alert_month": alert_month,
                    "threshold_hours": threshold.hours,
                    "overtime_hours": overtime_hours,
                },
                actor_no=SYSTEM_ACTOR_NO,
            )
        if not recipients:
            logger.warning(
                "overtime_alert_without_recipients",
                extra={"employee_no": employee_no, "alert_month": alert_month},
            )
        self._session.flush()
        logger.info(
            "overtime_alert_raised",
            extra={
                "employee_no": employee_no,
                "alert_month": alert_month,
                "threshold_hours": threshold.hours,
                "overtime_hours": str(overtime_hours),
                "priority": threshold.priority.value,
                "recipient_employee_no": employee.direct_manager_no,
                "recipients": list(recipients),
            },
        )
        return alert

    def check_month(self, year: int, month: int) -> list[OvertimeAlertModel]:
        """Check every employee with overtime in the month."""
        alerts = []
        for employee_no, hours in sorted(self.monthly_overtime(year, month).items()):
            alert = self.check_employee(employee_no, year, month, hours)
            if alert is not None:
                alerts.append(alert)
        return alerts

    def _already_alerted(self, employee_no: int, alert_month: str, threshold_hours: int) -> bool:
        return (
            self._session.execute(
                select(OvertimeAlertModel.id).where(
                    OvertimeAlertModel.employee_no == employee_no,
                    OvertimeAlertModel.alert_month == alert_month,
                    OvertimeAlertModel.threshold_hours == threshold_hours,
                )
            ).first()
            is not None
        )
