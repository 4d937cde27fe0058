"""
Attendance ORM Persistence Models (``hr_modules.attendance.orm``).

Tables:
    - ``attendance_records``: one row per employee per day, from a device
      feed or an approved manual request.
    - ``manual_attendance_requests``: MANUAL_ATTENDANCE chain requests.
    - ``overtime_alerts``: one row per (employee, month, threshold); the
      unique key makes the monthly alert idempotent across job runs and
      processes.
"""

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase
from hr_kernel.models.approval_tracking import ApprovalTrackedMixin, trans_status_check


class AttendanceRecordModel(TrackedBase):
    __tablename__ = "attendance_records"

    __table_args__ = (
        UniqueConstraint("employee_no", "attendance_date", name="uq_attendance_employee_date"),
        CheckConstraint("worked_hours >= 0", name="ck_attendance_records_worked_hours"),
        CheckConstraint("overtime_hours >= 0", name="ck_attendance_records_overtime_hours"),
        CheckConstraint("source IN ('DEVICE', 'MANUAL')", name="ck_attendance_records_source"),
        Index("idx_attendance_records_date", "attendance_date"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    entry_time: Mapped[time] = mapped_column(Time, nullable=False)
    exit_time: Mapped[time] = mapped_column(Time, nullable=False)
    # Exit falls on the calendar day after attendance_date.
    exit_next_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    worked_hours: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    source: Mapped[str] = mapped_column(String(10), nullable=False, default="DEVICE")
    manual_request_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("manual_attendance_requests.id"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecordModel {self.employee_no} {self.attendance_date} "
            f"worked={self.worked_hours} ot={self.overtime_hours}>"
        )


class ManualAttendanceRequestModel(ApprovalTrackedMixin, TrackedBase):
    __tablename__ = "manual_attendance_requests"

    __table_args__ = (
        trans_status_check("manual_attendance_requests"),
        Index("idx_manual_attendance_pending", "trans_status", "next_approval"),
        Index("idx_manual_attendance_employee_date", "employee_no", "attendance_date"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)
    entry_time: Mapped[time] = mapped_column(Time, nullable=False)
    exit_time: Mapped[time] = mapped_column(Time, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_by: Mapped[int] = mapped_column(BigInteger, nullable=False)

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    def __repr__(self) -> str:
        return (
            f"<ManualAttendanceRequestModel {self.employee_no} {self.attendance_date} "
            f"{self.entry_time}-{self.exit_time} [{self.trans_status}]>"
        )


class OvertimeAlertModel(TrackedBase):
    __tablename__ = "overtime_alerts"

    __table_args__ = (
        UniqueConstraint(
            "employee_no", "alert_month", "threshold_hours", name="uq_overtime_alert_key"
        ),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    alert_month: Mapped[str] = mapped_column(String(7), nullable=False)
    threshold_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    recipient_employee_no: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    alerted_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<OvertimeAlertModel {self.employee_no} {self.alert_month} "
            f">={self.threshold_hours}h [{self.priority}]>"
        )
