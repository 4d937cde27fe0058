"""
AttendanceService -- attendance records and manual attendance requests.

Responsibility:
    - ``record_attendance``: write a device attendance row directly (no
      approval).
    - ``submit_manual_attendance``: an employee who missed the device asks
      for a day to be recorded; the request goes through the
      MANUAL_ATTENDANCE chain and final approval creates the attendance row.

Invariants enforced:
    - One attendance row per employee per day (unique constraint, checked
      up front for a readable error).
    - At most one non-rejected manual request per employee per day.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_kernel.domain.approval import RequestType, TransStatus
from hr_kernel.exceptions import AttendanceAlreadyExistsError, BusinessRuleError
from hr_kernel.logging_config import get_logger
from hr_modules._helpers import ApprovalModuleService, load_employee
from hr_modules.attendance.hours import compute_worked_hours
from hr_modules.attendance.orm import AttendanceRecordModel, ManualAttendanceRequestModel
from hr_services.approval_gate import BaseApprovalFlow

logger = get_logger("modules.attendance")


def attendance_exists(session: Session, employee_no: int, attendance_date: date) -> bool:
    return (
        session.execute(
            select(AttendanceRecordModel.id).where(
                AttendanceRecordModel.employee_no == employee_no,
                AttendanceRecordModel.attendance_date == attendance_date,
            )
        ).first()
        is not None
    )


def build_attendance_record(
    employee_no: int,
    project_code: int | None,
    attendance_date: date,
    entry_time: time,
    exit_time: time,
    source: str,
    created_by: int,
    manual_request_id: UUID | None = None,
    notes: str | None = None,
) -> AttendanceRecordModel:
    hours = compute_worked_hours(attendance_date, entry_time, exit_time)
    return AttendanceRecordModel(
        employee_no=employee_no,
        project_code=project_code,
        attendance_date=attendance_date,
        entry_time=entry_time,
        exit_time=exit_time,
        exit_next_day=hours.exit_next_day,
        worked_hours=hours.worked_hours,
        overtime_hours=hours.overtime_hours,
        source=source,
        manual_request_id=manual_request_id,
        notes=notes,
        created_by=created_by,
    )


class ManualAttendanceFlow(BaseApprovalFlow):
    request_type = RequestType.MANUAL_ATTENDANCE
    entity_type = "ManualAttendanceRequest"
    event_prefix = "MANUAL_ATTENDANCE"
    model = ManualAttendanceRequestModel

    def finalize(
        self,
        session: Session,
        entity: ManualAttendanceRequestModel,
        actor_no: int,
        now: datetime,
    ) -> None:
        if attendance_exists(session, entity.employee_no, entity.attendance_date):
            raise AttendanceAlreadyExistsError(entity.employee_no, entity.attendance_date)
        record = build_attendance_record(
            employee_no=entity.employee_no,
            project_code=entity.project_code,
            attendance_date=entity.attendance_date,
            entry_time=entity.entry_time,
            exit_time=entity.exit_time,
            source="MANUAL",
            created_by=actor_no,
            manual_request_id=entity.id,
            notes=entity.reason,
        )
        session.add(record)
        logger.info(
            "manual_attendance_recorded",
            extra={
                "employee_no": entity.employee_no,
                "attendance_date": entity.attendance_date.isoformat(),
                "worked_hours": str(record.worked_hours),
                "overtime_hours": str(record.overtime_hours),
            },
        )

    def notification_variables(self, entity: ManualAttendanceRequestModel) -> dict[str, Any]:
        return {
            "attendance_date": entity.attendance_date,
            "entry_time": entity.entry_time.isoformat(timespec="minutes"),
            "exit_time": entity.exit_time.isoformat(timespec="minutes"),
        }


class AttendanceService(ApprovalModuleService):
    flow = ManualAttendanceFlow()

    def record_attendance(
        self,
        employee_no: int,
        attendance_date: date,
        entry_time: time,
        exit_time: time,
        actor_no: int,
        project_code: int | None = None,
    ) -> AttendanceRecordModel:
        try:
            employee = load_employee(self._session, employee_no)
            if attendance_exists(self._session, employee_no, attendance_date):
                raise AttendanceAlreadyExistsError(employee_no, attendance_date)
            record = build_attendance_record(
                employee_no=employee_no,
                project_code=project_code if project_code is not None else employee.primary_project_code,
                attendance_date=attendance_date,
                entry_time=entry_time,
                exit_time=exit_time,
                source="DEVICE",
                created_by=actor_no,
            )
            self._session.add(record)
            self._session.commit()
            return record
        except Exception:
            self._session.rollback()
            raise

    def submit_manual_attendance(
        self,
        employee_no: int,
        attendance_date: date,
        entry_time: time,
        exit_time: time,
        reason: str | None = None,
        requested_by: int | None = None,
    ) -> ManualAttendanceRequestModel:
        if entry_time == exit_time:
            raise BusinessRuleError("Entry and exit time must differ")
        employee = load_employee(self._session, employee_no)
        if not employee.is_active:
            raise BusinessRuleError(f"Employee {employee_no} is not active")
        if attendance_exists(self._session, employee_no, attendance_date):
            raise AttendanceAlreadyExistsError(employee_no, attendance_date)
        open_request = self._session.execute(
            select(ManualAttendanceRequestModel.id).where(
                ManualAttendanceRequestModel.employee_no == employee_no,
                ManualAttendanceRequestModel.attendance_date == attendance_date,
                ManualAttendanceRequestModel.trans_status != TransStatus.REJECTED.value,
            )
        ).first()
        if open_request is not None:
            raise BusinessRuleError(
                f"A manual attendance request for employee {employee_no} on "
                f"{attendance_date} is already pending or approved"
            )

        requester = requested_by if requested_by is not None else employee_no
        request = ManualAttendanceRequestModel(
            employee_no=employee_no,
            department_code=employee.department_code,
            project_code=employee.primary_project_code,
            attendance_date=attendance_date,
            entry_time=entry_time,
            exit_time=exit_time,
            reason=reason,
            requested_by=requester,
            created_by=requester,
        )
        return self._submit(request)

    def get_manual_request(self, request_id: UUID) -> ManualAttendanceRequestModel:
        return self.get(request_id)
