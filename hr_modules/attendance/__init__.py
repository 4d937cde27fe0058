"""
Attendance Module (``hr_modules.attendance``).

Daily attendance records, manual attendance requests (MANUAL_ATTENDANCE
chain) and monthly overtime alerts.
"""

from hr_modules.attendance.hours import STANDARD_DAILY_HOURS, WorkedHours, compute_worked_hours
from hr_modules.attendance.orm import (
    AttendanceRecordModel,
    ManualAttendanceRequestModel,
    OvertimeAlertModel,
)
from hr_modules.attendance.overtime import (
    DEFAULT_THRESHOLDS,
    OVERTIME_ALERT_EVENT,
    OvertimeAlertService,
    OvertimeThreshold,
)
from hr_modules.attendance.service import AttendanceService, ManualAttendanceFlow

__all__ = [
    "AttendanceRecordModel",
    "AttendanceService",
    "DEFAULT_THRESHOLDS",
    "ManualAttendanceFlow",
    "ManualAttendanceRequestModel",
    "OVERTIME_ALERT_EVENT",
    "OvertimeAlertModel",
    "OvertimeAlertService",
    "OvertimeThreshold",
    "STANDARD_DAILY_HOURS",
    "WorkedHours",
    "compute_worked_hours",
]
