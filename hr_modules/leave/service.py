"""
LeaveService -- employee leave requests (request type VAC).

Responsibility:
    Validates and submits leave requests, routes them through the approval
    gate and, on final approval, deducts the requested days from the
    employee's leave balance.

Invariants enforced:
    - The balance is checked at submission and again under an employee row
      lock at finalization; it never goes negative.
    - The deduction happens once per request (``balance_deducted``).

Failure modes:
    - InvalidLeaveRequestError: bad dates or non-positive days.
    - InsufficientLeaveBalanceError: balance lower than requested days.
    - EntityNotFoundError: unknown employee or request.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from hr_kernel.domain.approval import RequestType
from hr_kernel.exceptions import InsufficientLeaveBalanceError, InvalidLeaveRequestError
from hr_kernel.logging_config import get_logger
from hr_modules._helpers import ApprovalModuleService, load_employee
from hr_modules.leave.orm import LeaveRequestModel
from hr_services.approval_gate import BaseApprovalFlow

logger = get_logger("modules.leave")


class LeaveFlow(BaseApprovalFlow):
    request_type = RequestType.LEAVE
    entity_type = "LeaveRequest"
    event_prefix = "LEAVE"
    model = LeaveRequestModel

    def finalize(
        self, session: Session, entity: LeaveRequestModel, actor_no: int, now: datetime
    ) -> None:
        if entity.balance_deducted:
            return
        employee = load_employee(session, entity.employee_no, for_update=True)
        if employee.leave_balance_days < entity.days:
            raise InsufficientLeaveBalanceError(
                entity.employee_no, entity.days, employee.leave_balance_days
            )
        employee.leave_balance_days = employee.leave_balance_days - entity.days
        employee.updated_by = actor_no
        entity.balance_deducted = True
        logger.info(
            "leave_balance_deducted",
            extra={
                "employee_no": entity.employee_no,
                "days": str(entity.days),
                "remaining_balance": str(employee.leave_balance_days),
            },
        )

    def notification_variables(self, entity: LeaveRequestModel) -> dict[str, Any]:
        return {
            "leave_type": entity.leave_type,
            "start_date": entity.start_date,
            "end_date": entity.end_date,
            "days": entity.days,
        }


class LeaveService(ApprovalModuleService):
    """Leave request submission plus the shared approval operations."""

    flow = LeaveFlow()

    def submit_leave(
        self,
        employee_no: int,
        start_date: date,
        end_date: date,
        leave_type: str = "ANNUAL",
        reason: str | None = None,
        days: Decimal | None = None,
        project_code: int | None = None,
    ) -> LeaveRequestModel:
        """
        Create a leave request and compute its first approval level.

        ``days`` defaults to the inclusive calendar-day span.  The request's
        project defaults to the employee's primary project.
        """
        if end_date < start_date:
            raise InvalidLeaveRequestError(
                f"Leave end date {end_date} is before start date {start_date}"
            )
        if days is None:
            days = Decimal((end_date - start_date).days + 1)
        days = Decimal(days)
        if days <= 0:
            raise InvalidLeaveRequestError(f"Leave days must be positive, got {days}")

        employee = load_employee(self._session, employee_no)
        if employee.leave_balance_days < days:
            raise InsufficientLeaveBalanceError(
                employee_no, days, employee.leave_balance_days
            )

        request = LeaveRequestModel(
            employee_no=employee_no,
            department_code=employee.department_code,
            project_code=project_code if project_code is not None else employee.primary_project_code,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=days,
            reason=reason,
            balance_deducted=False,
            created_by=employee_no,
        )
        logger.info(
            "leave_request_submitting",
            extra={"employee_no": employee_no, "days": str(days), "leave_type": leave_type},
        )
        return self._submit(request)

    def get_leave(self, request_id) -> LeaveRequestModel:
        return self.get(request_id)
