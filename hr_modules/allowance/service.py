"""
AllowanceService -- monthly allowance requests (request type ALLOW).

Allowances may be entered by a manager or generated by the system (for
example from attendance).  Both kinds route through the ALLOW chain; a
chain set that registers an empty ALLOW chain approves them on submission.
Final approval sets ``is_effective`` so payroll picks the line up.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from hr_kernel.db.base import SYSTEM_ACTOR_NO
from hr_kernel.domain.approval import RequestType
from hr_kernel.exceptions import InvalidAllowanceError
from hr_kernel.logging_config import get_logger
from hr_modules._helpers import ApprovalModuleService, load_employee
from hr_modules.allowance.orm import AllowanceRequestModel
from hr_services.approval_gate import BaseApprovalFlow

logger = get_logger("modules.allowance")

ALLOWANCE_TYPE_CODES = range(10, 20)


class AllowanceFlow(BaseApprovalFlow):
    request_type = RequestType.ALLOWANCE
    entity_type = "AllowanceRequest"
    event_prefix = "ALLOWANCE"
    model = AllowanceRequestModel

    def finalize(
        self, session: Session, entity: AllowanceRequestModel, actor_no: int, now: datetime
    ) -> None:
        entity.is_effective = True

    def notification_variables(self, entity: AllowanceRequestModel) -> dict[str, Any]:
        return {
            "type_code": entity.type_code,
            "amount": entity.amount,
            "effective_date": entity.effective_date,
        }


class AllowanceService(ApprovalModuleService):
    flow = AllowanceFlow()

    def submit_allowance(
        self,
        employee_no: int,
        type_code: int,
        amount: Decimal,
        effective_date: date,
        notes: str | None = None,
        is_system_generated: bool = False,
        created_by: int | None = None,
    ) -> AllowanceRequestModel:
        """
        Submit an allowance line for approval.

        ``created_by`` defaults to the employee, or to the system actor for
        system-generated lines.
        """
        amount = Decimal(amount)
        if type_code not in ALLOWANCE_TYPE_CODES:
            raise InvalidAllowanceError(
                f"Allowance type code must be between 10 and 19, got {type_code}"
            )
        if amount <= 0:
            raise InvalidAllowanceError(f"Allowance amount must be positive, got {amount}")

        employee = load_employee(self._session, employee_no)
        if created_by is None:
            created_by = SYSTEM_ACTOR_NO if is_system_generated else employee_no
        allowance = AllowanceRequestModel(
            employee_no=employee_no,
            department_code=employee.department_code,
            project_code=employee.primary_project_code,
            type_code=type_code,
            amount=amount,
            effective_date=effective_date,
            notes=notes,
            is_system_generated=is_system_generated,
            is_effective=False,
            created_by=created_by,
        )
        logger.info(
            "allowance_request_submitting",
            extra={
                "employee_no": employee_no,
                "type_code": type_code,
                "amount": str(amount),
                "system_generated": is_system_generated,
            },
        )
        return self._submit(allowance)

    def get_allowance(self, allowance_id: UUID) -> AllowanceRequestModel:
        return self.get(allowance_id)
