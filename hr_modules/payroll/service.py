"""
PayrollService -- monthly payroll calculation and approval (request type PAYROLL).

Responsibility:
    Computes one employee's payroll for a month from master data and
    approved lines, then routes the result through the PAYROLL chain.

    gross         = employee.monthly_salary
    allowances    = effective allowance lines dated in the month
    loan          = unpaid loan installments due in the month
    net           = gross + allowances - other deductions - loan

    Final approval marks the record APPROVED and settles the covered loan
    installments.

Invariants enforced:
    - At most one latest payroll per employee and month.  A rejected
      payroll may be recalculated; the new row gets the next version and
      the old one stops being latest.  Approved or pending payroll cannot
      be recalculated.
    - Net pay is never negative.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from hr_kernel.domain.approval import RequestType, TransStatus
from hr_kernel.exceptions import BusinessRuleError, DuplicatePayrollError
from hr_kernel.logging_config import get_logger
from hr_modules._helpers import ApprovalModuleService, load_employee, month_bounds, month_key
from hr_modules.allowance.orm import AllowanceRequestModel
from hr_modules.loan.orm import InstallmentStatus, LoanInstallmentModel
from hr_modules.loan.service import installments_due_in, settle_installment
from hr_modules.payroll.orm import PayrollRecordModel
from hr_services.approval_gate import BaseApprovalFlow

logger = get_logger("modules.payroll")


class PayrollFlow(BaseApprovalFlow):
    request_type = RequestType.PAYROLL
    entity_type = "PayrollRecord"
    event_prefix = "PAYROLL"
    model = PayrollRecordModel

    def finalize(
        self, session: Session, entity: PayrollRecordModel, actor_no: int, now: datetime
    ) -> None:
        entity.payroll_status = "APPROVED"
        settled = 0
        for raw_id in entity.installment_ids or []:
            installment = session.get(LoanInstallmentModel, UUID(raw_id))
            if installment is None or installment.payment_status == InstallmentStatus.PAID.value:
                continue
            settle_installment(installment, actor_no, now.date())
            settled += 1
        logger.info(
            "payroll_finalized",
            extra={
                "employee_no": entity.employee_no,
                "payroll_month": entity.payroll_month,
                "net_amount": str(entity.net_amount),
                "installments_settled": settled,
            },
        )

    def notification_variables(self, entity: PayrollRecordModel) -> dict[str, Any]:
        return {
            "payroll_month": entity.payroll_month,
            "net_amount": entity.net_amount,
            "payroll_version": entity.payroll_version,
        }


class PayrollService(ApprovalModuleService):
    flow = PayrollFlow()

    def submit_payroll(
        self,
        employee_no: int,
        year: int,
        month: int,
        other_deductions: Decimal = Decimal("0"),
    ) -> PayrollRecordModel:
        """Calculate and submit the first payroll version for the month."""
        payroll_month = month_key(year, month)
        latest = self._latest(employee_no, payroll_month)
        if latest is not None:
            raise DuplicatePayrollError(employee_no, payroll_month)
        record = self._calculate(employee_no, year, month, Decimal(other_deductions), version=1)
        return self._submit(record)

    def recalculate_payroll(
        self,
        employee_no: int,
        year: int,
        month: int,
        reason: str,
        other_deductions: Decimal = Decimal("0"),
    ) -> PayrollRecordModel:
        """Replace a rejected payroll with a fresh calculation (next version)."""
        payroll_month = month_key(year, month)
        latest = self._latest(employee_no, payroll_month)
        if latest is None:
            return self.submit_payroll(employee_no, year, month, other_deductions)
        if latest.trans_status != TransStatus.REJECTED.value:
            raise DuplicatePayrollError(employee_no, payroll_month)

        record = self._calculate(
            employee_no, year, month, Decimal(other_deductions), version=latest.payroll_version + 1
        )
        latest.is_latest = False
        record.recalculation_reason = reason
        logger.info(
            "payroll_recalculating",
            extra={
                "employee_no": employee_no,
                "payroll_month": payroll_month,
                "payroll_version": record.payroll_version,
            },
        )
        return self._submit(record)

    def get_payroll(self, payroll_id: UUID) -> PayrollRecordModel:
        return self.get(payroll_id)

    def _latest(self, employee_no: int, payroll_month: str) -> PayrollRecordModel | None:
        return self._session.execute(
            select(PayrollRecordModel).where(
                PayrollRecordModel.employee_no == employee_no,
                PayrollRecordModel.payroll_month == payroll_month,
                PayrollRecordModel.is_latest.is_(True),
            )
        ).scalar_one_or_none()

    def _calculate(
        self,
        employee_no: int,
        year: int,
        month: int,
        other_deductions: Decimal,
        version: int,
    ) -> PayrollRecordModel:
        employee = load_employee(self._session, employee_no)
        start, end = month_bounds(year, month)

        allowances = self._session.execute(
            select(func.coalesce(func.sum(AllowanceRequestModel.amount), 0)).where(
                AllowanceRequestModel.employee_no == employee_no,
                AllowanceRequestModel.is_effective.is_(True),
                AllowanceRequestModel.effective_date >= start,
                AllowanceRequestModel.effective_date <= end,
            )
        ).scalar_one()
        allowances = Decimal(str(allowances))

        installments = installments_due_in(self._session, employee_no, start, end)
        loan_deduction = sum((i.amount for i in installments), Decimal("0"))

        if other_deductions < 0:
            raise BusinessRuleError(f"Deductions must not be negative, got {other_deductions}")
        gross = employee.monthly_salary
        net = gross + allowances - other_deductions - loan_deduction
        if net < 0:
            raise BusinessRuleError(
                f"Net pay for employee {employee_no} in {month_key(year, month)} "
                f"would be negative ({net})"
            )

        return PayrollRecordModel(
            employee_no=employee_no,
            department_code=employee.department_code,
            project_code=employee.primary_project_code,
            payroll_month=month_key(year, month),
            payroll_version=version,
            is_latest=True,
            gross_salary=gross,
            total_allowances=allowances,
            total_deductions=other_deductions,
            loan_deduction=loan_deduction,
            net_amount=net,
            installment_ids=[str(i.id) for i in installments],
            payroll_status="DRAFT",
            created_by=employee_no,
        )
