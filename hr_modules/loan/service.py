"""
LoanService -- employee loans and installment postponements.

Responsibility:
    - ``submit_loan``: validate and route a loan request (LOAN chain).  Final
      approval writes the installment schedule and activates the loan.
    - ``submit_postponement``: route a request to move one unpaid
      installment (POSTLOAN chain).  Final approval moves the due date.
    - ``record_installment_payment``: mark an installment paid; the loan
      closes when nothing remains unpaid.

Invariants enforced:
    - An employee holds at most one loan that is active or still pending.
    - A loan's schedule is written once; the unique (loan_id,
      installment_no) constraint backs the ``installments`` emptiness check.
    - Schedule amounts sum exactly to the principal.

Failure modes:
    - InvalidLoanRequestError, ActiveLoanExistsError at submission.
    - InvalidPostponementError when the installment is paid, already has a
      pending postponement, or the new date is not later.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from hr_kernel.domain.approval import RequestType, TransStatus
from hr_kernel.exceptions import (
    ActiveLoanExistsError,
    EntityNotFoundError,
    InvalidLoanRequestError,
    InvalidPostponementError,
)
from hr_kernel.logging_config import get_logger
from hr_modules._helpers import ApprovalModuleService, load_employee
from hr_modules.loan.helpers import CENT, build_installment_schedule
from hr_modules.loan.orm import (
    InstallmentStatus,
    LoanInstallmentModel,
    LoanModel,
    LoanPostponementModel,
)
from hr_services.approval_gate import BaseApprovalFlow

logger = get_logger("modules.loan")

# Loan principal may not exceed this many months of salary.
MAX_SALARY_MULTIPLE = 12
MAX_INSTALLMENTS = 60


def settle_installment(installment: LoanInstallmentModel, actor_no: int, paid_on: date) -> None:
    """Mark ``installment`` paid and close its loan when nothing is left."""
    installment.payment_status = InstallmentStatus.PAID.value
    installment.paid_at = paid_on
    installment.updated_by = actor_no

    loan = installment.loan
    if all(i.payment_status == InstallmentStatus.PAID.value for i in loan.installments):
        loan.is_active = False
        loan.updated_by = actor_no
        logger.info("loan_fully_repaid", extra={"employee_no": loan.employee_no})


def installments_due_in(
    session: Session, employee_no: int, start: date, end: date
) -> list[LoanInstallmentModel]:
    """Unpaid installments of the employee's loans falling due in [start, end]."""
    return list(
        session.execute(
            select(LoanInstallmentModel)
            .where(
                LoanInstallmentModel.employee_no == employee_no,
                LoanInstallmentModel.payment_status != InstallmentStatus.PAID.value,
                LoanInstallmentModel.due_date >= start,
                LoanInstallmentModel.due_date <= end,
            )
            .order_by(LoanInstallmentModel.due_date, LoanInstallmentModel.installment_no)
        ).scalars()
    )


class LoanFlow(BaseApprovalFlow):
    request_type = RequestType.LOAN
    entity_type = "Loan"
    event_prefix = "LOAN"
    model = LoanModel

    def finalize(self, session: Session, entity: LoanModel, actor_no: int, now: datetime) -> None:
        if entity.installments:
            return
        schedule = build_installment_schedule(
            entity.amount, entity.installment_count, entity.first_due_date
        )
        for item in schedule:
            entity.installments.append(
                LoanInstallmentModel(
                    employee_no=entity.employee_no,
                    installment_no=item.installment_no,
                    due_date=item.due_date,
                    amount=item.amount,
                    payment_status=InstallmentStatus.UNPAID.value,
                    created_by=actor_no,
                )
            )
        entity.is_active = True
        logger.info(
            "loan_schedule_generated",
            extra={
                "employee_no": entity.employee_no,
                "installments": len(schedule),
                "first_due_date": schedule[0].due_date.isoformat(),
                "last_amount": str(schedule[-1].amount),
            },
        )

    def notification_variables(self, entity: LoanModel) -> dict[str, Any]:
        return {"amount": entity.amount, "installment_count": entity.installment_count}


class LoanPostponementFlow(BaseApprovalFlow):
    request_type = RequestType.LOAN_POSTPONEMENT
    entity_type = "LoanPostponement"
    event_prefix = "LOAN_POSTPONEMENT"
    model = LoanPostponementModel

    def finalize(
        self, session: Session, entity: LoanPostponementModel, actor_no: int, now: datetime
    ) -> None:
        installment = session.execute(
            select(LoanInstallmentModel)
            .where(LoanInstallmentModel.id == entity.installment_id)
            .with_for_update()
        ).scalar_one()
        if installment.payment_status == InstallmentStatus.PAID.value:
            raise InvalidPostponementError(
                f"Installment {installment.installment_no} was paid before the "
                "postponement was approved"
            )
        installment.postponed_from = installment.due_date
        installment.due_date = entity.new_due_date
        installment.payment_status = InstallmentStatus.POSTPONED.value
        installment.updated_by = actor_no
        logger.info(
            "loan_installment_postponed",
            extra={
                "installment_no": installment.installment_no,
                "from_date": installment.postponed_from.isoformat(),
                "to_date": entity.new_due_date.isoformat(),
            },
        )

    def notification_variables(self, entity: LoanPostponementModel) -> dict[str, Any]:
        return {
            "original_due_date": entity.original_due_date,
            "new_due_date": entity.new_due_date,
        }


class LoanService(ApprovalModuleService):
    """Loan requests; see ``LoanPostponementService`` for due-date moves."""

    flow = LoanFlow()

    def submit_loan(
        self,
        employee_no: int,
        amount: Decimal,
        installment_count: int,
        first_due_date: date,
        reason: str | None = None,
    ) -> LoanModel:
        amount = Decimal(amount)
        employee = load_employee(self._session, employee_no)
        if not employee.is_active:
            raise InvalidLoanRequestError(f"Employee {employee_no} is not active")
        if amount <= 0:
            raise InvalidLoanRequestError(f"Loan amount must be positive, got {amount}")
        if amount != amount.quantize(CENT):
            raise InvalidLoanRequestError(
                f"Loan amount {amount} has more than 2 decimal places"
            )
        cap = employee.monthly_salary * MAX_SALARY_MULTIPLE
        if amount > cap:
            raise InvalidLoanRequestError(
                f"Loan amount {amount} exceeds {MAX_SALARY_MULTIPLE} months of salary ({cap})"
            )
        if not 1 <= installment_count <= MAX_INSTALLMENTS:
            raise InvalidLoanRequestError(
                f"Installment count must be between 1 and {MAX_INSTALLMENTS}, "
                f"got {installment_count}"
            )
        # Rejects a principal too small to split before anything is written.
        build_installment_schedule(amount, installment_count, first_due_date)

        existing = self._session.execute(
            select(LoanModel.id).where(
                LoanModel.employee_no == employee_no,
                or_(
                    LoanModel.is_active.is_(True),
                    LoanModel.trans_status == TransStatus.PENDING.value,
                ),
            )
        ).scalars().first()
        if existing is not None:
            raise ActiveLoanExistsError(employee_no, str(existing))

        loan = LoanModel(
            employee_no=employee_no,
            department_code=employee.department_code,
            project_code=employee.primary_project_code,
            amount=amount,
            installment_count=installment_count,
            first_due_date=first_due_date,
            reason=reason,
            is_active=False,
            created_by=employee_no,
        )
        logger.info(
            "loan_request_submitting",
            extra={
                "employee_no": employee_no,
                "amount": str(amount),
                "installment_count": installment_count,
            },
        )
        return self._submit(loan)

    def get_loan(self, loan_id: UUID) -> LoanModel:
        return self.get(loan_id)

    def record_installment_payment(
        self, installment_id: UUID, actor_no: int, paid_on: date | None = None
    ) -> LoanInstallmentModel:
        """Mark an installment paid; deactivates the loan once fully repaid."""
        try:
            installment = self._session.execute(
                select(LoanInstallmentModel)
                .where(LoanInstallmentModel.id == installment_id)
                .with_for_update()
            ).scalar_one_or_none()
            if installment is None:
                raise EntityNotFoundError("LoanInstallment", installment_id)
            if installment.payment_status == InstallmentStatus.PAID.value:
                raise InvalidLoanRequestError(
                    f"Installment {installment.installment_no} is already paid"
                )
            settle_installment(installment, actor_no, paid_on or self._clock.today())
            self._session.commit()
            return installment
        except Exception:
            self._session.rollback()
            raise


class LoanPostponementService(ApprovalModuleService):
    """Requests to move one unpaid installment to a later date."""

    flow = LoanPostponementFlow()

    def submit_postponement(
        self, installment_id: UUID, new_due_date: date, reason: str | None = None
    ) -> LoanPostponementModel:
        installment = self._session.get(LoanInstallmentModel, installment_id)
        if installment is None:
            raise EntityNotFoundError("LoanInstallment", installment_id)
        if installment.payment_status == InstallmentStatus.PAID.value:
            raise InvalidPostponementError(
                f"Installment {installment.installment_no} is already paid"
            )
        if new_due_date <= installment.due_date:
            raise InvalidPostponementError(
                f"New due date {new_due_date} must be after {installment.due_date}"
            )
        pending = self._session.execute(
            select(LoanPostponementModel.id).where(
                LoanPostponementModel.installment_id == installment_id,
                LoanPostponementModel.trans_status == TransStatus.PENDING.value,
            )
        ).scalars().first()
        if pending is not None:
            raise InvalidPostponementError(
                f"Installment {installment.installment_no} already has a pending postponement"
            )

        employee = load_employee(self._session, installment.employee_no)
        request = LoanPostponementModel(
            installment_id=installment.id,
            loan_id=installment.loan_id,
            employee_no=installment.employee_no,
            department_code=employee.department_code,
            project_code=employee.primary_project_code,
            original_due_date=installment.due_date,
            new_due_date=new_due_date,
            reason=reason,
            created_by=installment.employee_no,
        )
        return self._submit(request)

    def get_postponement(self, request_id: UUID) -> LoanPostponementModel:
        return self.get(request_id)
