"""
Loan ORM Persistence Models (``hr_modules.loan.orm``).

Tables:
    - ``loans``: the loan request (request type LOAN).
    - ``loan_installments``: repayment schedule, written on final approval.
    - ``loan_postponements``: requests to move one installment's due date
      (request type POSTLOAN).

Invariants enforced:
    - (loan_id, installment_no) is unique, so a schedule cannot be written
      twice for the same loan.
    - Installment payment_status is UNPAID, PAID or POSTPONED.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
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
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_kernel.db.base import TrackedBase
from hr_kernel.models.approval_tracking import ApprovalTrackedMixin, trans_status_check


class InstallmentStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    POSTPONED = "POSTPONED"


class LoanModel(ApprovalTrackedMixin, TrackedBase):
    """Employee loan request."""

    __tablename__ = "loans"

    __table_args__ = (
        trans_status_check("loans"),
        CheckConstraint("amount > 0", name="ck_loans_amount_positive"),
        CheckConstraint("installment_count >= 1", name="ck_loans_installments_positive"),
        Index("idx_loans_pending", "trans_status", "next_approval"),
        Index("idx_loans_employee", "employee_no"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    installment_count: Mapped[int] = mapped_column(Integer, nullable=False)
    first_due_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    installments: Mapped[list[LoanInstallmentModel]] = relationship(
        back_populates="loan",
        order_by="LoanInstallmentModel.installment_no",
        cascade="all, delete-orphan",
    )

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    @property
    def outstanding_amount(self) -> Decimal:
        return sum(
            (i.amount for i in self.installments if i.payment_status != InstallmentStatus.PAID.value),
            Decimal("0"),
        )

    def __repr__(self) -> str:
        return f"<LoanModel {self.employee_no} {self.amount} [{self.trans_status}]>"


class LoanInstallmentModel(TrackedBase):
    """One scheduled repayment."""

    __tablename__ = "loan_installments"

    __table_args__ = (
        UniqueConstraint("loan_id", "installment_no", name="uq_loan_installment_no"),
        CheckConstraint(
            "payment_status IN ('UNPAID', 'PAID', 'POSTPONED')",
            name="ck_loan_installments_status",
        ),
        Index("idx_loan_installments_due", "due_date", "payment_status"),
    )

    loan_id: Mapped[UUID] = mapped_column(ForeignKey("loans.id"), nullable=False)
    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    installment_no: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=InstallmentStatus.UNPAID.value
    )
    postponed_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    paid_at: Mapped[date | None] = mapped_column(Date, nullable=True)

    loan: Mapped[LoanModel] = relationship(back_populates="installments")

    def __repr__(self) -> str:
        return (
            f"<LoanInstallmentModel #{self.installment_no} {self.due_date} "
            f"{self.amount} [{self.payment_status}]>"
        )


class LoanPostponementModel(ApprovalTrackedMixin, TrackedBase):
    """Request to move an unpaid installment to a later due date."""

    __tablename__ = "loan_postponements"

    __table_args__ = (
        trans_status_check("loan_postponements"),
        CheckConstraint(
            "new_due_date > original_due_date", name="ck_loan_postponements_later_date"
        ),
        Index("idx_loan_postponements_pending", "trans_status", "next_approval"),
    )

    installment_id: Mapped[UUID] = mapped_column(
        ForeignKey("loan_installments.id"), nullable=False
    )
    loan_id: Mapped[UUID] = mapped_column(ForeignKey("loans.id"), nullable=False)
    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    original_due_date: Mapped[date] = mapped_column(Date, nullable=False)
    new_due_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    def __repr__(self) -> str:
        return (
            f"<LoanPostponementModel {self.original_due_date} -> {self.new_due_date} "
            f"[{self.trans_status}]>"
        )
