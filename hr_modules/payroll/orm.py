"""
Payroll ORM Persistence Models (``hr_modules.payroll.orm``).

One row per payroll calculation.  A rejected calculation may be redone as
a new version; ``is_latest`` marks the version that counts.

Invariants enforced:
    - (employee_no, payroll_month, payroll_version) is unique.
    - net_amount = gross_salary + total_allowances - total_deductions
      - loan_deduction, and is never negative.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, CheckConstraint, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase
from hr_kernel.models.approval_tracking import ApprovalTrackedMixin, trans_status_check


class PayrollRecordModel(ApprovalTrackedMixin, TrackedBase):
    __tablename__ = "payroll_records"

    __table_args__ = (
        trans_status_check("payroll_records"),
        UniqueConstraint(
            "employee_no", "payroll_month", "payroll_version", name="uq_payroll_employee_month_version"
        ),
        CheckConstraint("net_amount >= 0", name="ck_payroll_records_net_non_negative"),
        CheckConstraint(
            "payroll_status IN ('DRAFT', 'APPROVED')",
            name="ck_payroll_records_status",
        ),
        Index("idx_payroll_records_pending", "trans_status", "next_approval"),
        Index("idx_payroll_records_month", "payroll_month", "is_latest"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    payroll_month: Mapped[str] = mapped_column(String(7), nullable=False)
    payroll_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_latest: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    gross_salary: Mapped[Decimal] = mapped_column(nullable=False)
    total_allowances: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    loan_deduction: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    net_amount: Mapped[Decimal] = mapped_column(nullable=False)
    # Installment ids covered by loan_deduction, settled on final approval.
    installment_ids: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    payroll_status: Mapped[str] = mapped_column(String(10), nullable=False, default="DRAFT")
    recalculation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    def __repr__(self) -> str:
        return (
            f"<PayrollRecordModel {self.employee_no} {self.payroll_month} "
            f"v{self.payroll_version} net={self.net_amount} [{self.trans_status}]>"
        )
