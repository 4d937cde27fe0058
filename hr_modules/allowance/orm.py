"""
Allowance ORM Persistence Models (``hr_modules.allowance.orm``).

Monthly allowance lines (transaction type codes 10-19).  A line only feeds
payroll once ``is_effective`` is set by final approval.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase
from hr_kernel.models.approval_tracking import ApprovalTrackedMixin, trans_status_check


class AllowanceRequestModel(ApprovalTrackedMixin, TrackedBase):
    __tablename__ = "allowance_requests"

    __table_args__ = (
        trans_status_check("allowance_requests"),
        CheckConstraint("type_code BETWEEN 10 AND 19", name="ck_allowance_requests_type_code"),
        CheckConstraint("amount > 0", name="ck_allowance_requests_amount_positive"),
        Index("idx_allowance_requests_pending", "trans_status", "next_approval"),
        Index("idx_allowance_requests_employee", "employee_no", "effective_date"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    type_code: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_effective: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    def __repr__(self) -> str:
        return (
            f"<AllowanceRequestModel {self.employee_no} type={self.type_code} "
            f"{self.amount} [{self.trans_status}]>"
        )
