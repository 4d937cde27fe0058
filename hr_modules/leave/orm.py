"""
Leave ORM Persistence Models (``hr_modules.leave.orm``).

Invariants enforced:
    - ``days`` is positive and ``end_date >= start_date`` (check constraints).
    - ``balance_deducted`` flips to True exactly once, in the transaction
      that reaches final approval.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase
from hr_kernel.models.approval_tracking import ApprovalTrackedMixin, trans_status_check


class LeaveRequestModel(ApprovalTrackedMixin, TrackedBase):
    """Employee leave request (request type VAC)."""

    __tablename__ = "leave_requests"

    __table_args__ = (
        trans_status_check("leave_requests"),
        CheckConstraint("days > 0", name="ck_leave_requests_days_positive"),
        CheckConstraint("end_date >= start_date", name="ck_leave_requests_date_order"),
        Index("idx_leave_requests_pending", "trans_status", "next_approval"),
        Index("idx_leave_requests_employee", "employee_no"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    leave_type: Mapped[str] = mapped_column(String(20), nullable=False, default="ANNUAL")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    balance_deducted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    def __repr__(self) -> str:
        return (
            f"<LeaveRequestModel {self.employee_no} {self.start_date}..{self.end_date} "
            f"[{self.trans_status}]>"
        )
