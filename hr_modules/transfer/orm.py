"""
Project Transfer ORM Persistence Models (``hr_modules.transfer.orm``).

transfer_status: PENDING until final approval, READY once approved, and
EXECUTED after ``execute_transfer`` moves the employee's primary project.
"""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import BigInteger, CheckConstraint, Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase
from hr_kernel.models.approval_tracking import ApprovalTrackedMixin, trans_status_check


class TransferStatus(str, Enum):
    PENDING = "PENDING"
    READY = "READY"
    EXECUTED = "EXECUTED"


class ProjectTransferModel(ApprovalTrackedMixin, TrackedBase):
    __tablename__ = "project_transfers"

    __table_args__ = (
        trans_status_check("project_transfers"),
        CheckConstraint(
            "from_project_code <> to_project_code", name="ck_project_transfers_distinct_projects"
        ),
        CheckConstraint(
            "transfer_status IN ('PENDING', 'READY', 'EXECUTED')",
            name="ck_project_transfers_status",
        ),
        Index("idx_project_transfers_pending", "trans_status", "next_approval"),
        Index("idx_project_transfers_employee", "employee_no"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    from_project_code: Mapped[int] = mapped_column(BigInteger, nullable=False)
    to_project_code: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transfer_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_by: Mapped[int] = mapped_column(BigInteger, nullable=False)
    transfer_status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=TransferStatus.PENDING.value
    )
    executed_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    executed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    def __repr__(self) -> str:
        return (
            f"<ProjectTransferModel {self.employee_no} {self.from_project_code} -> "
            f"{self.to_project_code} {self.transfer_status} [{self.trans_status}]>"
        )
