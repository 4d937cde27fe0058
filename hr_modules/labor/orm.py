"""
Labor Request ORM Persistence Models (``hr_modules.labor.orm``).

A project asks for workers: one header per request, one position line per
job title.  request_status moves PENDING -> OPEN on final approval and
OPEN -> CLOSED when the request is fulfilled; rejected requests stay
PENDING with trans_status R.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    BigInteger,
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


class LaborRequestStatus(str, Enum):
    PENDING = "PENDING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class LaborRequestModel(ApprovalTrackedMixin, TrackedBase):
    __tablename__ = "labor_requests"

    __table_args__ = (
        trans_status_check("labor_requests"),
        CheckConstraint("end_date >= start_date", name="ck_labor_requests_date_order"),
        CheckConstraint(
            "request_status IN ('PENDING', 'OPEN', 'CLOSED')",
            name="ck_labor_requests_status",
        ),
        Index("idx_labor_requests_pending", "trans_status", "next_approval"),
        Index("idx_labor_requests_project", "project_code", "request_status"),
    )

    requested_by: Mapped[int] = mapped_column(BigInteger, nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int] = mapped_column(BigInteger, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    request_status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=LaborRequestStatus.PENDING.value
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    positions: Mapped[list[LaborRequestPositionModel]] = relationship(
        back_populates="request",
        order_by="LaborRequestPositionModel.sequence_no",
        cascade="all, delete-orphan",
    )

    approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": approval_version}

    @property
    def total_quantity(self) -> int:
        return sum(p.quantity for p in self.positions)

    def __repr__(self) -> str:
        return (
            f"<LaborRequestModel project={self.project_code} "
            f"{self.request_status} [{self.trans_status}]>"
        )


class LaborRequestPositionModel(TrackedBase):
    __tablename__ = "labor_request_positions"

    __table_args__ = (
        UniqueConstraint("request_id", "sequence_no", name="uq_labor_request_position_seq"),
        CheckConstraint("quantity > 0", name="ck_labor_request_positions_quantity"),
        CheckConstraint("daily_rate >= 0", name="ck_labor_request_positions_rate"),
    )

    request_id: Mapped[UUID] = mapped_column(ForeignKey("labor_requests.id"), nullable=False)
    sequence_no: Mapped[int] = mapped_column(Integer, nullable=False)
    job_title: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    request: Mapped[LaborRequestModel] = relationship(back_populates="positions")
