"""
Module: hr_kernel.models.approval_tracking
Responsibility: Column mixin carried by every business entity that routes
    through the approval engine.  Mirrors the last ``ApprovalState`` into
    ``trans_status`` / ``next_approval`` / ``next_app_level`` /
    ``next_app_level_name`` and records who approved or rejected.

Architecture position: Kernel > Models.  Imported by hr_modules ORM files.

Invariants enforced:
    - trans_status is one of N / A / R (check constraint on each table,
      see ``trans_status_check``).
    - Each concrete model declares an ``approval_version`` column and maps
      it as ``version_id_col``; a concurrent writer that loaded an older
      version fails its UPDATE with ``StaleDataError``.

Usage::

    class LeaveRequestModel(ApprovalTrackedMixin, TrackedBase):
        __tablename__ = "leave_requests"
        __table_args__ = (trans_status_check("leave_requests"),)

        approval_version: Mapped[int] = mapped_column(Integer, nullable=False)
        __mapper_args__ = {"version_id_col": approval_version}
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.domain.approval import ApprovalState, TransStatus


def trans_status_check(table_name: str) -> CheckConstraint:
    return CheckConstraint(
        "trans_status IN ('N', 'A', 'R')",
        name=f"ck_{table_name}_trans_status",
    )


class ApprovalTrackedMixin:
    """Approval columns plus helpers to apply engine output."""

    trans_status: Mapped[str] = mapped_column(
        String(1), nullable=False, default=TransStatus.PENDING.value
    )
    next_approval: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    next_app_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    next_app_level_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejected_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    @property
    def status(self) -> TransStatus:
        return TransStatus(self.trans_status)

    @property
    def is_pending(self) -> bool:
        return self.trans_status == TransStatus.PENDING.value

    def approval_state(self) -> ApprovalState:
        """Rebuild the last engine output from the persisted columns."""
        status = TransStatus(self.trans_status)
        if status == TransStatus.PENDING:
            return ApprovalState.pending(
                self.next_app_level, self.next_approval, self.next_app_level_name
            )
        return ApprovalState(status)

    def apply_approval_state(self, state: ApprovalState) -> None:
        self.trans_status = state.trans_status.value
        self.next_approval = state.next_approver
        self.next_app_level = state.next_level
        self.next_app_level_name = state.next_level_name
