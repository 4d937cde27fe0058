"""
Shared helpers for module services.

``ApprovalModuleService`` carries the operations every approval-routed
module exposes identically (approve, reject, get, pending list, timeline)
so each module service only adds its submission and domain operations.
Each public method owns the transaction boundary: commit on success,
rollback and re-raise on any exception.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_engines.approval import ApprovalWorkflowEngine
from hr_kernel.domain.approval import ApprovalTimelineStep
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.exceptions import EntityNotFoundError
from hr_kernel.models.organization import EmployeeModel
from hr_services.approval_gate import ApprovalDecision, ApprovalFlow, ApprovalGate


def load_employee(session: Session, employee_no: int, for_update: bool = False) -> EmployeeModel:
    stmt = select(EmployeeModel).where(EmployeeModel.employee_no == employee_no)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    employee = session.execute(stmt).scalar_one_or_none()
    if employee is None:
        raise EntityNotFoundError("Employee", employee_no)
    return employee


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of the month."""
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


class ApprovalModuleService:
    """Base for module services whose entity routes through the approval gate."""

    flow: ApprovalFlow

    def __init__(
        self,
        session: Session,
        engine: ApprovalWorkflowEngine,
        clock: Clock | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._gate = ApprovalGate(session, engine, self._clock)

    def _submit(self, entity: Any) -> Any:
        try:
            self._gate.submit(self.flow, entity)
            self._session.commit()
            return entity
        except Exception:
            self._session.rollback()
            raise

    def approve(
        self,
        entity_id: UUID,
        approver_no: int | None,
        *,
        acting_level: int | None = None,
        allow_override: bool = False,
    ) -> ApprovalDecision:
        try:
            decision = self._gate.approve(
                self.flow,
                entity_id,
                approver_no,
                acting_level=acting_level,
                allow_override=allow_override,
            )
            self._session.commit()
            return decision
        except Exception:
            self._session.rollback()
            raise

    def reject(
        self,
        entity_id: UUID,
        approver_no: int | None,
        reason: str,
        *,
        acting_level: int | None = None,
        allow_override: bool = False,
    ) -> ApprovalDecision:
        try:
            decision = self._gate.reject(
                self.flow,
                entity_id,
                approver_no,
                reason,
                acting_level=acting_level,
                allow_override=allow_override,
            )
            self._session.commit()
            return decision
        except Exception:
            self._session.rollback()
            raise

    def get(self, entity_id: UUID) -> Any:
        return self._gate.get(self.flow, entity_id)

    def list_pending_for(self, approver_no: int) -> list[Any]:
        return self._gate.pending_for(self.flow, approver_no)

    def timeline(self, entity_id: UUID) -> list[ApprovalTimelineStep]:
        return self._gate.timeline(self.flow, self.get(entity_id))
