"""
LaborRequestService -- project labor requests (request type LABOR_REQ).

The approval context is the requesting project, so the chain resolves the
project manager and regional manager of the project that needs workers,
not of the requester's own primary project.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_kernel.domain.approval import RequestContext, RequestType
from hr_kernel.exceptions import EntityNotFoundError, InvalidLaborRequestError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.organization import ProjectModel
from hr_modules._helpers import ApprovalModuleService, load_employee
from hr_modules.labor.orm import LaborRequestModel, LaborRequestPositionModel, LaborRequestStatus
from hr_services.approval_gate import BaseApprovalFlow

logger = get_logger("modules.labor")


@dataclass(frozen=True)
class LaborPosition:
    job_title: str
    quantity: int
    daily_rate: Decimal = Decimal("0")


class LaborRequestFlow(BaseApprovalFlow):
    request_type = RequestType.LABOR_REQUEST
    entity_type = "LaborRequest"
    event_prefix = "LABOR_REQUEST"
    model = LaborRequestModel

    def context_for(self, entity: LaborRequestModel, level: int) -> RequestContext:
        return RequestContext(
            request_type=self.request_type,
            employee_no=entity.requested_by,
            department_code=entity.department_code,
            project_code=entity.project_code,
        )

    def requester_no(self, entity: LaborRequestModel) -> int:
        return entity.requested_by

    def finalize(
        self, session: Session, entity: LaborRequestModel, actor_no: int, now: datetime
    ) -> None:
        entity.request_status = LaborRequestStatus.OPEN.value

    def notification_variables(self, entity: LaborRequestModel) -> dict[str, Any]:
        return {
            "project_code": entity.project_code,
            "start_date": entity.start_date,
            "end_date": entity.end_date,
        }


class LaborRequestService(ApprovalModuleService):
    flow = LaborRequestFlow()

    def submit_labor_request(
        self,
        requested_by: int,
        project_code: int,
        start_date: date,
        end_date: date,
        positions: Sequence[LaborPosition],
        notes: str | None = None,
    ) -> LaborRequestModel:
        if end_date < start_date:
            raise InvalidLaborRequestError(
                f"Labor request end date {end_date} is before start date {start_date}"
            )
        if not positions:
            raise InvalidLaborRequestError("A labor request needs at least one position")
        for position in positions:
            if position.quantity <= 0:
                raise InvalidLaborRequestError(
                    f"Quantity for {position.job_title!r} must be positive, got {position.quantity}"
                )
            if Decimal(position.daily_rate) < 0:
                raise InvalidLaborRequestError(
                    f"Daily rate for {position.job_title!r} must not be negative"
                )

        project = self._session.execute(
            select(ProjectModel).where(ProjectModel.project_code == project_code)
        ).scalar_one_or_none()
        if project is None:
            raise EntityNotFoundError("Project", project_code)
        if not project.is_active:
            raise InvalidLaborRequestError(f"Project {project_code} is not active")
        requester = load_employee(self._session, requested_by)

        request = LaborRequestModel(
            requested_by=requested_by,
            department_code=requester.department_code,
            project_code=project_code,
            start_date=start_date,
            end_date=end_date,
            request_status=LaborRequestStatus.PENDING.value,
            notes=notes,
            created_by=requested_by,
        )
        for seq, position in enumerate(positions, start=1):
            request.positions.append(
                LaborRequestPositionModel(
                    sequence_no=seq,
                    job_title=position.job_title,
                    quantity=position.quantity,
                    daily_rate=Decimal(position.daily_rate),
                    created_by=requested_by,
                )
            )
        logger.info(
            "labor_request_submitting",
            extra={
                "project_code": project_code,
                "positions": len(positions),
                "total_quantity": sum(p.quantity for p in positions),
            },
        )
        return self._submit(request)

    def get_labor_request(self, request_id: UUID) -> LaborRequestModel:
        return self.get(request_id)

    def close_labor_request(self, request_id: UUID, actor_no: int) -> LaborRequestModel:
        """Mark an approved (OPEN) request fulfilled."""
        try:
            request = self.get(request_id)
            if request.request_status != LaborRequestStatus.OPEN.value:
                raise InvalidLaborRequestError(
                    f"Only OPEN labor requests can be closed (status {request.request_status})"
                )
            request.request_status = LaborRequestStatus.CLOSED.value
            request.updated_by = actor_no
            self._session.commit()
            logger.info("labor_request_closed", extra={"project_code": request.project_code})
            return request
        except Exception:
            self._session.rollback()
            raise
