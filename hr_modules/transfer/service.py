"""
ProjectTransferService -- moving an employee between projects (PROJ_TRANSFER).

Responsibility:
    The approval context changes along the chain: level 1 is resolved
    against the source project (its manager releases the employee), later
    levels against the destination project.  Final approval marks the
    transfer READY; ``execute_transfer`` then changes the employee's
    primary project.

Invariants enforced:
    - Source and destination differ, and the employee currently belongs
      to the source project (checked at submission and again at execution).
    - A transfer executes at most once.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_kernel.domain.approval import RequestContext, RequestType, TransStatus
from hr_kernel.exceptions import EntityNotFoundError, InvalidTransferError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.organization import ProjectModel
from hr_modules._helpers import ApprovalModuleService, load_employee
from hr_modules.transfer.orm import ProjectTransferModel, TransferStatus
from hr_services.approval_gate import BaseApprovalFlow

logger = get_logger("modules.transfer")


class ProjectTransferFlow(BaseApprovalFlow):
    request_type = RequestType.PROJECT_TRANSFER
    entity_type = "ProjectTransfer"
    event_prefix = "PROJECT_TRANSFER"
    model = ProjectTransferModel

    def context_for(self, entity: ProjectTransferModel, level: int) -> RequestContext:
        project = entity.from_project_code if level <= 1 else entity.to_project_code
        return RequestContext(
            request_type=self.request_type,
            employee_no=entity.employee_no,
            department_code=entity.department_code,
            project_code=project,
        )

    def finalize(
        self, session: Session, entity: ProjectTransferModel, actor_no: int, now: datetime
    ) -> None:
        entity.transfer_status = TransferStatus.READY.value

    def notification_variables(self, entity: ProjectTransferModel) -> dict[str, Any]:
        return {
            "employee_no": entity.employee_no,
            "from_project_code": entity.from_project_code,
            "to_project_code": entity.to_project_code,
            "transfer_date": entity.transfer_date,
        }


class ProjectTransferService(ApprovalModuleService):
    flow = ProjectTransferFlow()

    def submit_transfer(
        self,
        employee_no: int,
        from_project_code: int,
        to_project_code: int,
        transfer_date: date,
        reason: str | None = None,
        requested_by: int | None = None,
    ) -> ProjectTransferModel:
        if from_project_code == to_project_code:
            raise InvalidTransferError(
                f"Source and destination project are both {from_project_code}"
            )
        employee = load_employee(self._session, employee_no)
        if employee.primary_project_code != from_project_code:
            raise InvalidTransferError(
                f"Employee {employee_no} is assigned to project "
                f"{employee.primary_project_code}, not {from_project_code}"
            )
        destination = self._session.execute(
            select(ProjectModel).where(ProjectModel.project_code == to_project_code)
        ).scalar_one_or_none()
        if destination is None:
            raise EntityNotFoundError("Project", to_project_code)
        if not destination.is_active:
            raise InvalidTransferError(f"Destination project {to_project_code} is not active")

        requester = requested_by if requested_by is not None else employee_no
        transfer = ProjectTransferModel(
            employee_no=employee_no,
            department_code=employee.department_code,
            from_project_code=from_project_code,
            to_project_code=to_project_code,
            transfer_date=transfer_date,
            reason=reason,
            requested_by=requester,
            transfer_status=TransferStatus.PENDING.value,
            created_by=requester,
        )
        logger.info(
            "project_transfer_submitting",
            extra={
                "employee_no": employee_no,
                "from_project_code": from_project_code,
                "to_project_code": to_project_code,
            },
        )
        return self._submit(transfer)

    def get_transfer(self, transfer_id: UUID) -> ProjectTransferModel:
        return self.get(transfer_id)

    def execute_transfer(self, transfer_id: UUID, actor_no: int) -> ProjectTransferModel:
        """Apply an approved transfer to the employee's master data."""
        try:
            transfer = self._session.execute(
                select(ProjectTransferModel)
                .where(ProjectTransferModel.id == transfer_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if transfer is None:
                raise EntityNotFoundError("ProjectTransfer", transfer_id)
            if (
                transfer.trans_status != TransStatus.APPROVED.value
                or transfer.transfer_status != TransferStatus.READY.value
            ):
                raise InvalidTransferError(
                    f"Transfer {transfer_id} is not ready to execute "
                    f"(status={transfer.trans_status}, transfer_status={transfer.transfer_status})"
                )

            employee = load_employee(self._session, transfer.employee_no, for_update=True)
            if employee.primary_project_code != transfer.from_project_code:
                raise InvalidTransferError(
                    f"Employee {transfer.employee_no} left project "
                    f"{transfer.from_project_code} after the transfer was requested"
                )
            employee.primary_project_code = transfer.to_project_code
            employee.updated_by = actor_no

            transfer.transfer_status = TransferStatus.EXECUTED.value
            transfer.executed_by = actor_no
            transfer.executed_at = self._clock.now()
            transfer.updated_by = actor_no
            self._session.commit()
            logger.info(
                "project_transfer_executed",
                extra={
                    "employee_no": transfer.employee_no,
                    "from_project_code": transfer.from_project_code,
                    "to_project_code": transfer.to_project_code,
                },
            )
            return transfer
        except Exception:
            self._session.rollback()
            raise
