"""
SqlOrganizationDirectory -- OrganizationDirectory backed by the ORM tables.

Responsibility:
    Answer the resolver's organization questions (department manager,
    project manager, regional manager, direct manager, role holders) from
    ``employees`` / ``departments`` / ``projects`` / ``role_assignments``.

Architecture position:
    Kernel > Services.  Read-only; never flushes or commits.

Failure modes:
    None of its own.  Missing rows yield ``None`` / ``()``; the resolver
    turns those into ``NoApproverResolvedError``.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_kernel.domain.organization import EmployeeRecord
from hr_kernel.models.organization import (
    DepartmentModel,
    EmployeeModel,
    ProjectModel,
    RoleAssignmentModel,
)


class SqlOrganizationDirectory:
    """Session-bound organization lookups."""

    def __init__(self, session: Session):
        self._session = session

    def employee(self, employee_no: int) -> EmployeeRecord | None:
        row = self._session.execute(
            select(EmployeeModel).where(EmployeeModel.employee_no == employee_no)
        ).scalar_one_or_none()
        return row.to_record() if row is not None else None

    def department_manager(self, department_code: int) -> int | None:
        return self._session.execute(
            select(DepartmentModel.manager_no).where(
                DepartmentModel.department_code == department_code
            )
        ).scalar_one_or_none()

    def project_manager(self, project_code: int) -> int | None:
        return self._session.execute(
            select(ProjectModel.project_manager_no).where(
                ProjectModel.project_code == project_code
            )
        ).scalar_one_or_none()

    def project_regional_manager(self, project_code: int) -> int | None:
        return self._session.execute(
            select(ProjectModel.regional_manager_no).where(
                ProjectModel.project_code == project_code
            )
        ).scalar_one_or_none()

    def role_holders(self, role: str) -> tuple[int, ...]:
        rows = self._session.execute(
            select(RoleAssignmentModel.employee_no)
            .where(
                RoleAssignmentModel.role == role,
                RoleAssignmentModel.is_active.is_(True),
            )
            .order_by(RoleAssignmentModel.employee_no)
        ).scalars()
        return tuple(rows)
