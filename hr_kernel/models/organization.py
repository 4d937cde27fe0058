"""
Module: hr_kernel.models.organization
Responsibility: ORM persistence for the organization master data the
    approver resolver reads: employees, departments, projects and role
    assignments.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - employee_no, department_code and project_code are unique business keys.
    - At most one active assignment per (role, employee_no).

Audit relevance:
    Manager columns decide who approves money-moving requests.  Changes
    to them are stamped through TrackedBase (updated_by / updated_at).
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase
from hr_kernel.domain.organization import EmployeeRecord


class EmployeeModel(TrackedBase):
    """
    Employee master row.

    Contract:
        ``leave_balance_days`` is only ever decreased by the leave flow's
        finalize-effect.  ``primary_project_code`` is only changed by an
        executed project transfer.
    """

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("employee_no", name="uq_employees_employee_no"),
        Index("idx_employees_department", "department_code"),
    )

    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    primary_project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    direct_manager_no: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    monthly_salary: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    leave_balance_days: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_record(self) -> EmployeeRecord:
        return EmployeeRecord(
            employee_no=self.employee_no,
            department_code=self.department_code,
            project_code=self.primary_project_code,
            direct_manager_no=self.direct_manager_no,
            is_active=self.is_active,
        )

    def __repr__(self) -> str:
        return f"<EmployeeModel {self.employee_no} {self.name}>"


class DepartmentModel(TrackedBase):
    __tablename__ = "departments"

    __table_args__ = (
        UniqueConstraint("department_code", name="uq_departments_code"),
    )

    department_code: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    manager_no: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    def __repr__(self) -> str:
        return f"<DepartmentModel {self.department_code} manager={self.manager_no}>"


class ProjectModel(TrackedBase):
    __tablename__ = "projects"

    __table_args__ = (
        UniqueConstraint("project_code", name="uq_projects_code"),
    )

    project_code: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    project_manager_no: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    regional_manager_no: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<ProjectModel {self.project_code} pm={self.project_manager_no}>"


class RoleAssignmentModel(TrackedBase):
    """Organizational role (HR_MANAGER, FINANCE_MANAGER, ...) held by an employee."""

    __tablename__ = "role_assignments"

    __table_args__ = (
        UniqueConstraint("role", "employee_no", name="uq_role_assignments_role_employee"),
        Index("idx_role_assignments_role", "role", "is_active"),
    )

    role: Mapped[str] = mapped_column(String(50), nullable=False)
    employee_no: Mapped[int] = mapped_column(BigInteger, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<RoleAssignmentModel {self.role}={self.employee_no}>"
