"""
Organization directory protocol.

Responsibility:
    The narrow read interface the approver resolver needs from the
    organization: who manages a department or a project, who an
    employee's direct manager is, who holds a role.

Architecture position:
    Kernel > Domain -- pure.  ``StaticOrganizationDirectory`` is an
    in-memory implementation for engines and tests;
    ``hr_kernel.services.organization_directory.SqlOrganizationDirectory``
    reads the ORM tables.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class EmployeeRecord:
    """Organization facts about one employee."""

    employee_no: int
    department_code: int | None = None
    project_code: int | None = None
    direct_manager_no: int | None = None
    is_active: bool = True


@runtime_checkable
class OrganizationDirectory(Protocol):
    """Read-only organization lookups.

    Contract:
        Every method returns ``None`` (or an empty tuple) when the
        organization has no answer.  Implementations never invent a
        fallback approver.
    """

    def employee(self, employee_no: int) -> EmployeeRecord | None: ...

    def department_manager(self, department_code: int) -> int | None: ...

    def project_manager(self, project_code: int) -> int | None: ...

    def project_regional_manager(self, project_code: int) -> int | None: ...

    def role_holders(self, role: str) -> tuple[int, ...]: ...


class StaticOrganizationDirectory:
    """Dictionary-backed directory."""

    def __init__(
        self,
        employees: Iterable[EmployeeRecord] = (),
        department_managers: Mapping[int, int] | None = None,
        project_managers: Mapping[int, int] | None = None,
        regional_managers: Mapping[int, int] | None = None,
        roles: Mapping[str, Iterable[int]] | None = None,
    ):
        self._employees = {e.employee_no: e for e in employees}
        self._department_managers = dict(department_managers or {})
        self._project_managers = dict(project_managers or {})
        self._regional_managers = dict(regional_managers or {})
        self._roles = {k: tuple(v) for k, v in (roles or {}).items()}

    def employee(self, employee_no: int) -> EmployeeRecord | None:
        return self._employees.get(employee_no)

    def department_manager(self, department_code: int) -> int | None:
        return self._department_managers.get(department_code)

    def project_manager(self, project_code: int) -> int | None:
        return self._project_managers.get(project_code)

    def project_regional_manager(self, project_code: int) -> int | None:
        return self._regional_managers.get(project_code)

    def role_holders(self, role: str) -> tuple[int, ...]:
        return self._roles.get(role, ())
