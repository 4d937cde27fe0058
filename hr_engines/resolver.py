"""
Module: hr_engines.resolver
Responsibility:
    Turn an approver rule plus a request context into exactly one employee
    number, or fail with ``NoApproverResolvedError``.

Architecture position:
    Engines -- pure computation over an injected ``OrganizationDirectory``.
    The directory may be SQL-backed, but the resolver itself never writes,
    caches or falls back.

Invariants enforced:
    - No silent fallback.  A department without a manager, a project
      without a manager, a role with no (or several) holders, or an
      inactive / unknown approver is a hard error.  Skipping a level would
      let a loan or payroll advance without a designated human.
    - Every resolved approver is a known, active employee.

Failure modes:
    - NoApproverResolvedError with the rule kind, request type, department
      and project codes and a short reason.
    - TypeError for an ApproverRule subclass the resolver does not know.
"""

from __future__ import annotations

from hr_kernel.domain.approval import (
    ApproverRule,
    DepartmentManager,
    DirectManager,
    FixedEmployee,
    ProjectManager,
    ProjectRegionalManager,
    RequestContext,
    RoleHolder,
)
from hr_kernel.domain.organization import OrganizationDirectory
from hr_kernel.exceptions import NoApproverResolvedError
from hr_kernel.logging_config import get_logger

logger = get_logger("engines.resolver")


class ApproverResolver:
    """
    Resolves approver rules against an organization directory.

    Contract:
        ``resolve(rule, context)`` returns an active employee number or
        raises ``NoApproverResolvedError``.

    Non-goals:
        Does not decide whether a level exists; that is the chain
        configuration's job.
    """

    def __init__(self, directory: OrganizationDirectory):
        self._directory = directory

    def resolve(self, rule: ApproverRule, context: RequestContext) -> int:
        if isinstance(rule, FixedEmployee):
            candidate = rule.employee_no
        elif isinstance(rule, DirectManager):
            candidate = self._direct_manager(rule, context)
        elif isinstance(rule, DepartmentManager):
            if context.department_code is None:
                raise self._failure(rule, context, "request has no department")
            candidate = self._directory.department_manager(context.department_code)
            if candidate is None:
                raise self._failure(
                    rule, context, f"department {context.department_code} has no manager"
                )
        elif isinstance(rule, ProjectManager):
            if context.project_code is None:
                raise self._failure(rule, context, "request has no project")
            candidate = self._directory.project_manager(context.project_code)
            if candidate is None:
                raise self._failure(
                    rule, context, f"project {context.project_code} has no manager"
                )
        elif isinstance(rule, ProjectRegionalManager):
            if context.project_code is None:
                raise self._failure(rule, context, "request has no project")
            candidate = self._directory.project_regional_manager(context.project_code)
            if candidate is None:
                raise self._failure(
                    rule,
                    context,
                    f"project {context.project_code} has no regional manager",
                )
        elif isinstance(rule, RoleHolder):
            holders = self._directory.role_holders(rule.role)
            if not holders:
                raise self._failure(rule, context, f"role {rule.role} has no holder")
            if len(holders) > 1:
                raise self._failure(
                    rule, context, f"role {rule.role} has {len(holders)} holders"
                )
            candidate = holders[0]
        else:
            raise TypeError(f"Unsupported approver rule: {type(rule).__name__}")

        self._require_active(rule, context, candidate)
        return candidate

    def _direct_manager(self, rule: ApproverRule, context: RequestContext) -> int:
        employee = self._directory.employee(context.employee_no)
        if employee is None:
            raise self._failure(rule, context, f"employee {context.employee_no} not found")
        if employee.direct_manager_no is None:
            raise self._failure(
                rule, context, f"employee {context.employee_no} has no direct manager"
            )
        return employee.direct_manager_no

    def _require_active(
        self, rule: ApproverRule, context: RequestContext, employee_no: int
    ) -> None:
        record = self._directory.employee(employee_no)
        if record is None:
            raise self._failure(rule, context, f"approver {employee_no} not found")
        if not record.is_active:
            raise self._failure(rule, context, f"approver {employee_no} is inactive")

    @staticmethod
    def _failure(
        rule: ApproverRule, context: RequestContext, reason: str
    ) -> NoApproverResolvedError:
        logger.error(
            "approver_resolution_failed",
            extra={
                "rule_kind": rule.kind,
                "request_type": context.request_type.value,
                "employee_no": context.employee_no,
                "department_code": context.department_code,
                "project_code": context.project_code,
                "reason": reason,
            },
        )
        return NoApproverResolvedError(
            rule_kind=rule.kind,
            request_type=context.request_type.value,
            reason=reason,
            department_code=context.department_code,
            project_code=context.project_code,
        )
