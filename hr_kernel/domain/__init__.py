"""
Pure domain layer.

Immutable value objects with no dependency on the ORM, the database or
the wall clock (``SystemClock`` excepted).
"""

from hr_kernel.domain.approval import (
    ApprovalChain,
    ApprovalChainConfig,
    ApprovalChainStep,
    ApprovalState,
    ApprovalTimelineStep,
    ApproverRule,
    DepartmentManager,
    DirectManager,
    FixedEmployee,
    ProjectManager,
    ProjectRegionalManager,
    RequestContext,
    RequestType,
    RoleHolder,
    TimelineStepStatus,
    TransStatus,
    parse_rule,
)
from hr_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from hr_kernel.domain.organization import (
    EmployeeRecord,
    OrganizationDirectory,
    StaticOrganizationDirectory,
)

__all__ = [
    "ApprovalChain",
    "ApprovalChainConfig",
    "ApprovalChainStep",
    "ApprovalState",
    "ApprovalTimelineStep",
    "ApproverRule",
    "Clock",
    "DepartmentManager",
    "DeterministicClock",
    "DirectManager",
    "EmployeeRecord",
    "FixedEmployee",
    "OrganizationDirectory",
    "ProjectManager",
    "ProjectRegionalManager",
    "RequestContext",
    "RequestType",
    "RoleHolder",
    "StaticOrganizationDirectory",
    "SystemClock",
    "TimelineStepStatus",
    "TransStatus",
    "parse_rule",
]
