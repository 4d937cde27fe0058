"""Kernel ORM models: organization master data and approval chain configuration."""

from hr_kernel.models.approval_chain import ApprovalChainModel, ApprovalChainStepModel
from hr_kernel.models.approval_tracking import ApprovalTrackedMixin, trans_status_check
from hr_kernel.models.organization import (
    DepartmentModel,
    EmployeeModel,
    ProjectModel,
    RoleAssignmentModel,
)

__all__ = [
    "ApprovalChainModel",
    "ApprovalChainStepModel",
    "ApprovalTrackedMixin",
    "DepartmentModel",
    "EmployeeModel",
    "ProjectModel",
    "RoleAssignmentModel",
    "trans_status_check",
]
