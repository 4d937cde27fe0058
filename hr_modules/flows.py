"""
Flow registry: one ``ApprovalFlow`` per request type.

Used by code that handles requests generically (the auto-approval sweep,
timeline lookups) and needs to go from a ``RequestType`` to the entity
model and finalize-effect that belong to it.
"""

from __future__ import annotations

from types import MappingProxyType

from hr_kernel.domain.approval import RequestType
from hr_modules.allowance.service import AllowanceFlow
from hr_modules.attendance.service import ManualAttendanceFlow
from hr_modules.labor.service import LaborRequestFlow
from hr_modules.leave.service import LeaveFlow
from hr_modules.loan.service import LoanFlow, LoanPostponementFlow
from hr_modules.payroll.service import PayrollFlow
from hr_modules.transfer.service import ProjectTransferFlow
from hr_services.approval_gate import ApprovalFlow

FLOWS: MappingProxyType[RequestType, ApprovalFlow] = MappingProxyType(
    {
        flow.request_type: flow
        for flow in (
            AllowanceFlow(),
            LeaveFlow(),
            LoanFlow(),
            LoanPostponementFlow(),
            PayrollFlow(),
            ManualAttendanceFlow(),
            LaborRequestFlow(),
            ProjectTransferFlow(),
        )
    }
)


def flow_for(request_type: RequestType | str) -> ApprovalFlow:
    """Flow registered for ``request_type``; raises UnknownRequestTypeError."""
    return FLOWS[RequestType.parse(request_type)]
