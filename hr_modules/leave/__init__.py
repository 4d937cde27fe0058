"""
Leave Module (``hr_modules.leave``).

Leave requests routed through the VAC approval chain; final approval
deducts the employee's leave balance.
"""

from hr_modules.leave.orm import LeaveRequestModel
from hr_modules.leave.service import LeaveFlow, LeaveService

__all__ = ["LeaveFlow", "LeaveRequestModel", "LeaveService"]
