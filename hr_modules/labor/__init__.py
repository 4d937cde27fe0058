"""Labor Request Module (``hr_modules.labor``): LABOR_REQ chain requests."""

from hr_modules.labor.orm import LaborRequestModel, LaborRequestPositionModel, LaborRequestStatus
from hr_modules.labor.service import LaborPosition, LaborRequestFlow, LaborRequestService

__all__ = [
    "LaborPosition",
    "LaborRequestFlow",
    "LaborRequestModel",
    "LaborRequestPositionModel",
    "LaborRequestService",
    "LaborRequestStatus",
]
