"""Allowance Module (``hr_modules.allowance``): ALLOW chain requests."""

from hr_modules.allowance.orm import AllowanceRequestModel
from hr_modules.allowance.service import AllowanceFlow, AllowanceService

__all__ = ["AllowanceFlow", "AllowanceRequestModel", "AllowanceService"]
