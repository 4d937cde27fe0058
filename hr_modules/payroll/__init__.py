"""Payroll Module (``hr_modules.payroll``): monthly payroll through the PAYROLL chain."""

from hr_modules.payroll.orm import PayrollRecordModel
from hr_modules.payroll.service import PayrollFlow, PayrollService

__all__ = ["PayrollFlow", "PayrollRecordModel", "PayrollService"]
