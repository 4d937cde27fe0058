"""
HR Modules.

Business flows routed through the approval engine.  Each module holds:
- ORM models for its request entity (``orm.py``)
- A flow object telling the approval gate how to build the approval
  context and what to do on final approval
- A service facade that owns the transaction boundary

Modules:
- Leave: vacation requests, balance deduction (VAC)
- Loan: loans with installment schedules (LOAN), postponements (POSTLOAN)
- Allowance: monthly allowance lines (ALLOW)
- Payroll: monthly payroll calculation (PAYROLL)
- Attendance: manual attendance requests (MANUAL_ATTENDANCE), overtime alerts
- Labor: project labor requests (LABOR_REQ)
- Transfer: project transfers (PROJ_TRANSFER)
"""

from hr_modules import allowance, attendance, labor, leave, loan, payroll, transfer

__all__ = ["allowance", "attendance", "labor", "leave", "loan", "payroll", "transfer"]
