"""
Loan Module (``hr_modules.loan``).

Loans (LOAN chain) with an installment schedule written on final approval,
and installment postponements (POSTLOAN chain).
"""

from hr_modules.loan.helpers import ScheduledInstallment, add_months, build_installment_schedule
from hr_modules.loan.orm import (
    InstallmentStatus,
    LoanInstallmentModel,
    LoanModel,
    LoanPostponementModel,
)
from hr_modules.loan.service import (
    LoanFlow,
    LoanPostponementFlow,
    LoanPostponementService,
    LoanService,
    installments_due_in,
    settle_installment,
)

__all__ = [
    "InstallmentStatus",
    "LoanFlow",
    "LoanInstallmentModel",
    "LoanModel",
    "LoanPostponementFlow",
    "LoanPostponementModel",
    "LoanPostponementService",
    "LoanService",
    "ScheduledInstallment",
    "add_months",
    "build_installment_schedule",
    "installments_due_in",
    "settle_installment",
]
