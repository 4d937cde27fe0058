"""
Tests for payroll calculation, versioning and approval.

Covers:
- net = gross + effective allowances - deductions - installments due
- One latest payroll per employee and month; recalculation only after rejection
- HR, finance, GM chain; final approval settles covered installments
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from hr_kernel.exceptions import BusinessRuleError, DuplicatePayrollError
from hr_modules.allowance.service import AllowanceService
from hr_modules.loan.orm import InstallmentStatus
from hr_modules.loan.service import LoanService
from hr_modules.payroll.orm import PayrollRecordModel
from hr_modules.payroll.service import PayrollService


@pytest.fixture
def payroll(make_service):
    return make_service(PayrollService)


@pytest.fixture
def march_lines(make_service, org):
    """An effective March allowance and a loan whose first installment falls in March."""
    allowances = make_service(AllowanceService)
    line = allowances.submit_allowance(org.worker, 12, Decimal("250"), date(2024, 3, 15))
    allowances.approve(line.id, org.engineering_head)
    allowances.approve(line.id, org.hr_manager)
    # Not yet effective, so excluded
    allowances.submit_allowance(org.worker, 13, Decimal("999"), date(2024, 3, 20))

    loans = make_service(LoanService)
    loan = loans.submit_loan(org.worker, Decimal("900"), 3, date(2024, 3, 31))
    loans.approve(loan.id, org.finance_manager)
    return loans.get_loan(loan.id)


def _approve_all(payroll, record, org):
    for approver in (org.hr_manager, org.finance_manager, org.gm):
        decision = payroll.approve(record.id, approver)
    return decision


class TestCalculation:
    def test_net_pay(self, payroll, org, march_lines):
        record = payroll.submit_payroll(org.worker, 2024, 3, other_deductions=Decimal("100"))

        assert record.payroll_month == "2024-03"
        assert record.payroll_version == 1
        assert record.is_latest
        assert record.payroll_status == "DRAFT"
        assert record.gross_salary == Decimal("6000")
        assert record.total_allowances == Decimal("250")
        assert record.total_deductions == Decimal("100")
        assert record.loan_deduction == Decimal("300")
        assert record.net_amount == Decimal("5850")
        assert record.installment_ids == [str(march_lines.installments[0].id)]

    def test_other_months_ignored(self, payroll, org, march_lines):
        record = payroll.submit_payroll(org.worker, 2024, 2)
        assert record.total_allowances == Decimal("0")
        assert record.loan_deduction == Decimal("0")
        assert record.installment_ids == []

    def test_negative_net_refused(self, payroll, org, session):
        with pytest.raises(BusinessRuleError, match="negative"):
            payroll.submit_payroll(org.orphan_worker, 2024, 3, other_deductions=Decimal("5000"))
        assert session.execute(select(PayrollRecordModel)).scalars().all() == []

    def test_negative_deductions_refused(self, payroll, org):
        with pytest.raises(BusinessRuleError, match="must not be negative"):
            payroll.submit_payroll(org.worker, 2024, 3, other_deductions=Decimal("-1"))


class TestVersioning:
    def test_duplicate_month(self, payroll, org):
        payroll.submit_payroll(org.worker, 2024, 3)
        with pytest.raises(DuplicatePayrollError):
            payroll.submit_payroll(org.worker, 2024, 3)

    def test_pending_payroll_cannot_be_recalculated(self, payroll, org):
        payroll.submit_payroll(org.worker, 2024, 3)
        with pytest.raises(DuplicatePayrollError):
            payroll.recalculate_payroll(org.worker, 2024, 3, reason="Late overtime")

    def test_recalculate_after_rejection(self, payroll, org, session):
        first = payroll.submit_payroll(org.worker, 2024, 3)
        payroll.reject(first.id, org.hr_manager, "Missing overtime")

        second = payroll.recalculate_payroll(
            org.worker, 2024, 3, reason="Overtime added", other_deductions=Decimal("50")
        )
        assert second.payroll_version == 2
        assert second.is_latest
        assert second.recalculation_reason == "Overtime added"
        assert second.net_amount == Decimal("5950")
        assert second.next_approval == org.hr_manager

        session.expire_all()
        assert payroll.get_payroll(first.id).is_latest is False
        latest = session.execute(
            select(PayrollRecordModel).where(PayrollRecordModel.is_latest.is_(True))
        ).scalars().all()
        assert [r.id for r in latest] == [second.id]

    def test_recalculate_without_existing_submits(self, payroll, org):
        record = payroll.recalculate_payroll(org.worker, 2024, 4, reason="First run")
        assert record.payroll_version == 1


class TestPayrollApproval:
    def test_three_level_chain(self, payroll, org):
        record = payroll.submit_payroll(org.worker, 2024, 3)
        assert record.next_approval == org.hr_manager
        payroll.approve(record.id, org.hr_manager)
        assert payroll.get_payroll(record.id).next_approval == org.finance_manager
        payroll.approve(record.id, org.finance_manager)
        assert payroll.get_payroll(record.id).next_approval == org.gm

    def test_final_approval_settles_installments(self, payroll, org, march_lines, clock, outbox_rows):
        record = payroll.submit_payroll(org.worker, 2024, 3)
        decision = _approve_all(payroll, record, org)

        assert decision.finalized
        stored = payroll.get_payroll(record.id)
        assert stored.payroll_status == "APPROVED"
        assert stored.trans_status == "A"

        first, second, _ = march_lines.installments
        assert first.payment_status == InstallmentStatus.PAID.value
        assert first.paid_at == clock.today()
        assert second.payment_status == InstallmentStatus.UNPAID.value
        assert outbox_rows("PAYROLL_APPROVED_FINAL")[0].variables["payroll_month"] == "2024-03"

    def test_approved_payroll_cannot_be_recalculated(self, payroll, org):
        record = payroll.submit_payroll(org.worker, 2024, 3)
        _approve_all(payroll, record, org)
        with pytest.raises(DuplicatePayrollError):
            payroll.recalculate_payroll(org.worker, 2024, 3, reason="Too late")
