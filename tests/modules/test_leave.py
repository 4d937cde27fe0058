"""Leave submission rules and the balance deduction on final approval."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from hr_kernel.exceptions import (
    EntityNotFoundError,
    InsufficientLeaveBalanceError,
    InvalidLeaveRequestError,
)
from hr_kernel.models.organization import EmployeeModel
from hr_modules.leave.service import LeaveService


@pytest.fixture
def leave(make_service):
    return make_service(LeaveService)


def _balance(session, employee_no):
    session.expire_all()
    return session.execute(
        select(EmployeeModel.leave_balance_days).where(EmployeeModel.employee_no == employee_no)
    ).scalar_one()


class TestSubmitLeave:
    def test_days_default_to_inclusive_span(self, leave, org):
        request = leave.submit_leave(org.worker, date(2024, 3, 11), date(2024, 3, 15))
        assert request.days == Decimal("5")
        assert request.leave_type == "ANNUAL"
        assert request.project_code == org.tower
        assert request.next_approval == org.tower_pm

    def test_explicit_days_for_half_day(self, leave, org):
        request = leave.submit_leave(org.worker, date(2024, 3, 11), date(2024, 3, 11), days=Decimal("0.5"))
        assert request.days == Decimal("0.5")

    def test_project_override_routes_to_that_manager(self, leave, org):
        request = leave.submit_leave(
            org.worker, date(2024, 3, 11), date(2024, 3, 12), project_code=org.bridge
        )
        assert request.next_approval == org.bridge_pm

    def test_end_before_start(self, leave, org):
        with pytest.raises(InvalidLeaveRequestError):
            leave.submit_leave(org.worker, date(2024, 3, 12), date(2024, 3, 11))

    @pytest.mark.parametrize("days", [Decimal("0"), Decimal("-1")])
    def test_days_must_be_positive(self, leave, org, days):
        with pytest.raises(InvalidLeaveRequestError):
            leave.submit_leave(org.worker, date(2024, 3, 11), date(2024, 3, 11), days=days)

    def test_balance_checked_at_submission(self, leave, org):
        # bridge_worker holds 5 days
        with pytest.raises(InsufficientLeaveBalanceError) as excinfo:
            leave.submit_leave(org.bridge_worker, date(2024, 3, 11), date(2024, 3, 16))
        assert excinfo.value.code == "INSUFFICIENT_LEAVE_BALANCE"

    def test_unknown_employee(self, leave):
        with pytest.raises(EntityNotFoundError):
            leave.submit_leave(999999, date(2024, 3, 11), date(2024, 3, 11))


class TestDeduction:
    def test_balance_deducted_once_on_final_approval(self, leave, org, session):
        request = leave.submit_leave(org.bridge_worker, date(2024, 3, 11), date(2024, 3, 12))
        leave.approve(request.id, org.bridge_pm)
        assert _balance(session, org.bridge_worker) == Decimal("5")

        leave.approve(request.id, org.hr_manager)
        assert _balance(session, org.bridge_worker) == Decimal("3")
        assert leave.get_leave(request.id).balance_deducted

    def test_rejected_request_keeps_balance(self, leave, org, session):
        request = leave.submit_leave(org.bridge_worker, date(2024, 3, 11), date(2024, 3, 12))
        leave.reject(request.id, org.bridge_pm, "site shutdown that week")
        assert _balance(session, org.bridge_worker) == Decimal("5")
        assert not leave.get_leave(request.id).balance_deducted
