"""
Tests for allowance requests.

Covers:
- Type code and amount validation
- Default chain: department manager, then HR; final approval makes the line effective
- A chain set with an empty ALLOW chain approves on submission
"""

from datetime import date
from decimal import Decimal

import pytest

from hr_config import get_active_chains
from hr_kernel.db.base import SYSTEM_ACTOR_NO
from hr_kernel.exceptions import InvalidAllowanceError
from hr_modules.allowance.service import AllowanceService
from hr_services.factory import build_engine


@pytest.fixture
def allowances(make_service):
    return make_service(AllowanceService)


class TestValidation:
    @pytest.mark.parametrize("type_code", [9, 20])
    def test_type_code_range(self, allowances, org, type_code):
        with pytest.raises(InvalidAllowanceError, match="between 10 and 19"):
            allowances.submit_allowance(org.worker, type_code, Decimal("100"), date(2024, 3, 1))

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_amount_positive(self, allowances, org, amount):
        with pytest.raises(InvalidAllowanceError, match="must be positive"):
            allowances.submit_allowance(org.worker, 12, Decimal(amount), date(2024, 3, 1))


class TestDefaultChain:
    def test_department_manager_then_hr(self, allowances, org, outbox_rows):
        line = allowances.submit_allowance(org.worker, 12, Decimal("250"), date(2024, 3, 15), notes="Site hardship")
        assert line.next_approval == org.engineering_head
        assert line.created_by == org.worker
        assert not line.is_effective

        allowances.approve(line.id, org.engineering_head)
        assert not allowances.get_allowance(line.id).is_effective
        decision = allowances.approve(line.id, org.hr_manager)

        assert decision.finalized
        stored = allowances.get_allowance(line.id)
        assert stored.is_effective
        assert stored.approved_by == org.hr_manager
        assert outbox_rows("ALLOWANCE_APPROVED_FINAL")[0].variables["amount"] == "250"

    def test_rejected_line_never_effective(self, allowances, org):
        line = allowances.submit_allowance(org.worker, 11, Decimal("80"), date(2024, 3, 15))
        allowances.reject(line.id, org.engineering_head, "Not eligible this month")
        assert not allowances.get_allowance(line.id).is_effective


class TestAutoApproval:
    @pytest.fixture
    def auto_allowances(self, session, clock):
        engine = build_engine(session, get_active_chains("attendance_allowances"))
        return AllowanceService(session, engine, clock)

    def test_empty_chain_approves_on_submission(self, auto_allowances, org, outbox_rows):
        line = auto_allowances.submit_allowance(
            org.worker, 15, Decimal("120"), date(2024, 3, 4), is_system_generated=True
        )
        assert line.trans_status == "A"
        assert line.approved_by == SYSTEM_ACTOR_NO
        assert line.is_effective
        assert line.created_by == SYSTEM_ACTOR_NO
        assert line.next_approval is None

        rows = outbox_rows()
        assert [r.event_type for r in rows] == ["ALLOWANCE_APPROVED_FINAL"]
        assert rows[0].recipient_employee_no == org.worker

    def test_explicit_creator_kept(self, auto_allowances, org):
        line = auto_allowances.submit_allowance(
            org.worker, 15, Decimal("120"), date(2024, 3, 4), is_system_generated=True, created_by=org.hr_manager
        )
        assert line.created_by == org.hr_manager
