"""
Tests for ApprovalGate through the leave flow.

Covers:
- Submission: first level, outbox row, submitted_at
- Approve: authorization, intermediate and final levels, finalize-effect
- Reject: mandatory reason, terminal state, no finalize-effect
- Stale decisions (terminal state, acting_level mismatch)
- Explicit override
- Pending lists and timelines
- Rollback of every side effect on failure
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from hr_kernel.domain.approval import TimelineStepStatus, TransStatus
from hr_kernel.exceptions import (
    ApprovalAlreadyProcessedError,
    EntityNotFoundError,
    InsufficientLeaveBalanceError,
    NoApproverResolvedError,
    RejectionReasonRequiredError,
    UnauthorizedApproverError,
)
from hr_kernel.models.organization import EmployeeModel
from hr_modules.leave.orm import LeaveRequestModel
from hr_modules.leave.service import LeaveService


@pytest.fixture
def leave(make_service):
    return make_service(LeaveService)


def _submit(leave, org, **kw):
    params = dict(employee_no=org.worker, start_date=date(2024, 3, 11), end_date=date(2024, 3, 13))
    params.update(kw)
    return leave.submit_leave(**params)


def _employee(session, employee_no):
    return session.execute(
        select(EmployeeModel).where(EmployeeModel.employee_no == employee_no)
    ).scalar_one()


def _balance(session, employee_no):
    session.expire_all()
    return _employee(session, employee_no).leave_balance_days


class TestSubmit:
    def test_first_level_assigned(self, leave, org, clock):
        request = _submit(leave, org)
        assert request.trans_status == TransStatus.PENDING.value
        assert request.next_app_level == 1
        assert request.next_approval == org.tower_pm
        assert request.next_app_level_name == "Project Manager"
        assert request.submitted_at == clock.now()
        assert request.days == Decimal(3)

    def test_submission_notifies_first_approver(self, leave, org, outbox_rows):
        request = _submit(leave, org)
        rows = outbox_rows("LEAVE_SUBMITTED")
        assert len(rows) == 1
        assert rows[0].recipient_employee_no == org.tower_pm
        assert rows[0].entity_id == str(request.id)
        assert rows[0].status == "pending"
        assert rows[0].variables["days"] == "3"

    def test_submission_logged_with_context(self, leave, org, captured_logs):
        request = _submit(leave, org)
        records = [r for r in captured_logs() if r["message"] == "approval_request_submitted"]
        assert len(records) == 1
        assert records[0]["request_type"] == "VAC"
        assert records[0]["entity_id"] == str(request.id)
        assert records[0]["next_approver"] == org.tower_pm

    def test_unresolvable_first_approver_persists_nothing(self, leave, org, session, outbox_rows):
        with pytest.raises(NoApproverResolvedError):
            _submit(leave, org, project_code=999)
        assert session.execute(select(LeaveRequestModel)).scalars().all() == []
        assert outbox_rows() == []


class TestApprove:
    def test_intermediate_then_final(self, leave, org, session, outbox_rows):
        request = _submit(leave, org)

        first = leave.approve(request.id, org.tower_pm)
        assert first.acted_level == 1
        assert not first.finalized
        assert first.state.next_approver == org.hr_manager
        assert outbox_rows("LEAVE_APPROVED_INTERMEDIATE")[0].recipient_employee_no == org.hr_manager
        assert _balance(session, org.worker) == Decimal("21")

        final = leave.approve(request.id, org.hr_manager)
        assert final.acted_level == 2
        assert final.finalized
        assert final.state.trans_status == TransStatus.APPROVED

        stored = leave.get(request.id)
        assert stored.trans_status == "A"
        assert stored.next_approval is None
        assert stored.next_app_level is None
        assert stored.approved_by == org.hr_manager
        assert stored.balance_deducted
        assert _balance(session, org.worker) == Decimal("18")
        assert outbox_rows("LEAVE_APPROVED_FINAL")[0].recipient_employee_no == org.worker

    def test_wrong_approver_rejected_and_nothing_changes(self, leave, org, outbox_rows):
        request = _submit(leave, org)
        with pytest.raises(UnauthorizedApproverError) as exc_info:
            leave.approve(request.id, org.hr_manager)
        assert exc_info.value.expected_approver == org.tower_pm
        stored = leave.get(request.id)
        assert stored.next_app_level == 1
        assert outbox_rows("LEAVE_APPROVED_INTERMEDIATE") == []

    def test_missing_approver_identity(self, leave, org):
        request = _submit(leave, org)
        with pytest.raises(UnauthorizedApproverError):
            leave.approve(request.id, None)

    def test_approve_after_final_is_already_processed(self, leave, org):
        request = _submit(leave, org)
        leave.approve(request.id, org.tower_pm)
        leave.approve(request.id, org.hr_manager)
        with pytest.raises(ApprovalAlreadyProcessedError) as exc_info:
            leave.approve(request.id, org.hr_manager)
        assert exc_info.value.code == "APPROVAL_ALREADY_PROCESSED"

    def test_stale_acting_level(self, leave, org):
        """An approver acting on a level that already moved on is refused."""
        request = _submit(leave, org)
        leave.approve(request.id, org.tower_pm, acting_level=1)
        with pytest.raises(ApprovalAlreadyProcessedError):
            leave.approve(request.id, org.tower_pm, acting_level=1)
        assert leave.get(request.id).next_app_level == 2

    def test_override_is_explicit(self, leave, org, captured_logs):
        request = _submit(leave, org)
        with pytest.raises(UnauthorizedApproverError):
            leave.approve(request.id, org.gm)
        decision = leave.approve(request.id, org.gm, allow_override=True)
        assert decision.acted_level == 1
        assert decision.state.next_level == 2
        records = [r for r in captured_logs() if r["message"] == "approval_level_approved"]
        assert records[-1]["override"] is True

    def test_unknown_request(self, leave, org):
        with pytest.raises(EntityNotFoundError):
            leave.approve(uuid4(), org.tower_pm)

    def test_finalize_failure_rolls_back_approval(self, leave, org, session, outbox_rows):
        """Balance spent elsewhere between submission and approval."""
        request = _submit(leave, org)
        leave.approve(request.id, org.tower_pm)
        employee = _employee(session, org.worker)
        employee.leave_balance_days = Decimal("1")
        session.commit()

        with pytest.raises(InsufficientLeaveBalanceError):
            leave.approve(request.id, org.hr_manager)
        session.expire_all()
        stored = leave.get(request.id)
        assert stored.trans_status == "N"
        assert stored.next_app_level == 2
        assert outbox_rows("LEAVE_APPROVED_FINAL") == []

    def test_version_conflict_reported_before_finalize(self, leave, org, session, monkeypatch):
        """Another session bumped the version: the final approval is refused, nothing is deducted."""
        request = _submit(leave, org)
        leave.approve(request.id, org.tower_pm)
        real_flush = session.flush

        def conflicting_flush(*args, **kwargs):
            if any(isinstance(o, LeaveRequestModel) and o.approved_by is not None for o in session.dirty):
                raise StaleDataError("approval_version changed")
            return real_flush(*args, **kwargs)

        monkeypatch.setattr(session, "flush", conflicting_flush)
        with pytest.raises(ApprovalAlreadyProcessedError):
            leave.approve(request.id, org.hr_manager)
        monkeypatch.undo()

        assert _balance(session, org.worker) == Decimal("21")
        stored = leave.get(request.id)
        assert stored.is_pending
        assert not stored.balance_deducted


class TestReject:
    def test_reject_is_terminal(self, leave, org, session, outbox_rows):
        request = _submit(leave, org)
        leave.approve(request.id, org.tower_pm)

        decision = leave.reject(request.id, org.hr_manager, "Peak season")
        assert decision.acted_level == 2
        assert decision.state.trans_status == TransStatus.REJECTED

        stored = leave.get(request.id)
        assert stored.trans_status == "R"
        assert stored.next_approval is None
        assert stored.next_app_level is None
        assert stored.rejected_by == org.hr_manager
        assert stored.rejected_level == 2
        assert stored.rejection_reason == "Peak season"
        assert not stored.balance_deducted
        assert _balance(session, org.worker) == Decimal("21")

        row = outbox_rows("LEAVE_REJECTED")[0]
        assert row.recipient_employee_no == org.worker
        assert row.variables["rejection_reason"] == "Peak season"
        assert row.variables["rejected_level"] == 2

        with pytest.raises(ApprovalAlreadyProcessedError):
            leave.approve(request.id, org.hr_manager)

    @pytest.mark.parametrize("reason", ["", "   "])
    def test_reason_required(self, leave, org, reason):
        request = _submit(leave, org)
        with pytest.raises(RejectionReasonRequiredError):
            leave.reject(request.id, org.tower_pm, reason)
        assert leave.get(request.id).is_pending

    def test_only_current_approver_rejects(self, leave, org):
        request = _submit(leave, org)
        with pytest.raises(UnauthorizedApproverError):
            leave.reject(request.id, org.bridge_pm, "Not my project")


class TestQueries:
    def test_pending_for_follows_the_chain(self, leave, org):
        first = _submit(leave, org)
        second = _submit(leave, org, start_date=date(2024, 4, 1), end_date=date(2024, 4, 1))
        assert {r.id for r in leave.list_pending_for(org.tower_pm)} == {first.id, second.id}

        leave.approve(first.id, org.tower_pm)
        assert [r.id for r in leave.list_pending_for(org.tower_pm)] == [second.id]
        assert [r.id for r in leave.list_pending_for(org.hr_manager)] == [first.id]

    def test_timeline(self, leave, org):
        request = _submit(leave, org)
        leave.approve(request.id, org.tower_pm)
        timeline = leave.timeline(request.id)
        assert [(s.level, s.approver_no, s.status) for s in timeline] == [
            (1, org.tower_pm, TimelineStepStatus.COMPLETED),
            (2, org.hr_manager, TimelineStepStatus.PENDING),
        ]

    def test_timeline_after_rejection(self, leave, org):
        request = _submit(leave, org)
        leave.reject(request.id, org.tower_pm, "Overlaps a site inspection")
        statuses = [s.status for s in leave.timeline(request.id)]
        assert statuses == [TimelineStepStatus.REJECTED, TimelineStepStatus.SKIPPED]

    def test_get_unknown(self, leave, org):
        with pytest.raises(EntityNotFoundError):
            leave.get(uuid4())
