"""
Concurrent decisions on the same request.

Two approvers working from the same snapshot: the second decision must be
refused, never applied twice.  The SQLite tests interleave two sessions
by hand, including at the final level where approval has a side effect;
the PostgreSQL test races real threads against row locks.
"""

import threading
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.orm.exc import StaleDataError

from hr_kernel.exceptions import ApprovalAlreadyProcessedError
from hr_kernel.models.organization import EmployeeModel
from hr_modules.leave.orm import LeaveRequestModel
from hr_modules.leave.service import LeaveService
from hr_modules.loan.orm import LoanInstallmentModel
from hr_modules.loan.service import LoanService
from hr_services.factory import build_engine


@pytest.fixture
def second_session(session_factory):
    sess = session_factory()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def leave(make_service):
    return make_service(LeaveService)


def _submit(leave, org):
    return leave.submit_leave(org.worker, date(2024, 3, 25), date(2024, 3, 26))


class TestInterleavedSessions:
    def test_stale_acting_level_refused(self, leave, make_service, second_session, org):
        request = _submit(leave, org)
        other = make_service(LeaveService, target_session=second_session)

        # Both approvers saw level 1; the first one wins.
        leave.approve(request.id, org.tower_pm, acting_level=1)
        with pytest.raises(ApprovalAlreadyProcessedError):
            other.approve(request.id, org.tower_pm, acting_level=1)

        second_session.rollback()
        assert other.get(request.id).next_app_level == 2

    def test_reject_after_approval_refused(self, leave, make_service, second_session, org):
        request = _submit(leave, org)
        other = make_service(LeaveService, target_session=second_session)

        leave.approve(request.id, org.tower_pm)
        with pytest.raises(ApprovalAlreadyProcessedError):
            other.reject(request.id, org.tower_pm, "Changed my mind", acting_level=1)

    def test_version_counter_catches_stale_write(self, leave, session, second_session, org):
        request = _submit(leave, org)
        stale = second_session.execute(
            select(LeaveRequestModel).where(LeaveRequestModel.id == request.id)
        ).scalar_one()
        second_session.commit()
        stale_version = stale.approval_version

        leave.approve(request.id, org.tower_pm)
        assert leave.get(request.id).approval_version == stale_version + 1
        session.commit()

        stale.trans_status = "R"
        with pytest.raises(StaleDataError):
            second_session.flush()


class TestFinalLevelRace:
    """Two approvers act on the last level from the same snapshot; the finalize effect happens once."""

    def test_leave_balance_deducted_once(self, leave, make_service, session, second_session, org):
        request = _submit(leave, org)
        leave.approve(request.id, org.tower_pm)

        other = make_service(LeaveService, target_session=second_session)
        snapshot = other.get(request.id)
        second_session.commit()
        assert snapshot.next_app_level == 2

        leave.approve(request.id, org.hr_manager, acting_level=2)
        with pytest.raises(ApprovalAlreadyProcessedError):
            other.approve(request.id, org.hr_manager, acting_level=snapshot.next_app_level)

        session.expire_all()
        balance = session.execute(
            select(EmployeeModel.leave_balance_days).where(EmployeeModel.employee_no == org.worker)
        ).scalar_one()
        assert balance == Decimal("19")
        assert leave.get(request.id).balance_deducted

    def test_loan_schedule_written_once(self, make_service, session, second_session, org):
        loans = make_service(LoanService)
        loan = loans.submit_loan(org.worker, Decimal("1000"), 3, date(2024, 4, 30))

        other = make_service(LoanService, target_session=second_session)
        snapshot = other.get_loan(loan.id)
        second_session.commit()
        assert snapshot.next_app_level == 1

        loans.approve(loan.id, org.finance_manager, acting_level=1)
        with pytest.raises(ApprovalAlreadyProcessedError):
            other.approve(loan.id, org.finance_manager, acting_level=snapshot.next_app_level)

        session.expire_all()
        installments = session.execute(
            select(LoanInstallmentModel).where(LoanInstallmentModel.loan_id == loan.id)
        ).scalars().all()
        assert len(installments) == 3
        assert sum(i.amount for i in installments) == Decimal("1000")


@pytest.mark.postgres
class TestThreadedApprovals:
    def test_exactly_one_of_two_racing_approvals_applies(
        self, postgres_only, leave, session, session_factory, chains, clock, org
    ):
        request = _submit(leave, org)
        barrier = threading.Barrier(2)
        outcomes: list[str] = []
        lock = threading.Lock()

        def approve():
            sess = session_factory()
            try:
                service = LeaveService(sess, build_engine(sess, chains), clock)
                barrier.wait()
                try:
                    service.approve(request.id, org.tower_pm, acting_level=1)
                    result = "approved"
                except ApprovalAlreadyProcessedError:
                    result = "refused"
                with lock:
                    outcomes.append(result)
            finally:
                sess.close()

        threads = [threading.Thread(target=approve) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert sorted(outcomes) == ["approved", "refused"]
        session.expire_all()
        assert leave.get(request.id).next_app_level == 2
