"""
Tests for project labor requests.

The chain resolves against the requesting project: its manager, its
regional manager, then the general manager.
"""

from datetime import date
from decimal import Decimal

import pytest

from hr_kernel.exceptions import EntityNotFoundError, InvalidLaborRequestError
from hr_modules.labor.orm import LaborRequestStatus
from hr_modules.labor.service import LaborPosition, LaborRequestService

POSITIONS = (
    LaborPosition("Steel fixer", 4, Decimal("180")),
    LaborPosition("Crane operator", 1, Decimal("320")),
)


@pytest.fixture
def labor(make_service):
    return make_service(LaborRequestService)


def _submit(labor, org, project=None, positions=POSITIONS):
    return labor.submit_labor_request(
        requested_by=org.tower_pm,
        project_code=project or org.tower,
        start_date=date(2024, 4, 1),
        end_date=date(2024, 6, 30),
        positions=positions,
    )


class TestSubmitLaborRequest:
    def test_positions_numbered_in_order(self, labor, org):
        request = _submit(labor, org)
        assert [(p.sequence_no, p.job_title, p.quantity) for p in request.positions] == [
            (1, "Steel fixer", 4),
            (2, "Crane operator", 1),
        ]
        assert request.request_status == LaborRequestStatus.PENDING.value
        assert request.next_approval == org.tower_pm

    def test_context_is_requesting_project(self, labor, org):
        request = labor.submit_labor_request(
            requested_by=org.engineering_head,
            project_code=org.bridge,
            start_date=date(2024, 4, 1),
            end_date=date(2024, 4, 30),
            positions=POSITIONS[:1],
        )
        assert request.next_approval == org.bridge_pm

    def test_end_before_start(self, labor, org):
        with pytest.raises(InvalidLaborRequestError, match="before start"):
            labor.submit_labor_request(org.tower_pm, org.tower, date(2024, 5, 1), date(2024, 4, 1), POSITIONS)

    def test_needs_positions(self, labor, org):
        with pytest.raises(InvalidLaborRequestError, match="at least one position"):
            _submit(labor, org, positions=())

    @pytest.mark.parametrize(
        "position",
        [LaborPosition("Welder", 0), LaborPosition("Welder", 2, Decimal("-1"))],
    )
    def test_invalid_position(self, labor, org, position):
        with pytest.raises(InvalidLaborRequestError):
            _submit(labor, org, positions=(position,))

    def test_inactive_project(self, labor, org):
        with pytest.raises(InvalidLaborRequestError, match="not active"):
            _submit(labor, org, project=org.closed_site)

    def test_unknown_project(self, labor, org):
        with pytest.raises(EntityNotFoundError):
            _submit(labor, org, project=777)


class TestLaborApproval:
    def test_pm_regional_gm_then_open_and_close(self, labor, org, outbox_rows):
        request = _submit(labor, org)
        labor.approve(request.id, org.tower_pm)
        assert labor.get_labor_request(request.id).next_approval == org.regional_manager
        labor.approve(request.id, org.regional_manager)
        assert labor.get_labor_request(request.id).next_approval == org.gm
        labor.approve(request.id, org.gm)

        stored = labor.get_labor_request(request.id)
        assert stored.trans_status == "A"
        assert stored.request_status == LaborRequestStatus.OPEN.value
        assert outbox_rows("LABOR_REQUEST_APPROVED_FINAL")[0].recipient_employee_no == org.tower_pm

        closed = labor.close_labor_request(request.id, org.tower_pm)
        assert closed.request_status == LaborRequestStatus.CLOSED.value

    def test_only_open_requests_close(self, labor, org):
        request = _submit(labor, org)
        with pytest.raises(InvalidLaborRequestError, match="Only OPEN"):
            labor.close_labor_request(request.id, org.tower_pm)
        assert labor.get_labor_request(request.id).request_status == LaborRequestStatus.PENDING.value
