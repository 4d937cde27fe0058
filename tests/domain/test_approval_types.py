"""
Tests for the approval domain value objects.

Covers:
- RequestType parsing
- Approver rule construction and labels
- Chain validation and scope selection
- ApprovalChainConfig lookups (inactive steps, auto-approve) and problems()
- ApprovalState invariants
"""

import pytest

from hr_kernel.domain.approval import (
    ApprovalChain,
    ApprovalChainConfig,
    ApprovalChainStep,
    ApprovalState,
    DepartmentManager,
    DirectManager,
    FixedEmployee,
    ProjectManager,
    RequestType,
    RoleHolder,
    TransStatus,
    parse_rule,
)
from hr_kernel.exceptions import ApprovalConfigNotFoundError, UnknownRequestTypeError

LEAVE = RequestType.LEAVE


def _step(level, rule, rt=LEAVE, **kw):
    return ApprovalChainStep(request_type=rt, level=level, rule=rule, **kw)


class TestRequestType:
    def test_parse_code(self):
        assert RequestType.parse("VAC") is RequestType.LEAVE
        assert RequestType.parse("PROJ_TRANSFER") is RequestType.PROJECT_TRANSFER

    def test_parse_passes_enum_through(self):
        assert RequestType.parse(RequestType.LOAN) is RequestType.LOAN

    def test_unknown_code_raises(self):
        with pytest.raises(UnknownRequestTypeError) as exc_info:
            RequestType.parse("BONUS")
        assert exc_info.value.code == "UNKNOWN_REQUEST_TYPE"

    def test_persisted_status_codes(self):
        assert [s.value for s in TransStatus] == ["N", "A", "R"]


class TestApproverRules:
    """Rule construction from configuration."""

    def test_parse_role_holder(self):
        rule = parse_rule("ROLE_HOLDER", {"role": "HR_MANAGER"})
        assert rule == RoleHolder(role="HR_MANAGER")
        assert rule.label == "HR Manager"

    def test_parse_parameterless_rule(self):
        assert parse_rule("DIRECT_MANAGER") == DirectManager()
        assert parse_rule("PROJECT_MANAGER", {}).label == "Project Manager"

    def test_unknown_role_label_is_title_cased(self):
        assert RoleHolder(role="SITE_SAFETY_OFFICER").label == "Site Safety Officer"

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError, match="Unknown approver rule kind"):
            parse_rule("CEO")

    def test_unexpected_params_rejected(self):
        with pytest.raises(ValueError, match="Invalid parameters"):
            parse_rule("DIRECT_MANAGER", {"role": "HR_MANAGER"})

    def test_fixed_employee_requires_positive_number(self):
        with pytest.raises(ValueError):
            FixedEmployee(employee_no=0)
        assert FixedEmployee(employee_no=42).params() == {"employee_no": 42}

    def test_role_holder_requires_role(self):
        with pytest.raises(ValueError):
            RoleHolder()


class TestApprovalChain:
    def test_steps_sorted_by_level(self):
        chain = ApprovalChain(LEAVE, (_step(2, DirectManager()), _step(1, ProjectManager())))
        assert [s.level for s in chain.steps] == [1, 2]

    def test_duplicate_levels_rejected(self):
        with pytest.raises(ValueError, match="Duplicate levels"):
            ApprovalChain(LEAVE, (_step(1, DirectManager()), _step(1, ProjectManager())))

    def test_level_must_be_positive(self):
        with pytest.raises(ValueError):
            _step(0, DirectManager())

    def test_step_for_other_request_type_rejected(self):
        with pytest.raises(ValueError, match="placed in"):
            ApprovalChain(LEAVE, (_step(1, DirectManager(), rt=RequestType.LOAN),))

    def test_active_step_after_inactive_step_rejected(self):
        with pytest.raises(ValueError, match="inactive level 2 is followed by active level 3"):
            ApprovalChain(
                RequestType.LOAN,
                (
                    _step(1, DirectManager(), rt=RequestType.LOAN),
                    _step(2, RoleHolder(role="HR_MANAGER"), rt=RequestType.LOAN, is_active=False),
                    _step(3, RoleHolder(role="FINANCE_MANAGER"), rt=RequestType.LOAN),
                ),
            )

    def test_trailing_inactive_steps_allowed(self):
        chain = ApprovalChain(
            LEAVE, (_step(1, DirectManager()), _step(2, ProjectManager(), is_active=False))
        )
        assert chain.active_step(2) is None

    def test_chain_cannot_have_two_scopes(self):
        with pytest.raises(ValueError):
            ApprovalChain(LEAVE, (), department_code=10, project_code=501)

    def test_scope_names(self):
        assert ApprovalChain(LEAVE).scope == "global"
        assert ApprovalChain(LEAVE, department_code=10).scope == "department:10"
        assert ApprovalChain(LEAVE, project_code=501).scope == "project:501"

    def test_display_name_falls_back_to_rule_label(self):
        assert _step(1, DepartmentManager()).display_name == "Department Manager"
        assert _step(1, DepartmentManager(), level_name="Head").display_name == "Head"


class TestApprovalChainConfig:
    """Lookups over a small configuration."""

    def setup_method(self):
        self.config = ApprovalChainConfig(
            [
                ApprovalChain(
                    LEAVE,
                    (
                        _step(1, ProjectManager()),
                        _step(2, RoleHolder(role="HR_MANAGER")),
                        _step(3, FixedEmployee(employee_no=9001), is_active=False),
                        _step(4, DirectManager(), is_active=False),
                    ),
                ),
                ApprovalChain(LEAVE, (_step(1, DirectManager()),), department_code=20),
                ApprovalChain(LEAVE, (_step(1, DepartmentManager()),), project_code=502),
                ApprovalChain(RequestType.ALLOWANCE, ()),
            ]
        )

    def test_lookup_returns_rule(self):
        assert self.config.lookup(LEAVE, 1) == ProjectManager()
        assert self.config.lookup("VAC", 2) == RoleHolder(role="HR_MANAGER")

    def test_inactive_step_is_invisible(self):
        assert self.config.lookup(LEAVE, 3) is None

    def test_levels_end_at_first_inactive_step(self):
        assert [s.level for s in self.config.levels(LEAVE)] == [1, 2]

    def test_problems_name_missing_global_chains(self):
        problems = self.config.problems()
        assert "No global approval chain registered for PAYROLL" in problems
        assert not any("VAC" in p for p in problems)

    def test_problems_name_level_gaps(self):
        config = ApprovalChainConfig(
            [ApprovalChain(LEAVE, (_step(1, DirectManager()), _step(3, ProjectManager())))]
        )
        assert any("contiguous" in p for p in config.problems())

    def test_department_scope_beats_project_and_global(self):
        rule = self.config.lookup(LEAVE, 1, department_code=20, project_code=502)
        assert rule == DirectManager()

    def test_project_scope_beats_global(self):
        assert self.config.lookup(LEAVE, 1, department_code=10, project_code=502) == DepartmentManager()

    def test_unmatched_scope_falls_back_to_global(self):
        assert self.config.lookup(LEAVE, 1, department_code=10, project_code=501) == ProjectManager()

    def test_registered_empty_chain_has_no_level_one(self):
        assert self.config.has_chain(RequestType.ALLOWANCE)
        assert self.config.lookup(RequestType.ALLOWANCE, 1) is None

    def test_unregistered_request_type_raises(self):
        assert not self.config.has_chain(RequestType.PAYROLL)
        with pytest.raises(ApprovalConfigNotFoundError):
            self.config.lookup(RequestType.PAYROLL, 1)

    def test_duplicate_scope_rejected(self):
        with pytest.raises(ValueError, match="Duplicate global chain"):
            ApprovalChainConfig([ApprovalChain(LEAVE), ApprovalChain(LEAVE)])

    def test_request_types(self):
        assert self.config.request_types() == {LEAVE, RequestType.ALLOWANCE}


class TestApprovalState:
    def test_pending_requires_approver_and_level(self):
        with pytest.raises(ValueError):
            ApprovalState(TransStatus.PENDING, next_approver=None, next_level=1)
        with pytest.raises(ValueError):
            ApprovalState(TransStatus.PENDING, next_approver=5, next_level=0)

    def test_terminal_states_carry_nothing(self):
        with pytest.raises(ValueError):
            ApprovalState(TransStatus.APPROVED, next_approver=5)
        with pytest.raises(ValueError):
            ApprovalState(TransStatus.REJECTED, next_level_name="HR")

    def test_constructors(self):
        pending = ApprovalState.pending(2, 3001, "HR Manager")
        assert pending.is_pending and not pending.is_terminal
        assert (pending.next_level, pending.next_approver) == (2, 3001)
        assert ApprovalState.approved().is_terminal
        assert ApprovalState.rejected().trans_status == TransStatus.REJECTED
