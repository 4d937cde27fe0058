"""
Tests for the database-backed chain store and organization directory.

Covers:
- seed_chains / load_chain_config round trip, including scoped chains
- replace semantics
- stored rows that do not form a usable chain set are refused
- build_engine(from_database=True)
- SqlOrganizationDirectory lookups
"""

import pytest
from sqlalchemy import select

from hr_kernel.domain.approval import (
    ApprovalChain,
    ApprovalChainStep,
    DirectManager,
    RequestType,
    RoleHolder,
)
from hr_kernel.exceptions import ChainConfigValidationError
from hr_kernel.models.approval_chain import ApprovalChainModel, ApprovalChainStepModel
from hr_kernel.models.organization import RoleAssignmentModel
from hr_kernel.services.chain_store import load_chain_config, seed_chains
from hr_kernel.services.organization_directory import SqlOrganizationDirectory
from hr_services.factory import build_engine

SEED_ACTOR = 1


class TestChainStore:
    @pytest.fixture
    def seeded(self, session, chains):
        seed_chains(session, chains.chains, SEED_ACTOR)
        session.flush()

    def test_round_trip_default_set(self, session, chains):
        written = seed_chains(session, chains.chains, SEED_ACTOR)
        session.commit()
        loaded = load_chain_config(session)

        assert written == len(chains.chains)
        assert loaded.request_types() == chains.request_types()
        for rt in RequestType:
            assert loaded.levels(rt) == chains.levels(rt)

    def test_scoped_and_inactive_steps_survive(self, session, seeded):
        leave = RequestType.LEAVE
        seed_chains(
            session,
            [
                ApprovalChain(leave, (ApprovalChainStep(leave, 1, DirectManager()),)),
                ApprovalChain(
                    leave,
                    (
                        ApprovalChainStep(leave, 1, RoleHolder(role="HR_MANAGER"), level_name="HR"),
                        ApprovalChainStep(leave, 2, DirectManager(), is_active=False),
                    ),
                    department_code=20,
                ),
            ],
            SEED_ACTOR,
        )
        session.commit()
        loaded = load_chain_config(session)

        step = loaded.step(leave, 1, department_code=20)
        assert step.rule == RoleHolder(role="HR_MANAGER")
        assert step.display_name == "HR"
        assert loaded.lookup(leave, 2, department_code=20) is None
        assert loaded.lookup(leave, 1, department_code=10) == DirectManager()

    def test_empty_chain_stored_without_steps(self, session, seeded):
        seed_chains(session, [ApprovalChain(RequestType.ALLOWANCE)], SEED_ACTOR)
        session.commit()
        loaded = load_chain_config(session)
        assert loaded.has_chain(RequestType.ALLOWANCE)
        assert loaded.lookup(RequestType.ALLOWANCE, 1) is None

    def test_replace(self, session, seeded):
        loan = RequestType.LOAN
        seed_chains(session, [ApprovalChain(loan, (ApprovalChainStep(loan, 1, DirectManager()),))], SEED_ACTOR)
        seed_chains(
            session,
            [ApprovalChain(loan, (ApprovalChainStep(loan, 1, RoleHolder(role="FINANCE_MANAGER")),))],
            SEED_ACTOR,
        )
        session.commit()
        loan_rows = session.execute(
            select(ApprovalChainModel).where(ApprovalChainModel.request_type == loan.value)
        ).scalars().all()
        assert len(loan_rows) == 1
        assert load_chain_config(session).lookup(loan, 1) == RoleHolder(role="FINANCE_MANAGER")

    def test_engine_from_database(self, session, org, seeded):
        loan = RequestType.LOAN
        seed_chains(session, [ApprovalChain(loan, (ApprovalChainStep(loan, 1, DirectManager()),))], SEED_ACTOR)
        session.commit()
        engine = build_engine(session, from_database=True)
        state = engine.initialize_approval(loan, org.worker, org.engineering, org.tower)
        assert state.next_approver == org.tower_pm


def _stored_loan_chain(session, levels):
    """Replace the stored global LOAN chain with raw (level, kind, params, active) rows."""
    existing = session.execute(
        select(ApprovalChainModel).where(
            ApprovalChainModel.request_type == RequestType.LOAN.value,
            ApprovalChainModel.scope_key == "global",
        )
    ).scalar_one()
    session.delete(existing)
    session.flush()
    model = ApprovalChainModel(
        request_type=RequestType.LOAN.value, scope_key="global", created_by=SEED_ACTOR
    )
    model.steps = [
        ApprovalChainStepModel(
            level_no=level,
            rule_kind=kind,
            rule_params=params,
            is_active=active,
            created_by=SEED_ACTOR,
        )
        for level, kind, params, active in levels
    ]
    session.add(model)
    session.commit()


class TestStoredChainValidation:
    """Rows edited in the database are checked the same way as a YAML set."""

    @pytest.fixture(autouse=True)
    def seeded(self, session, chains):
        seed_chains(session, chains.chains, SEED_ACTOR)
        session.commit()

    def test_inactive_middle_level_refused(self, session):
        _stored_loan_chain(
            session,
            [
                (1, "DIRECT_MANAGER", {}, True),
                (2, "ROLE_HOLDER", {"role": "HR_MANAGER"}, False),
                (3, "ROLE_HOLDER", {"role": "FINANCE_MANAGER"}, True),
            ],
        )
        with pytest.raises(ChainConfigValidationError) as exc_info:
            load_chain_config(session)
        assert exc_info.value.config_name == "database"
        assert any("inactive level 2" in e for e in exc_info.value.errors)

    def test_level_gap_refused(self, session):
        _stored_loan_chain(
            session,
            [
                (1, "DIRECT_MANAGER", {}, True),
                (3, "ROLE_HOLDER", {"role": "FINANCE_MANAGER"}, True),
            ],
        )
        with pytest.raises(ChainConfigValidationError) as exc_info:
            load_chain_config(session)
        assert any("contiguous" in e for e in exc_info.value.errors)

    def test_unknown_rule_kind_refused(self, session):
        _stored_loan_chain(session, [(1, "CEO", {}, True)])
        with pytest.raises(ChainConfigValidationError) as exc_info:
            load_chain_config(session)
        assert any("CEO" in e for e in exc_info.value.errors)

    def test_missing_global_chain_refused(self, session):
        payroll = session.execute(
            select(ApprovalChainModel).where(
                ApprovalChainModel.request_type == RequestType.PAYROLL.value
            )
        ).scalar_one()
        session.delete(payroll)
        session.commit()
        with pytest.raises(ChainConfigValidationError) as exc_info:
            load_chain_config(session)
        assert "No global approval chain registered for PAYROLL" in exc_info.value.errors

    def test_engine_build_refuses_invalid_rows(self, session):
        _stored_loan_chain(
            session,
            [
                (1, "DIRECT_MANAGER", {}, False),
                (2, "ROLE_HOLDER", {"role": "FINANCE_MANAGER"}, True),
            ],
        )
        with pytest.raises(ChainConfigValidationError):
            build_engine(session, from_database=True)

    def test_trailing_inactive_level_accepted(self, session):
        _stored_loan_chain(
            session,
            [
                (1, "ROLE_HOLDER", {"role": "FINANCE_MANAGER"}, True),
                (2, "ROLE_HOLDER", {"role": "GENERAL_MANAGER"}, False),
            ],
        )
        loaded = load_chain_config(session)
        assert [s.level for s in loaded.levels(RequestType.LOAN)] == [1]


class TestSqlOrganizationDirectory:
    @pytest.fixture
    def directory(self, session, org):
        return SqlOrganizationDirectory(session)

    def test_employee_record(self, directory, org):
        record = directory.employee(org.worker)
        assert record.department_code == org.engineering
        assert record.project_code == org.tower
        assert record.direct_manager_no == org.tower_pm
        assert record.is_active
        assert directory.employee(4242) is None
        assert not directory.employee(org.inactive_worker).is_active

    def test_managers(self, directory, org):
        assert directory.department_manager(org.engineering) == org.engineering_head
        assert directory.project_manager(org.bridge) == org.bridge_pm
        assert directory.project_regional_manager(org.tower) == org.regional_manager
        assert directory.project_regional_manager(org.closed_site) is None
        assert directory.department_manager(99) is None

    def test_role_holders_ignore_inactive_assignments(self, directory, session, org):
        session.add(
            RoleAssignmentModel(role="HR_MANAGER", employee_no=org.gm, is_active=False, created_by=SEED_ACTOR)
        )
        session.commit()
        assert directory.role_holders("HR_MANAGER") == (org.hr_manager,)
        assert directory.role_holders("SAFETY_OFFICER") == ()
