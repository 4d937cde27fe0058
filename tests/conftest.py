"""
Pytest fixtures for the HR approval workflow test suite.

Provides:
- Structured logging fixtures (``captured_logs``)
- A fresh database per test: SQLite file under ``tmp_path`` by default,
  or the database named by ``DATABASE_URL`` (tables dropped afterwards)
- A seeded organization (``org``) and the default approval chains
- Module service factories bound to the test session and clock

Environment Variables:
- DATABASE_URL: e.g. postgresql://hr:hr@localhost/hr_test.  Tests marked
  ``postgres`` are skipped unless this points at PostgreSQL.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy import select

from hr_config import get_active_chains
from hr_kernel.db.engine import (
    database_url_from_env,
    drop_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    is_postgres,
    reset_engine,
)
from hr_kernel.domain.clock import DeterministicClock
from hr_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from hr_kernel.models.organization import (
    DepartmentModel,
    EmployeeModel,
    ProjectModel,
    RoleAssignmentModel,
)
from hr_modules._orm_registry import create_all_tables, import_all_orm_models
from hr_services.factory import build_engine
from hr_services.orm import NotificationOutboxModel

# Actor number for fixture rows
TEST_ACTOR_NO = 1


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture hr_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, leave_service):
            leave_service.submit_leave(...)
            logs = captured_logs()
            assert any(r["message"] == "approval_request_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("hr_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: test requires PostgreSQL (row locks, SKIP LOCKED)"
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_engine(tmp_path):
    """Engine with the full schema; one database per test."""
    url = database_url_from_env(default=f"sqlite:///{tmp_path / 'hr_test.db'}")
    eng = init_engine_from_url(url, echo=False)
    import_all_orm_models()
    drop_tables()
    create_all_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine):
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


@pytest.fixture
def postgres_only(db_engine):
    if not is_postgres():
        pytest.skip("requires PostgreSQL (set DATABASE_URL)")


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Organization
# =============================================================================


@dataclass(frozen=True)
class Org:
    """Employee, department and project numbers of the seeded organization."""

    engineering: int = 10
    finance: int = 20

    tower: int = 501
    bridge: int = 502
    closed_site: int = 503

    gm: int = 9001
    hr_manager: int = 3001
    finance_manager: int = 2001
    engineering_head: int = 1001
    tower_pm: int = 1101
    bridge_pm: int = 1102
    closed_site_pm: int = 1103
    regional_manager: int = 1201

    worker: int = 5001  # tower, reports to tower_pm
    bridge_worker: int = 5002  # bridge, reports to bridge_pm
    inactive_worker: int = 5003
    orphan_worker: int = 5004  # no direct manager


def seed_organization(session, org: Org) -> Org:
    def employee(no, name, dept, project, manager, salary="5000", leave="0", active=True):
        session.add(
            EmployeeModel(
                employee_no=no,
                name=name,
                department_code=dept,
                primary_project_code=project,
                direct_manager_no=manager,
                monthly_salary=Decimal(salary),
                leave_balance_days=Decimal(leave),
                is_active=active,
                created_by=TEST_ACTOR_NO,
            )
        )

    employee(org.gm, "General Manager", None, None, None, "30000")
    employee(org.hr_manager, "HR Manager", org.finance, None, org.gm, "15000")
    employee(org.finance_manager, "Finance Manager", org.finance, None, org.gm, "15000")
    employee(org.engineering_head, "Head of Engineering", org.engineering, None, org.gm, "14000")
    employee(org.tower_pm, "Tower PM", org.engineering, org.tower, org.engineering_head, "9000")
    employee(org.bridge_pm, "Bridge PM", org.engineering, org.bridge, org.engineering_head, "9000")
    employee(org.closed_site_pm, "Closed Site PM", org.engineering, org.closed_site, org.engineering_head)
    employee(org.regional_manager, "Regional Manager", org.engineering, None, org.gm, "12000")
    employee(org.worker, "Site Engineer", org.engineering, org.tower, org.tower_pm, "6000", "21")
    employee(org.bridge_worker, "Surveyor", org.engineering, org.bridge, org.bridge_pm, "4500", "5")
    employee(org.inactive_worker, "Former Foreman", org.engineering, org.tower, org.tower_pm, active=False)
    employee(org.orphan_worker, "Contractor", org.engineering, org.tower, None, "3000", "10")

    session.add_all(
        [
            DepartmentModel(
                department_code=org.engineering, name="Engineering",
                manager_no=org.engineering_head, created_by=TEST_ACTOR_NO,
            ),
            DepartmentModel(
                department_code=org.finance, name="Finance",
                manager_no=org.finance_manager, created_by=TEST_ACTOR_NO,
            ),
            ProjectModel(
                project_code=org.tower, name="Tower",
                project_manager_no=org.tower_pm, regional_manager_no=org.regional_manager,
                created_by=TEST_ACTOR_NO,
            ),
            ProjectModel(
                project_code=org.bridge, name="Bridge",
                project_manager_no=org.bridge_pm, regional_manager_no=org.regional_manager,
                created_by=TEST_ACTOR_NO,
            ),
            ProjectModel(
                project_code=org.closed_site, name="Closed Site",
                project_manager_no=org.closed_site_pm, is_active=False,
                created_by=TEST_ACTOR_NO,
            ),
        ]
    )
    for role, holder in (
        ("HR_MANAGER", org.hr_manager),
        ("FINANCE_MANAGER", org.finance_manager),
        ("GENERAL_MANAGER", org.gm),
    ):
        session.add(RoleAssignmentModel(role=role, employee_no=holder, created_by=TEST_ACTOR_NO))
    session.commit()
    return org


@pytest.fixture
def org(session):
    return seed_organization(session, Org())


# =============================================================================
# Approval wiring and services
# =============================================================================


@pytest.fixture(scope="session")
def chains():
    """The default YAML chain set, validated once per test session."""
    return get_active_chains()


@pytest.fixture
def approval_engine(session, chains):
    return build_engine(session, chains)


@pytest.fixture
def outbox_rows(session):
    """Outbox rows, optionally filtered by event type."""

    def _rows(event_type: str | None = None) -> list[NotificationOutboxModel]:
        stmt = select(NotificationOutboxModel).order_by(NotificationOutboxModel.occurred_at)
        if event_type is not None:
            stmt = stmt.where(NotificationOutboxModel.event_type == event_type)
        return list(session.execute(stmt).scalars())

    return _rows


@pytest.fixture
def make_service(session, approval_engine, clock):
    """Build any ``ApprovalModuleService`` subclass on the test session."""

    def _make(service_cls, target_session=None):
        if target_session is None:
            return service_cls(session, approval_engine, clock)
        return service_cls(target_session, build_engine(target_session, approval_engine.chains), clock)

    return _make
