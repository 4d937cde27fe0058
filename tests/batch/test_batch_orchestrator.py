"""Tests for BatchOrchestrator wiring and the run_job transaction boundary."""

import pytest
from sqlalchemy import select

from hr_batch.domain.types import BatchJobStatus
from hr_batch.models.batch import BatchJobModel
from hr_batch.orchestrator import BatchOrchestrator, default_task_registry
from hr_batch.services.executor import BatchExecutor
from hr_batch.tasks.base import TaskRegistry
from hr_kernel.db.base import SYSTEM_ACTOR_NO
from hr_kernel.exceptions import BatchIdempotencyError, TaskNotRegisteredError


class TestDefaultRegistry:
    def test_registers_every_hr_task(self):
        registry = default_task_registry()
        assert registry.list_tasks() == (
            "approvals.auto_approve",
            "attendance.overtime_alerts",
            "notifications.dispatch_outbox",
        )

    def test_fresh_registry_per_call(self):
        assert default_task_registry() is not default_task_registry()


class TestOrchestrator:
    def test_from_session_defaults(self, session, clock):
        orchestrator = BatchOrchestrator.from_session(session, clock=clock)
        assert orchestrator.session is session
        assert orchestrator.clock is clock
        assert orchestrator.actor_no == SYSTEM_ACTOR_NO
        assert len(orchestrator.task_registry) == 3
        assert isinstance(orchestrator.create_executor(), BatchExecutor)

    def test_custom_registry(self, session):
        orchestrator = BatchOrchestrator.from_session(session, task_registry=TaskRegistry())
        with pytest.raises(TaskNotRegisteredError):
            orchestrator.run_job("approvals.auto_approve", "k")

    def test_run_job_commits(self, session, clock, org):
        orchestrator = BatchOrchestrator.from_session(session, clock=clock)
        result = orchestrator.run_job(
            "notifications.dispatch_outbox", "outbox:commit", correlation_id="cron-42"
        )
        session.rollback()

        job = orchestrator.create_executor().get_job(result.job_id)
        assert job.status == BatchJobStatus.COMPLETED
        assert job.created_by == SYSTEM_ACTOR_NO
        assert job.correlation_id == "cron-42"
        assert job.job_name == "notifications.dispatch_outbox"

    def test_idempotency_conflict_rolls_back(self, session, clock):
        orchestrator = BatchOrchestrator.from_session(session, clock=clock, actor_no=3001)
        orchestrator.run_job("notifications.dispatch_outbox", "outbox:once", job_name="nightly outbox")
        with pytest.raises(BatchIdempotencyError):
            orchestrator.run_job("notifications.dispatch_outbox", "outbox:once")
        jobs = session.execute(select(BatchJobModel)).scalars().all()
        assert [j.job_name for j in jobs] == ["nightly outbox"]
        assert jobs[0].created_by == 3001
