"""
BatchOrchestrator -- wiring for the batch processing system.

Contract:
    Composes a TaskRegistry loaded with the HR task implementations and
    creates BatchExecutors sharing one Clock.  ``run_job`` is the
    one-call path used by cron entries: submit, execute, commit.

Architecture: hr_batch (top-level).  Nothing in hr_kernel, hr_engines,
    hr_services or hr_modules imports from hr_batch.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from hr_batch.domain.types import BatchRunResult
from hr_batch.services.executor import BatchExecutor
from hr_batch.tasks.auto_approval import AutoApprovalTask
from hr_batch.tasks.base import TaskRegistry
from hr_batch.tasks.notifications import OutboxDispatchTask
from hr_batch.tasks.overtime import OvertimeAlertTask
from hr_kernel.db.base import SYSTEM_ACTOR_NO
from hr_kernel.domain.approval import ApprovalChainConfig
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.logging_config import get_logger

logger = get_logger("batch.orchestrator")


def default_task_registry(chains: ApprovalChainConfig | None = None) -> TaskRegistry:
    """A fresh registry holding the three HR jobs.

    ``chains`` routes the auto-approval sweep; None means the default set.
    """
    return TaskRegistry(
        AutoApprovalTask(chains=chains), OvertimeAlertTask(), OutboxDispatchTask()
    )


class BatchOrchestrator:
    """Batch wiring.

    Non-goals:
        - Scheduling.  Jobs are triggered externally (cron, a worker
          loop) with an idempotency key naming the run, e.g.
          ``"overtime:2024-03"``.
    """

    def __init__(
        self,
        session: Session,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
        actor_no: int = SYSTEM_ACTOR_NO,
    ) -> None:
        self._session = session
        self._task_registry = task_registry
        self._clock = clock or SystemClock()
        self._actor_no = actor_no

    @classmethod
    def from_session(
        cls,
        session: Session,
        clock: Clock | None = None,
        actor_no: int = SYSTEM_ACTOR_NO,
        task_registry: TaskRegistry | None = None,
        chains: ApprovalChainConfig | None = None,
    ) -> BatchOrchestrator:
        if task_registry is None:
            task_registry = default_task_registry(chains)
        return cls(session, task_registry, clock, actor_no)

    def create_executor(self, session: Session | None = None) -> BatchExecutor:
        return BatchExecutor(
            session=session or self._session,
            task_registry=self._task_registry,
            clock=self._clock,
        )

    def run_job(
        self,
        task_type: str,
        idempotency_key: str,
        parameters: dict[str, Any] | None = None,
        job_name: str | None = None,
        correlation_id: str | None = None,
    ) -> BatchRunResult:
        """Submit and execute one job, then commit.  Rolls back on error."""
        executor = self.create_executor()
        try:
            job = executor.submit_job(
                job_name=job_name or task_type,
                task_type=task_type,
                idempotency_key=idempotency_key,
                actor_no=self._actor_no,
                parameters=parameters,
                correlation_id=correlation_id,
            )
            result = executor.execute_job(job.job_id, self._actor_no)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        return result

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def task_registry(self) -> TaskRegistry:
        return self._task_registry

    @property
    def actor_no(self) -> int:
        return self._actor_no
