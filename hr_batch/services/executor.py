"""
BatchExecutor -- runs one batch job item by item, each item in its own
SAVEPOINT.

Contract:
    ``submit_job`` records a PENDING job under an idempotency key,
    ``execute_job`` runs it, ``cancel_job`` stops a job that has not
    finished, ``get_job`` / ``get_job_items`` read results back.  The
    executor flushes but never commits; ``BatchOrchestrator.run_job`` (or
    any other caller) owns the transaction.

Invariants enforced:
    - One item's failure never aborts the run.  A SUCCEEDED item's writes
      are kept (savepoint released); SKIPPED and FAILED items leave no
      trace besides their ``batch_items`` row.
    - An idempotency key starts at most one job.
    - The job row is read FOR UPDATE before it starts, so two workers
      cannot both move the same job out of PENDING.
    - Timestamps come from the injected Clock; durations from
      ``time.monotonic``.
"""

from __future__ import annotations

import time
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchJob,
    BatchJobStatus,
    BatchRunResult,
)
from hr_batch.models.batch import BatchItemModel, BatchJobModel
from hr_batch.tasks.base import BatchItemInput, BatchTask, TaskRegistry
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.exceptions import (
    BatchAlreadyRunningError,
    BatchError,
    BatchIdempotencyError,
    BatchJobNotFoundError,
    TaskNotRegisteredError,
)
from hr_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.executor")


def job_status_for(succeeded: int, failed: int, skipped: int) -> BatchJobStatus:
    """Final job status from item counts.  An empty run is COMPLETED."""
    if failed == 0:
        return BatchJobStatus.COMPLETED
    if succeeded == 0 and skipped == 0:
        return BatchJobStatus.FAILED
    return BatchJobStatus.PARTIALLY_COMPLETED


def _elapsed_ms(since: float) -> int:
    return int((time.monotonic() - since) * 1000)


class BatchExecutor:
    def __init__(
        self,
        session: Session,
        task_registry: TaskRegistry,
        clock: Clock | None = None,
    ):
        self._session = session
        self._task_registry = task_registry
        self._clock = clock or SystemClock()

    def submit_job(
        self,
        job_name: str,
        task_type: str,
        idempotency_key: str,
        actor_no: int,
        parameters: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> BatchJob:
        """
        Record a PENDING job.

        Raises TaskNotRegisteredError for an unknown task type and
        BatchIdempotencyError when the key already named a job.
        """
        if task_type not in self._task_registry:
            raise TaskNotRegisteredError(task_type, self._task_registry.list_tasks())

        previous_id = self._session.execute(
            select(BatchJobModel.id).where(BatchJobModel.idempotency_key == idempotency_key)
        ).scalar_one_or_none()
        if previous_id is not None:
            raise BatchIdempotencyError(idempotency_key, str(previous_id))

        job = BatchJobModel(
            id=uuid4(),
            job_name=job_name,
            task_type=task_type,
            status=BatchJobStatus.PENDING.value,
            idempotency_key=idempotency_key,
            parameters=parameters or None,
            correlation_id=correlation_id,
            created_at=self._clock.now(),
            created_by=actor_no,
        )
        self._session.add(job)
        self._session.flush()
        logger.info(
            "batch_job_submitted",
            extra={
                "job_id": str(job.id),
                "task_type": task_type,
                "idempotency_key": idempotency_key,
            },
        )
        return job.to_dto()

    def execute_job(self, job_id: UUID, actor_no: int) -> BatchRunResult:
        """
        Run every item of a PENDING job and record the outcome.

        A failing ``prepare_items`` fails the whole job without items.
        Raises BatchJobNotFoundError, or BatchAlreadyRunningError when the
        job left PENDING.
        """
        started = time.monotonic()
        job = self._load_job(job_id, for_update=True)
        if job.status != BatchJobStatus.PENDING.value:
            raise BatchAlreadyRunningError(job.job_name, str(job_id), job.status)
        task = self._task_registry.get(job.task_type)
        parameters = dict(job.parameters or {})

        with LogContext.bind(job_id=job_id, correlation_id=job.correlation_id):
            as_of = self._clock.now()
            job.status = BatchJobStatus.RUNNING.value
            job.started_at = as_of
            job.updated_by = actor_no
            self._session.flush()

            try:
                items = task.prepare_items(parameters=parameters, session=self._session, as_of=as_of)
            except Exception as exc:
                logger.exception("batch_prepare_failed", extra={"task_type": job.task_type})
                return self._finish(job, (), f"prepare_items failed: {exc}", started)

            job.total_items = len(items)
            logger.info(
                "batch_job_started",
                extra={"task_type": job.task_type, "total_items": len(items)},
            )
            results = []
            for item in items:
                result = self._run_item(task, item, parameters, as_of)
                self._session.add(BatchItemModel.from_result(result, job.id, actor_no))
                results.append(result)
            return self._finish(job, tuple(results), None, started)

    def _run_item(
        self,
        task: BatchTask,
        item: BatchItemInput,
        parameters: dict[str, Any],
        as_of: Any,
    ) -> BatchItemResult:
        started = time.monotonic()
        started_at = self._clock.now()
        savepoint = self._session.begin_nested()
        try:
            outcome = task.execute_item(
                item=item, parameters=parameters, session=self._session, as_of=as_of
            )
        except Exception as exc:
            savepoint.rollback()
            logger.exception("batch_item_unhandled_exception", extra={"item_key": item.item_key})
            status = BatchItemStatus.FAILED
            error_code, error_message, data = "UNHANDLED_EXCEPTION", str(exc), None
        else:
            if outcome.status == BatchItemStatus.SUCCEEDED:
                savepoint.commit()
            else:
                savepoint.rollback()
            status = outcome.status
            error_code, error_message, data = (
                outcome.error_code,
                outcome.error_message,
                outcome.result_data,
            )

        if status == BatchItemStatus.FAILED:
            logger.warning(
                "batch_item_failed",
                extra={"item_key": item.item_key, "error_code": error_code},
            )
        return BatchItemResult(
            item_index=item.item_index,
            item_key=item.item_key,
            status=status,
            error_code=error_code,
            error_message=error_message,
            result_data=data,
            duration_ms=_elapsed_ms(started),
            started_at=started_at,
            completed_at=self._clock.now(),
        )

    def _finish(
        self,
        job: BatchJobModel,
        results: tuple[BatchItemResult, ...],
        failure: str | None,
        started: float,
    ) -> BatchRunResult:
        counts = {status: 0 for status in BatchItemStatus}
        for result in results:
            counts[result.status] += 1
        succeeded = counts[BatchItemStatus.SUCCEEDED]
        failed = counts[BatchItemStatus.FAILED]
        skipped = counts[BatchItemStatus.SKIPPED]

        if failure is not None:
            status = BatchJobStatus.FAILED
            job.error_summary = failure
        else:
            status = job_status_for(succeeded, failed, skipped)
            if failed:
                job.error_summary = f"{failed} item(s) failed"
        job.status = status.value
        job.succeeded_items, job.failed_items, job.skipped_items = succeeded, failed, skipped
        job.completed_at = self._clock.now()
        self._session.flush()

        duration = _elapsed_ms(started)
        logger.info(
            "batch_job_finished",
            extra={
                "job_status": status.value,
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
                "duration_ms": duration,
            },
        )
        return BatchRunResult(
            job_id=job.id,
            status=status,
            total_items=len(results),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            item_results=results,
            started_at=job.started_at,
            completed_at=job.completed_at,
            duration_ms=duration,
            correlation_id=job.correlation_id,
        )

    def cancel_job(self, job_id: UUID, reason: str, actor_no: int) -> BatchJob:
        """Cancel a PENDING or RUNNING job; a finished job raises BatchError."""
        job = self._load_job(job_id, for_update=True)
        if BatchJobStatus(job.status).is_terminal:
            raise BatchError(f"Cannot cancel job {job_id} in status {job.status}")
        job.status = BatchJobStatus.CANCELLED.value
        job.completed_at = self._clock.now()
        job.error_summary = f"Cancelled: {reason}"
        job.updated_by = actor_no
        self._session.flush()
        logger.info("batch_job_cancelled", extra={"job_id": str(job_id), "reason": reason})
        return job.to_dto()

    def get_job(self, job_id: UUID) -> BatchJob:
        return self._load_job(job_id).to_dto()

    def get_job_items(self, job_id: UUID) -> tuple[BatchItemResult, ...]:
        rows = self._session.execute(
            select(BatchItemModel)
            .where(BatchItemModel.job_id == job_id)
            .order_by(BatchItemModel.item_index)
        ).scalars()
        return tuple(row.to_dto() for row in rows)

    def _load_job(self, job_id: UUID, for_update: bool = False) -> BatchJobModel:
        stmt = select(BatchJobModel).where(BatchJobModel.id == job_id)
        if for_update:
            stmt = stmt.with_for_update()
        job = self._session.execute(stmt).scalar_one_or_none()
        if job is None:
            raise BatchJobNotFoundError(str(job_id))
        return job
