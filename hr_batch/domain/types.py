"""
Snapshots handed out by the batch executor.

Jobs and items are persisted as rows in ``hr_batch.models``; everything
outside the executor sees them only through these frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class BatchJobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    # Finished states.  COMPLETED means no item failed (skips allowed);
    # FAILED means every item failed or prepare_items raised.
    COMPLETED = "completed"
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (BatchJobStatus.PENDING, BatchJobStatus.RUNNING)


class BatchItemStatus(str, Enum):
    SUCCEEDED = "succeeded"
    # Nothing to do, e.g. somebody approved the request before the job got to it.
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class BatchJob:
    job_id: UUID
    job_name: str
    task_type: str
    status: BatchJobStatus
    idempotency_key: str
    parameters: dict[str, Any] = field(default_factory=dict)
    total_items: int = 0
    succeeded_items: int = 0
    failed_items: int = 0
    skipped_items: int = 0
    created_by: int | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    correlation_id: str | None = None
    error_summary: str | None = None


@dataclass(frozen=True)
class BatchItemResult:
    item_index: int
    item_key: str
    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class BatchRunResult:
    """Outcome of ``BatchExecutor.execute_job``, item results in run order."""

    job_id: UUID
    status: BatchJobStatus
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    item_results: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0
    correlation_id: str | None = None
