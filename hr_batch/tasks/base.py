"""
What a batch task looks like, and where the executor finds one.

A task works in two phases.  ``prepare_items`` reads the database once and
returns the units of work (pending requests, employees over their overtime
threshold, outbox rows).  ``execute_item`` handles exactly one of them
inside the SAVEPOINT the executor opened for it, and reports the outcome
as a ``BatchTaskResult`` instead of raising for expected conditions.

Tasks flush but never commit or roll back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from hr_batch.domain.types import BatchItemStatus
from hr_kernel.exceptions import HrKernelError, TaskNotRegisteredError


@dataclass(frozen=True)
class BatchItemInput:
    item_index: int
    # Stable, human-readable identity, e.g. "VAC:<uuid>" or "5001:2024-03".
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def from_error(cls, status: BatchItemStatus, exc: HrKernelError) -> BatchTaskResult:
        """Report a domain refusal as a SKIPPED or FAILED item."""
        return cls(status=status, error_code=exc.code, error_message=exc.message)


@runtime_checkable
class BatchTask(Protocol):
    task_type: str
    description: str

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]: ...

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult: ...


class TaskRegistry:
    """Tasks keyed by ``task_type``; registering the same type twice is a ValueError."""

    def __init__(self, *tasks: BatchTask) -> None:
        self._by_type: dict[str, BatchTask] = {}
        for task in tasks:
            self.register(task)

    def register(self, task: BatchTask) -> None:
        if task.task_type in self._by_type:
            raise ValueError(f"Task type '{task.task_type}' is already registered")
        self._by_type[task.task_type] = task

    def get(self, task_type: str) -> BatchTask:
        task = self._by_type.get(task_type)
        if task is None:
            raise TaskNotRegisteredError(task_type, self.list_tasks())
        return task

    def list_tasks(self) -> tuple[str, ...]:
        return tuple(sorted(self._by_type))

    def __contains__(self, task_type: object) -> bool:
        return task_type in self._by_type

    def __len__(self) -> int:
        return len(self._by_type)
