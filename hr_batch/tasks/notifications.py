"""
Batch task: notification outbox dispatch.

Each pending or failed outbox row is one item.  A delivery failure is
recorded on the row itself (attempts, last_error, failed/dead_letter) and
the item still SUCCEEDS, so that bookkeeping survives the item savepoint.

Parameters:
    limit -- maximum rows per run.  Default 100.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from hr_batch.domain.types import BatchItemStatus
from hr_batch.tasks.base import BatchItemInput, BatchTaskResult
from hr_kernel.domain.clock import DeterministicClock
from hr_services.notifications import (
    DEFAULT_MAX_ATTEMPTS,
    NotificationDispatcher,
    NotificationPublisher,
)
from hr_services.orm import NotificationOutboxModel, OutboxStatus


class OutboxDispatchTask:
    def __init__(
        self,
        publisher: NotificationPublisher | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self._publisher = publisher
        self._max_attempts = max_attempts

    @property
    def task_type(self) -> str:
        return "notifications.dispatch_outbox"

    @property
    def description(self) -> str:
        return "Deliver pending notification outbox rows"

    def _dispatcher(self, session: Session, as_of: datetime) -> NotificationDispatcher:
        return NotificationDispatcher(
            session,
            self._publisher,
            DeterministicClock(as_of),
            max_attempts=self._max_attempts,
        )

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        rows = self._dispatcher(session, as_of).pending_rows(int(parameters.get("limit", 100)))
        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(row.id),
                payload={"outbox_id": str(row.id), "event_type": row.event_type},
            )
            for i, row in enumerate(rows)
        )

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        row = session.get(NotificationOutboxModel, UUID(item.payload["outbox_id"]))
        if row is None or row.status not in (OutboxStatus.PENDING.value, OutboxStatus.FAILED.value):
            return BatchTaskResult(
                status=BatchItemStatus.SKIPPED,
                result_data={"reason": "not_pending"},
            )
        outcome = self._dispatcher(session, as_of).deliver(row)
        session.flush()
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={"outbox_status": outcome.value, "attempts": row.attempts},
        )
