"""
Notification outbox and dispatcher.

Responsibility:
    ``NotificationOutbox`` records "this request changed state, tell this
    employee" as a row in the same transaction as the state change.
    ``NotificationDispatcher`` later drains pending rows and hands each one
    to a ``NotificationPublisher``.

Architecture position:
    Services.  Used by ``ApprovalGate`` (enqueue) and by scheduled jobs
    (dispatch).  Delivery channels (email, push) live behind the publisher
    protocol and are out of this package's scope.

Invariants enforced:
    - Enqueue never commits; it rides in the caller's transaction, so a
      rolled-back approval leaves no notification behind.
    - Delivery failures are caught, logged and counted.  They never raise
      into the business flow that produced the row.
    - After ``max_attempts`` failures a row moves to dead_letter and is not
      retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.logging_config import get_logger
from hr_services.orm import NotificationOutboxModel, OutboxStatus

logger = get_logger("services.notifications")

DEFAULT_MAX_ATTEMPTS = 5


class NotificationPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


@dataclass(frozen=True)
class NotificationEvent:
    event_type: str
    recipient_employee_no: int | None
    priority: NotificationPriority
    entity_type: str
    entity_id: str
    variables: dict[str, Any]


class NotificationPublisher(Protocol):
    """Delivery channel.  May raise; the dispatcher absorbs failures."""

    def publish(
        self,
        event_type: str,
        recipient_employee_no: int | None,
        priority: NotificationPriority,
        entity_type: str,
        entity_id: str,
        variables: dict[str, Any],
    ) -> None: ...


class LoggingNotificationPublisher:
    """Default publisher: writes the notification to the structured log."""

    def publish(
        self,
        event_type: str,
        recipient_employee_no: int | None,
        priority: NotificationPriority,
        entity_type: str,
        entity_id: str,
        variables: dict[str, Any],
    ) -> None:
        logger.info(
            "notification_published",
            extra={
                "event_type": event_type,
                "recipient_employee_no": recipient_employee_no,
                "priority": priority.value,
                "entity_type": entity_type,
                "notification_entity_id": entity_id,
                "variables": variables,
            },
        )


class NotificationOutbox:
    """Writes notification rows inside the caller's transaction."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def enqueue(
        self,
        event_type: str,
        recipient_employee_no: int | None,
        priority: NotificationPriority,
        entity_type: str,
        entity_id: str,
        variables: dict[str, Any] | None = None,
        actor_no: int = 0,
    ) -> NotificationOutboxModel:
        row = NotificationOutboxModel(
            event_type=event_type,
            recipient_employee_no=recipient_employee_no,
            priority=priority.value,
            entity_type=entity_type,
            entity_id=entity_id,
            variables=_jsonable(variables or {}),
            status=OutboxStatus.PENDING.value,
            attempts=0,
            occurred_at=self._clock.now(),
            created_by=actor_no,
        )
        self._session.add(row)
        logger.debug(
            "notification_enqueued",
            extra={
                "event_type": event_type,
                "recipient_employee_no": recipient_employee_no,
                "entity_type": entity_type,
            },
        )
        return row


def _jsonable(variables: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, val in variables.items():
        if val is None or isinstance(val, (bool, int, float, str)):
            out[key] = val
        elif isinstance(val, Enum):
            out[key] = val.value
        else:
            out[key] = str(val)
    return out


@dataclass(frozen=True)
class DispatchReport:
    examined: int
    delivered: int
    failed: int
    dead_lettered: int


class NotificationDispatcher:
    """
    Drains the outbox.

    Contract:
        ``dispatch_pending`` processes up to ``limit`` pending or failed
        rows in occurrence order and commits once at the end.  Use a
        session dedicated to dispatch.
    """

    def __init__(
        self,
        session: Session,
        publisher: NotificationPublisher | None = None,
        clock: Clock | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self._session = session
        self._publisher = publisher or LoggingNotificationPublisher()
        self._clock = clock or SystemClock()
        self._max_attempts = max_attempts

    def pending_rows(self, limit: int = 100) -> list[NotificationOutboxModel]:
        """Pending or failed rows in occurrence order, locked for this session."""
        return list(
            self._session.execute(
                select(NotificationOutboxModel)
                .where(
                    NotificationOutboxModel.status.in_(
                        [OutboxStatus.PENDING.value, OutboxStatus.FAILED.value]
                    )
                )
                .order_by(NotificationOutboxModel.occurred_at, NotificationOutboxModel.id)
                .limit(limit)
                .with_for_update(skip_locked=True)
            ).scalars().all()
        )

    def deliver(self, row: NotificationOutboxModel) -> OutboxStatus:
        """Publish one row and record the outcome on it.  Does not commit."""
        row.attempts += 1
        try:
            self._publisher.publish(
                row.event_type,
                row.recipient_employee_no,
                NotificationPriority(row.priority),
                row.entity_type,
                row.entity_id,
                dict(row.variables or {}),
            )
        except Exception as exc:
            row.last_error = f"{type(exc).__name__}: {exc}"
            if row.attempts >= self._max_attempts:
                row.status = OutboxStatus.DEAD_LETTER.value
            else:
                row.status = OutboxStatus.FAILED.value
            logger.warning(
                "notification_delivery_failed",
                extra={
                    "outbox_id": str(row.id),
                    "event_type": row.event_type,
                    "attempts": row.attempts,
                    "outbox_status": row.status,
                },
                exc_info=True,
            )
            return OutboxStatus(row.status)

        row.status = OutboxStatus.DELIVERED.value
        row.delivered_at = self._clock.now()
        row.last_error = None
        return OutboxStatus.DELIVERED

    def dispatch_pending(self, limit: int = 100) -> DispatchReport:
        rows = self.pending_rows(limit)
        outcomes = [self.deliver(row) for row in rows]

        self._session.commit()
        report = DispatchReport(
            examined=len(rows),
            delivered=outcomes.count(OutboxStatus.DELIVERED),
            failed=outcomes.count(OutboxStatus.FAILED),
            dead_lettered=outcomes.count(OutboxStatus.DEAD_LETTER),
        )
        logger.info(
            "notification_dispatch_completed",
            extra={
                "examined": report.examined,
                "delivered": report.delivered,
                "failed": report.failed,
                "dead_lettered": report.dead_lettered,
            },
        )
        return report
