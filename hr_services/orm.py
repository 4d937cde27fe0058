"""
Module: hr_services.orm
Responsibility: ORM persistence for the notification outbox.

Architecture position: Services > ORM.  Rows are written inside business
    transactions by ``NotificationOutbox.enqueue`` and drained by
    ``NotificationDispatcher``.

Invariants enforced:
    - status is one of pending / delivered / failed / dead_letter.
    - attempts never decreases.

Audit relevance:
    The outbox is the durable record that a state change was announced.
    A row exists for every approval transition that committed, whether or
    not delivery later succeeded.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, BigInteger, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hr_kernel.db.base import TrackedBase


class OutboxStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"  # retryable
    DEAD_LETTER = "dead_letter"


class NotificationOutboxModel(TrackedBase):
    """One notification waiting for (or done with) delivery."""

    __tablename__ = "notification_outbox"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'delivered', 'failed', 'dead_letter')",
            name="ck_notification_outbox_status",
        ),
        Index("idx_notification_outbox_status", "status", "occurred_at"),
    )

    event_type: Mapped[str] = mapped_column(String(80), nullable=False)
    recipient_employee_no: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    variables: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OutboxStatus.PENDING.value
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<NotificationOutboxModel {self.event_type} -> {self.recipient_employee_no} [{self.status}]>"
