"""
Persistence for batch runs: one ``batch_jobs`` row per run and one
``batch_items`` row per processed item.

Callers outside hr_batch never see these rows; ``to_dto()`` turns them
into the frozen snapshots of ``hr_batch.domain.types``.

Invariants enforced:
    - ``idempotency_key`` is UNIQUE on batch_jobs, so one key names one run
      even when two workers submit it at the same moment.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from hr_batch.domain.types import BatchItemResult, BatchJob

# Columns copied one-to-one between the row and its DTO.
_JOB_FIELDS = (
    "job_name",
    "task_type",
    "idempotency_key",
    "total_items",
    "succeeded_items",
    "failed_items",
    "skipped_items",
    "created_at",
    "started_at",
    "completed_at",
    "created_by",
    "correlation_id",
    "error_summary",
)
_ITEM_FIELDS = (
    "item_index",
    "item_key",
    "error_code",
    "error_message",
    "result_data",
    "duration_ms",
    "started_at",
    "completed_at",
)


def _copy(source: Any, names: tuple[str, ...]) -> dict[str, Any]:
    return {name: getattr(source, name) for name in names}


class BatchJobModel(TrackedBase):
    __tablename__ = "batch_jobs"

    __table_args__ = (
        Index("ix_batch_jobs_status", "status"),
        Index("ix_batch_jobs_task_type", "task_type"),
    )

    job_name: Mapped[str] = mapped_column(String(200), nullable=False)
    task_type: Mapped[str] = mapped_column(String(200), nullable=False)
    # hr_batch.domain.types.BatchJobStatus value
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    parameters: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    total_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    succeeded_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    skipped_items: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    correlation_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    items: Mapped[list["BatchItemModel"]] = relationship(
        "BatchItemModel",
        back_populates="job",
        order_by="BatchItemModel.item_index",
    )

    def to_dto(self) -> BatchJob:
        from hr_batch.domain.types import BatchJob, BatchJobStatus

        return BatchJob(
            job_id=self.id,
            status=BatchJobStatus(self.status),
            parameters=dict(self.parameters or {}),
            **_copy(self, _JOB_FIELDS),
        )

    def __repr__(self) -> str:
        return f"<BatchJobModel {self.task_type} key={self.idempotency_key!r} [{self.status}]>"


class BatchItemModel(TrackedBase):
    __tablename__ = "batch_items"

    __table_args__ = (
        Index("ix_batch_items_job_status", "job_id", "status"),
        Index("ix_batch_items_item_key", "item_key"),
    )

    job_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("batch_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    item_index: Mapped[int] = mapped_column(Integer, nullable=False)
    # e.g. "VAC:<request id>" or "5001:2024-03"
    item_key: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    error_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    job: Mapped[BatchJobModel] = relationship("BatchJobModel", back_populates="items")

    @classmethod
    def from_result(cls, result: BatchItemResult, job_id: UUID, created_by: int) -> BatchItemModel:
        return cls(
            job_id=job_id,
            status=result.status.value,
            created_by=created_by,
            **_copy(result, _ITEM_FIELDS),
        )

    def to_dto(self) -> BatchItemResult:
        from hr_batch.domain.types import BatchItemResult, BatchItemStatus

        return BatchItemResult(status=BatchItemStatus(self.status), **_copy(self, _ITEM_FIELDS))
