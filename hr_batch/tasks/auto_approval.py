"""
Batch task: 48-hour auto-approval sweep.

Requests of the swept types that have been pending for longer than the
age limit are advanced one level by the system approver, through the same
``ApprovalGate.approve`` path a person uses.  The task routes with the chain
configuration it was built with, so the sweep follows the same chains as
the services that accepted the requests.  Each request is one item, so
one failing request does not hold back the others.

A request a person acted on between ``prepare_items`` and
``execute_item`` surfaces as ``ApprovalAlreadyProcessedError`` (the item
carries the level it saw) and is reported as SKIPPED.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from hr_batch.domain.types import BatchItemStatus
from hr_batch.tasks.base import BatchItemInput, BatchTaskResult
from hr_kernel.domain.approval import ApprovalChainConfig, RequestType, TransStatus
from hr_kernel.domain.clock import DeterministicClock
from hr_kernel.exceptions import ApprovalAlreadyProcessedError, HrKernelError
from hr_kernel.logging_config import get_logger
from hr_modules.flows import flow_for
from hr_services.approval_gate import SYSTEM_APPROVER_NO, ApprovalGate
from hr_services.factory import build_engine

logger = get_logger("batch.auto_approval")

AUTO_APPROVAL_AGE_HOURS = 48

AUTO_APPROVED_TYPES: tuple[RequestType, ...] = (
    RequestType.LEAVE,
    RequestType.LOAN,
    RequestType.ALLOWANCE,
)


class AutoApprovalTask:
    """Advance stale pending requests one level as the system approver."""

    def __init__(
        self,
        request_types: tuple[RequestType, ...] = AUTO_APPROVED_TYPES,
        max_age_hours: int = AUTO_APPROVAL_AGE_HOURS,
        chains: ApprovalChainConfig | None = None,
    ):
        self._request_types = tuple(request_types)
        # None means the default YAML set, as for the request services.
        self._chains = chains
        self._max_age = timedelta(hours=max_age_hours)

    @property
    def task_type(self) -> str:
        return "approvals.auto_approve"

    @property
    def description(self) -> str:
        return "Auto-approve requests pending longer than the age limit"

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        cutoff = as_of - self._max_age
        items: list[BatchItemInput] = []
        for request_type in self._request_types:
            model = flow_for(request_type).model
            rows = session.execute(
                select(model.id, model.next_app_level)
                .where(
                    model.trans_status == TransStatus.PENDING.value,
                    model.submitted_at <= cutoff,
                )
                .order_by(model.submitted_at, model.id)
            ).all()
            for entity_id, level in rows:
                items.append(
                    BatchItemInput(
                        item_index=len(items),
                        item_key=f"{request_type.value}:{entity_id}",
                        payload={
                            "request_type": request_type.value,
                            "entity_id": str(entity_id),
                            "level": level,
                        },
                    )
                )
        logger.info(
            "auto_approval_candidates",
            extra={"cutoff": cutoff.isoformat(), "candidates": len(items)},
        )
        return tuple(items)

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        flow = flow_for(item.payload["request_type"])
        # Approval stamps carry the job's as_of, not wall-clock time.
        gate = ApprovalGate(session, build_engine(session, self._chains), DeterministicClock(as_of))
        try:
            decision = gate.approve(
                flow,
                UUID(item.payload["entity_id"]),
                SYSTEM_APPROVER_NO,
                acting_level=item.payload["level"],
                allow_override=True,
            )
        except ApprovalAlreadyProcessedError as exc:
            return BatchTaskResult.from_error(BatchItemStatus.SKIPPED, exc)
        except HrKernelError as exc:
            return BatchTaskResult.from_error(BatchItemStatus.FAILED, exc)
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={
                "acted_level": decision.acted_level,
                "trans_status": decision.state.trans_status.value,
                "next_level": decision.state.next_level,
                "finalized": decision.finalized,
            },
        )
