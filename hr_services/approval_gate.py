"""
ApprovalGate -- the caller side of the approval engine, shared by every flow.

Responsibility:
    Runs the integration contract each business flow must honor:
      (a) ``initialize_approval`` exactly once at submission;
      (b) on approval, reload the entity under lock, require it to still be
          pending at the level the actor saw, ``can_approve``, then
          ``move_to_next_level``;
      (c) persist the returned state onto the entity;
      (d) on Approved, run the flow's finalize-effect exactly once, in the
          same transaction;
      (e) on rejection, clear the next approver and level, record the
          (mandatory) reason
          and run no finalize-effect.
    Every transition also writes a notification row to the outbox in the
    same transaction.

Architecture position:
    Services.  Composes ``hr_engines.ApprovalWorkflowEngine`` with the
    flow objects from ``hr_modules``.  Flushes but never commits: the module
    service that owns the public operation owns the transaction.

Invariants enforced:
    - At most one actor advances a given level.  The entity row is read
      ``FOR UPDATE`` (PostgreSQL) and every entity carries an
      ``approval_version`` counter; a writer that lost the race gets
      ``ApprovalAlreadyProcessedError`` instead of a second finalize.
    - Override is never implicit: ``allow_override`` must be passed per call
      and authorizes only the current level.

Failure modes:
    - EntityNotFoundError, ApprovalAlreadyProcessedError,
      UnauthorizedApproverError, RejectionReasonRequiredError raised here.
    - ApprovalConfigNotFoundError, NoApproverResolvedError propagated from
      the engine; the transaction must be rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from hr_engines.approval import ApprovalWorkflowEngine
from hr_kernel.domain.approval import (
    ApprovalState,
    ApprovalTimelineStep,
    RequestContext,
    RequestType,
    TransStatus,
)
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.exceptions import (
    ApprovalAlreadyProcessedError,
    EntityNotFoundError,
    RejectionReasonRequiredError,
    UnauthorizedApproverError,
)
from hr_kernel.logging_config import LogContext, get_logger
from hr_services.notifications import NotificationOutbox, NotificationPriority

logger = get_logger("services.approval_gate")

# Synthetic approver identity used by scheduled jobs.
SYSTEM_APPROVER_NO = 0


class ApprovalFlow(Protocol):
    """What a business flow tells the gate about its entity type."""

    request_type: RequestType
    entity_type: str
    event_prefix: str
    model: type

    def context_for(self, entity: Any, level: int) -> RequestContext: ...

    def requester_no(self, entity: Any) -> int: ...

    def finalize(self, session: Session, entity: Any, actor_no: int, now: datetime) -> None: ...

    def notification_variables(self, entity: Any) -> dict[str, Any]: ...


class BaseApprovalFlow:
    """
    Defaults for flows whose entity has ``employee_no``,
    ``department_code`` and ``project_code`` columns and whose context does
    not change between levels.
    """

    request_type: RequestType
    entity_type: str
    event_prefix: str
    model: type

    def context_for(self, entity: Any, level: int) -> RequestContext:
        return RequestContext(
            request_type=self.request_type,
            employee_no=entity.employee_no,
            department_code=entity.department_code,
            project_code=entity.project_code,
        )

    def requester_no(self, entity: Any) -> int:
        return entity.employee_no

    def finalize(self, session: Session, entity: Any, actor_no: int, now: datetime) -> None:
        return None

    def notification_variables(self, entity: Any) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class ApprovalDecision:
    """Outcome of one approve / reject call."""

    entity_id: UUID
    acted_level: int | None
    state: ApprovalState
    finalized: bool = False


class ApprovalGate:
    """
    Applies engine decisions to business entities.

    Contract:
        ``submit``, ``approve`` and ``reject`` mutate the entity and add an
        outbox row, then flush.  Callers commit or roll back.

    Non-goals:
        - Delivering notifications (see ``NotificationDispatcher``).
        - Business validation of the request itself.
    """

    def __init__(
        self,
        session: Session,
        engine: ApprovalWorkflowEngine,
        clock: Clock | None = None,
        outbox: NotificationOutbox | None = None,
    ):
        self._session = session
        self._engine = engine
        self._clock = clock or SystemClock()
        self._outbox = outbox or NotificationOutbox(session, self._clock)

    @property
    def engine(self) -> ApprovalWorkflowEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, flow: ApprovalFlow, entity: Any) -> ApprovalState:
        """Compute and persist the first approval state of a new request."""
        ctx = flow.context_for(entity, 1)
        state = self._engine.initialize_approval(
            ctx.request_type, ctx.employee_no, ctx.department_code, ctx.project_code
        )
        now = self._clock.now()
        entity.submitted_at = now
        entity.apply_approval_state(state)
        self._session.add(entity)
        self._session.flush()

        with LogContext.bind(
            request_type=flow.request_type.value,
            entity_id=entity.id,
            actor_no=flow.requester_no(entity),
        ):
            if state.trans_status == TransStatus.APPROVED:
                entity.approved_by = SYSTEM_APPROVER_NO
                entity.approved_at = now
                flow.finalize(self._session, entity, SYSTEM_APPROVER_NO, now)
                self._notify(
                    flow, entity, "APPROVED_FINAL",
                    flow.requester_no(entity), NotificationPriority.HIGH,
                )
            else:
                self._notify(
                    flow, entity, "SUBMITTED",
                    state.next_approver, NotificationPriority.MEDIUM,
                )
            self._session.flush()
            logger.info(
                "approval_request_submitted",
                extra={
                    "entity_type": flow.entity_type,
                    "trans_status": state.trans_status.value,
                    "next_level": state.next_level,
                    "next_approver": state.next_approver,
                },
            )
        return state

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def approve(
        self,
        flow: ApprovalFlow,
        entity_id: UUID,
        approver_no: int | None,
        *,
        acting_level: int | None = None,
        allow_override: bool = False,
    ) -> ApprovalDecision:
        """Approve the current level; finalize if the chain is exhausted."""
        with LogContext.bind(
            request_type=flow.request_type.value, entity_id=entity_id, actor_no=approver_no
        ):
            entity = self._load_for_update(flow, entity_id)
            level = self._require_pending(flow, entity, acting_level)
            expected = entity.next_approval
            self._authorize(flow, entity, level, approver_no, allow_override)

            next_ctx = flow.context_for(entity, level + 1)
            state = self._engine.move_to_next_level(
                next_ctx.request_type,
                level,
                next_ctx.employee_no,
                next_ctx.department_code,
                next_ctx.project_code,
            )
            now = self._clock.now()
            entity.apply_approval_state(state)
            entity.updated_by = approver_no

            finalized = False
            if state.trans_status == TransStatus.APPROVED:
                entity.approved_by = approver_no
                entity.approved_at = now
                # A version conflict must surface here, not from an autoflush
                # inside finalize.
                self._flush(flow, entity_id)
                flow.finalize(self._session, entity, approver_no, now)
                finalized = True
                self._notify(
                    flow, entity, "APPROVED_FINAL",
                    flow.requester_no(entity), NotificationPriority.HIGH,
                )
            else:
                self._notify(
                    flow, entity, "APPROVED_INTERMEDIATE",
                    state.next_approver, NotificationPriority.MEDIUM,
                )

            self._flush(flow, entity_id)
            logger.info(
                "approval_level_approved",
                extra={
                    "entity_type": flow.entity_type,
                    "acted_level": level,
                    "trans_status": state.trans_status.value,
                    "next_level": state.next_level,
                    "next_approver": state.next_approver,
                    "override": approver_no != expected,
                    "finalized": finalized,
                },
            )
            return ApprovalDecision(entity_id, level, state, finalized)

    def reject(
        self,
        flow: ApprovalFlow,
        entity_id: UUID,
        approver_no: int | None,
        reason: str,
        *,
        acting_level: int | None = None,
        allow_override: bool = False,
    ) -> ApprovalDecision:
        """Reject at the current level.  Terminal; no finalize-effect."""
        with LogContext.bind(
            request_type=flow.request_type.value, entity_id=entity_id, actor_no=approver_no
        ):
            if not reason or not reason.strip():
                raise RejectionReasonRequiredError(flow.entity_type, entity_id)
            entity = self._load_for_update(flow, entity_id)
            level = self._require_pending(flow, entity, acting_level)
            self._authorize(flow, entity, level, approver_no, allow_override)

            state = self._engine.reject()
            entity.apply_approval_state(state)
            entity.rejected_by = approver_no
            entity.rejected_at = self._clock.now()
            entity.rejection_reason = reason
            entity.rejected_level = level
            entity.updated_by = approver_no

            self._notify(
                flow, entity, "REJECTED",
                flow.requester_no(entity), NotificationPriority.HIGH,
                extra={"rejection_reason": reason, "rejected_level": level},
            )
            self._flush(flow, entity_id)
            logger.info(
                "approval_request_rejected",
                extra={"entity_type": flow.entity_type, "rejected_level": level},
            )
            return ApprovalDecision(entity_id, level, state)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, flow: ApprovalFlow, entity_id: UUID) -> Any:
        entity = self._session.get(flow.model, entity_id)
        if entity is None:
            raise EntityNotFoundError(flow.entity_type, entity_id)
        return entity

    def pending_for(self, flow: ApprovalFlow, approver_no: int) -> list[Any]:
        """Requests of this flow waiting on ``approver_no``."""
        model = flow.model
        return list(
            self._session.execute(
                select(model)
                .where(
                    model.trans_status == TransStatus.PENDING.value,
                    model.next_approval == approver_no,
                )
                .order_by(model.submitted_at)
            ).scalars()
        )

    def timeline(self, flow: ApprovalFlow, entity: Any) -> list[ApprovalTimelineStep]:
        base = flow.context_for(entity, 1)
        steps = self._engine.chains.levels(
            base.request_type,
            department_code=base.department_code,
            project_code=base.project_code,
        )
        contexts = {step.level: flow.context_for(entity, step.level) for step in steps}
        return self._engine.approval_timeline(
            base,
            entity.next_app_level,
            entity.trans_status,
            rejected_level=entity.rejected_level,
            level_contexts=contexts,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_for_update(self, flow: ApprovalFlow, entity_id: UUID) -> Any:
        model = flow.model
        entity = self._session.execute(
            select(model)
            .where(model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if entity is None:
            raise EntityNotFoundError(flow.entity_type, entity_id)
        return entity

    def _require_pending(
        self, flow: ApprovalFlow, entity: Any, acting_level: int | None
    ) -> int:
        if not entity.is_pending or (
            acting_level is not None and acting_level != entity.next_app_level
        ):
            logger.warning(
                "approval_already_processed",
                extra={
                    "entity_type": flow.entity_type,
                    "trans_status": entity.trans_status,
                    "current_level": entity.next_app_level,
                    "acting_level": acting_level,
                },
            )
            raise ApprovalAlreadyProcessedError(
                flow.entity_type,
                str(entity.id),
                entity.trans_status,
                entity.next_app_level,
            )
        return entity.next_app_level

    def _authorize(
        self,
        flow: ApprovalFlow,
        entity: Any,
        level: int,
        approver_no: int | None,
        allow_override: bool,
    ) -> None:
        ctx = flow.context_for(entity, level)
        if not self._engine.can_approve(
            flow.request_type,
            level,
            approver_no,
            entity.next_approval,
            allow_override=allow_override,
            department_code=ctx.department_code,
            project_code=ctx.project_code,
        ):
            raise UnauthorizedApproverError(
                flow.request_type.value, level, approver_no, entity.next_approval
            )

    def _flush(self, flow: ApprovalFlow, entity_id: UUID) -> None:
        try:
            self._session.flush()
        except StaleDataError:
            logger.warning(
                "approval_version_conflict",
                extra={"entity_type": flow.entity_type},
            )
            raise ApprovalAlreadyProcessedError(flow.entity_type, str(entity_id)) from None

    def _notify(
        self,
        flow: ApprovalFlow,
        entity: Any,
        suffix: str,
        recipient: int | None,
        priority: NotificationPriority,
        extra: dict[str, Any] | None = None,
    ) -> None:
        variables = {
            "requester_no": flow.requester_no(entity),
            "trans_status": entity.trans_status,
            "next_level": entity.next_app_level,
            "next_level_name": entity.next_app_level_name,
        }
        variables.update(flow.notification_variables(entity))
        variables.update(extra or {})
        self._outbox.enqueue(
            event_type=f"{flow.event_prefix}_{suffix}",
            recipient_employee_no=recipient,
            priority=priority,
            entity_type=flow.entity_type,
            entity_id=str(entity.id),
            variables=variables,
            actor_no=flow.requester_no(entity),
        )
