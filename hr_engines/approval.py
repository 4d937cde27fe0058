"""
Module: hr_engines.approval
Responsibility:
    The multi-level approval state machine shared by every business flow.
    Decides who approves next, whether an employee may approve now, and
    when a chain is exhausted.

Architecture position:
    Engines -- pure computation.  Reads an immutable ``ApprovalChainConfig``
    and resolves approvers through ``ApproverResolver``.  No persistence,
    no notifications, no clock.  Callers mirror the returned
    ``ApprovalState`` onto their own rows.

State machine:
    initialize_approval  -> Pending(1, approver) | Approved (no level-1 step)
    move_to_next_level   -> Pending(level+1, approver) | Approved (no next step)
    reject               -> Rejected
    Approved and Rejected are terminal.

Invariants enforced:
    - Missing configuration never auto-approves, except the documented
      "registered chain without a level-1 step" case.
    - The current level passed to ``move_to_next_level`` must exist in the
      chain; otherwise ``ApprovalLevelNotConfiguredError``.
    - The next approver is resolved against the context supplied on *this*
      call.  Nothing is cached from ``initialize_approval``.
    - ``can_approve`` is an identity comparison.  The only bypass is the
      explicit ``allow_override`` argument, which is logged.

Failure modes:
    - ApprovalConfigNotFoundError: no chain registered for the request type.
    - ApprovalLevelNotConfiguredError: current level absent from the chain.
    - NoApproverResolvedError: propagated from the resolver.
"""

from __future__ import annotations

from collections.abc import Mapping

from hr_engines.resolver import ApproverResolver
from hr_engines.tracer import traced_engine
from hr_kernel.domain.approval import (
    ApprovalChainConfig,
    ApprovalState,
    ApprovalTimelineStep,
    RequestContext,
    RequestType,
    TimelineStepStatus,
    TransStatus,
)
from hr_kernel.exceptions import ApprovalLevelNotConfiguredError, NoApproverResolvedError
from hr_kernel.logging_config import get_logger

logger = get_logger("engines.approval")

_FINGERPRINT = ("request_type", "employee_no", "department_code", "project_code")


class ApprovalWorkflowEngine:
    """
    Approval state machine.

    Contract:
        Every method is deterministic for a given chain configuration and
        organization directory.  The engine is safe to share between
        threads; it holds no mutable state.

    Non-goals:
        - Persisting state or guarding against concurrent approvals (the
          caller's transaction does that).
        - Role-based authorization.
    """

    def __init__(self, chains: ApprovalChainConfig, resolver: ApproverResolver):
        self._chains = chains
        self._resolver = resolver

    @property
    def chains(self) -> ApprovalChainConfig:
        return self._chains

    @traced_engine("approval_workflow", "1.0", _FINGERPRINT)
    def initialize_approval(
        self,
        request_type: RequestType | str,
        employee_no: int,
        department_code: int | None = None,
        project_code: int | None = None,
    ) -> ApprovalState:
        """First state of a freshly submitted request."""
        context = RequestContext(
            RequestType.parse(request_type), employee_no, department_code, project_code
        )
        return self._state_for_level(context, 1)

    def can_approve(
        self,
        request_type: RequestType | str,
        current_level: int | None,
        approver_no: int | None,
        expected_approver: int | None,
        *,
        allow_override: bool = False,
        department_code: int | None = None,
        project_code: int | None = None,
    ) -> bool:
        """True iff ``approver_no`` is the expected approver at a configured level.

        ``allow_override`` authorizes any non-null actor at a configured
        level.  It is the caller's explicit, per-call decision.
        """
        rt = RequestType.parse(request_type)
        if approver_no is None or current_level is None or current_level < 1:
            return False
        step = self._chains.step(
            rt, current_level, department_code=department_code, project_code=project_code
        )
        if step is None:
            logger.warning(
                "approval_level_not_current",
                extra={"request_type": rt.value, "level": current_level},
            )
            return False
        if approver_no == expected_approver:
            return True
        if allow_override:
            logger.warning(
                "approval_override_used",
                extra={
                    "request_type": rt.value,
                    "level": current_level,
                    "approver_no": approver_no,
                    "expected_approver": expected_approver,
                },
            )
            return True
        logger.info(
            "approver_not_authorized",
            extra={
                "request_type": rt.value,
                "level": current_level,
                "approver_no": approver_no,
                "expected_approver": expected_approver,
            },
        )
        return False

    @traced_engine("approval_workflow", "1.0", _FINGERPRINT + ("current_level",))
    def move_to_next_level(
        self,
        request_type: RequestType | str,
        current_level: int,
        employee_no: int,
        department_code: int | None = None,
        project_code: int | None = None,
    ) -> ApprovalState:
        """State after ``current_level`` approves."""
        context = RequestContext(
            RequestType.parse(request_type), employee_no, department_code, project_code
        )
        current = self._chains.step(
            context.request_type,
            current_level,
            department_code=department_code,
            project_code=project_code,
        )
        if current is None:
            raise ApprovalLevelNotConfiguredError(context.request_type.value, current_level)
        return self._state_for_level(context, current_level + 1)

    @staticmethod
    def reject() -> ApprovalState:
        return ApprovalState.rejected()

    def _state_for_level(self, context: RequestContext, level: int) -> ApprovalState:
        step = self._chains.step(
            context.request_type,
            level,
            department_code=context.department_code,
            project_code=context.project_code,
        )
        if step is None:
            logger.info(
                "approval_chain_complete" if level > 1 else "approval_auto_approved",
                extra={"request_type": context.request_type.value, "level": level},
            )
            return ApprovalState.approved()

        approver = self._resolver.resolve(step.rule, context)
        logger.info(
            "approval_level_assigned",
            extra={
                "request_type": context.request_type.value,
                "level": level,
                "approver_no": approver,
                "rule_kind": step.rule.kind,
            },
        )
        return ApprovalState.pending(level, approver, step.display_name)

    # ------------------------------------------------------------------
    # Timeline
    # ------------------------------------------------------------------

    def approval_timeline(
        self,
        context: RequestContext,
        current_level: int | None,
        trans_status: TransStatus | str,
        rejected_level: int | None = None,
        level_contexts: Mapping[int, RequestContext] | None = None,
    ) -> list[ApprovalTimelineStep]:
        """Projected view of every level for one request.

        ``level_contexts`` overrides the context per level for flows whose
        context changes between levels.  Approvers that cannot be resolved
        are reported with ``approver_no=None`` instead of raising.
        """
        status = TransStatus(trans_status)
        steps = self._chains.levels(
            context.request_type,
            department_code=context.department_code,
            project_code=context.project_code,
        )
        overrides = level_contexts or {}
        timeline: list[ApprovalTimelineStep] = []
        for step in steps:
            level_context = overrides.get(step.level, context)
            approver: int | None
            reason: str | None = None
            try:
                approver = self._resolver.resolve(step.rule, level_context)
            except NoApproverResolvedError as exc:
                approver, reason = None, exc.reason
            timeline.append(
                ApprovalTimelineStep(
                    level=step.level,
                    level_name=step.display_name,
                    approver_no=approver,
                    status=_step_status(step.level, status, current_level, rejected_level),
                    unresolved_reason=reason,
                )
            )
        return timeline


def _step_status(
    level: int,
    status: TransStatus,
    current_level: int | None,
    rejected_level: int | None,
) -> TimelineStepStatus:
    if status == TransStatus.APPROVED:
        return TimelineStepStatus.COMPLETED
    if status == TransStatus.REJECTED:
        if rejected_level is None:
            return TimelineStepStatus.REJECTED
        if level < rejected_level:
            return TimelineStepStatus.COMPLETED
        if level == rejected_level:
            return TimelineStepStatus.REJECTED
        return TimelineStepStatus.SKIPPED
    if current_level is None:
        return TimelineStepStatus.FUTURE
    if level < current_level:
        return TimelineStepStatus.COMPLETED
    if level == current_level:
        return TimelineStepStatus.PENDING
    return TimelineStepStatus.FUTURE
