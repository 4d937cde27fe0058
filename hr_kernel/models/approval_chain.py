"""
Module: hr_kernel.models.approval_chain
Responsibility: ORM persistence for approval chain configuration
    (``approval_chains`` header rows and ``approval_chain_steps``).

Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - One chain per (request_type, scope_key).
    - One step per (chain_id, level_no).
    - request_type values are limited to the RequestType enumeration by a
      check constraint.

Audit relevance:
    These rows decide who signs off on leave, loans and payroll.  The
    engine never writes them; they are seeded by
    ``hr_kernel.services.chain_store.seed_chains``.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_kernel.db.base import TrackedBase, UUIDString
from hr_kernel.domain.approval import (
    ApprovalChain,
    ApprovalChainStep,
    RequestType,
    parse_rule,
)

_REQUEST_TYPE_VALUES = ", ".join(f"'{rt.value}'" for rt in RequestType)


class ApprovalChainModel(TrackedBase):
    """
    One registered chain.  A chain with no step rows auto-approves.
    """

    __tablename__ = "approval_chains"

    __table_args__ = (
        UniqueConstraint("request_type", "scope_key", name="uq_approval_chains_scope"),
        CheckConstraint(
            f"request_type IN ({_REQUEST_TYPE_VALUES})",
            name="ck_approval_chains_request_type",
        ),
    )

    request_type: Mapped[str] = mapped_column(String(30), nullable=False)
    scope_key: Mapped[str] = mapped_column(String(60), nullable=False, default="global")
    department_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    project_code: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    description: Mapped[str | None] = mapped_column(String(200), nullable=True)

    steps: Mapped[list["ApprovalChainStepModel"]] = relationship(
        back_populates="chain",
        cascade="all, delete-orphan",
        order_by="ApprovalChainStepModel.level_no",
    )

    def to_domain(self) -> ApprovalChain:
        rt = RequestType.parse(self.request_type)
        return ApprovalChain(
            request_type=rt,
            steps=tuple(step.to_domain(rt) for step in self.steps),
            department_code=self.department_code,
            project_code=self.project_code,
        )

    @classmethod
    def from_domain(cls, chain: ApprovalChain, created_by: int) -> "ApprovalChainModel":
        model = cls(
            request_type=chain.request_type.value,
            scope_key=chain.scope,
            department_code=chain.department_code,
            project_code=chain.project_code,
            created_by=created_by,
        )
        model.steps = [
            ApprovalChainStepModel.from_domain(step, created_by) for step in chain.steps
        ]
        return model

    def __repr__(self) -> str:
        return f"<ApprovalChainModel {self.request_type} {self.scope_key}>"


class ApprovalChainStepModel(TrackedBase):
    """One level in a chain: which rule resolves the approver."""

    __tablename__ = "approval_chain_steps"

    __table_args__ = (
        UniqueConstraint("chain_id", "level_no", name="uq_approval_chain_steps_level"),
        CheckConstraint("level_no >= 1", name="ck_approval_chain_steps_level_positive"),
    )

    chain_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("approval_chains.id"), nullable=False
    )
    level_no: Mapped[int] = mapped_column(Integer, nullable=False)
    rule_kind: Mapped[str] = mapped_column(String(50), nullable=False)
    rule_params: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    level_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    chain: Mapped[ApprovalChainModel] = relationship(back_populates="steps")

    def to_domain(self, request_type: RequestType) -> ApprovalChainStep:
        return ApprovalChainStep(
            request_type=request_type,
            level=self.level_no,
            rule=parse_rule(self.rule_kind, self.rule_params),
            level_name=self.level_name,
            is_active=self.is_active,
        )

    @classmethod
    def from_domain(cls, step: ApprovalChainStep, created_by: int) -> "ApprovalChainStepModel":
        return cls(
            level_no=step.level,
            rule_kind=step.rule.kind,
            rule_params=step.rule.params(),
            level_name=step.level_name,
            is_active=step.is_active,
            created_by=created_by,
        )

    def __repr__(self) -> str:
        return f"<ApprovalChainStepModel level={self.level_no} {self.rule_kind}>"
