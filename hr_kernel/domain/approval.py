"""
Approval domain types.

Responsibility:
    Frozen value objects shared by the approval engine, the configuration
    loaders and the business flows: the closed ``RequestType`` enum, the
    persisted ``TransStatus`` codes, the approver-rule variants, chain
    steps, the chain configuration store, request contexts, engine output
    states and timeline steps.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  No imports from db/, models/,
    services/ or any outer package.

Invariants enforced:
    - ApprovalState: ``next_approver`` and ``next_level`` are non-null iff
      the status is PENDING; terminal states carry neither.
    - ApprovalChain: levels within one chain are unique and positive, and
      no active step follows an inactive one.
    - ApprovalChainConfig is immutable after construction; a request type
      with no registered chain is an error, a registered chain without a
      level-1 step auto-approves.

Failure modes:
    - ValueError from ``__post_init__`` on malformed value objects.
    - UnknownRequestTypeError from ``RequestType.parse``.
    - ApprovalConfigNotFoundError from ``ApprovalChainConfig.select_chain``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar

from hr_kernel.exceptions import ApprovalConfigNotFoundError, UnknownRequestTypeError


class RequestType(str, Enum):
    """Business processes that route through the approval engine."""

    ALLOWANCE = "ALLOW"
    LEAVE = "VAC"
    LOAN = "LOAN"
    LOAN_POSTPONEMENT = "POSTLOAN"
    PAYROLL = "PAYROLL"
    MANUAL_ATTENDANCE = "MANUAL_ATTENDANCE"
    LABOR_REQUEST = "LABOR_REQ"
    PROJECT_TRANSFER = "PROJ_TRANSFER"

    @classmethod
    def parse(cls, value: "RequestType | str") -> "RequestType":
        if isinstance(value, RequestType):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownRequestTypeError(value) from None


class TransStatus(str, Enum):
    """Approval status codes persisted on every business entity."""

    PENDING = "N"
    APPROVED = "A"
    REJECTED = "R"


TERMINAL_STATUSES: frozenset[TransStatus] = frozenset(
    {TransStatus.APPROVED, TransStatus.REJECTED}
)


# =============================================================================
# Approver rules
# =============================================================================


@dataclass(frozen=True)
class ApproverRule:
    """Base for approver-resolution rules.  Subclasses set ``kind``."""

    kind: ClassVar[str] = ""
    default_name: ClassVar[str] = ""

    def params(self) -> dict[str, Any]:
        return {}

    @property
    def label(self) -> str:
        return self.default_name or self.kind


@dataclass(frozen=True)
class FixedEmployee(ApproverRule):
    """A specific, named employee approves."""

    kind: ClassVar[str] = "FIXED_EMPLOYEE"
    default_name: ClassVar[str] = "Specific Approver"

    employee_no: int = 0

    def __post_init__(self) -> None:
        if self.employee_no <= 0:
            raise ValueError("FixedEmployee requires a positive employee_no")

    def params(self) -> dict[str, Any]:
        return {"employee_no": self.employee_no}


@dataclass(frozen=True)
class DirectManager(ApproverRule):
    """The submitting employee's direct manager."""

    kind: ClassVar[str] = "DIRECT_MANAGER"
    default_name: ClassVar[str] = "Direct Manager"


@dataclass(frozen=True)
class DepartmentManager(ApproverRule):
    """Manager of the department in the request context."""

    kind: ClassVar[str] = "DEPARTMENT_MANAGER"
    default_name: ClassVar[str] = "Department Manager"


@dataclass(frozen=True)
class ProjectManager(ApproverRule):
    """Manager of the project in the request context."""

    kind: ClassVar[str] = "PROJECT_MANAGER"
    default_name: ClassVar[str] = "Project Manager"


@dataclass(frozen=True)
class ProjectRegionalManager(ApproverRule):
    """Regional manager of the project in the request context."""

    kind: ClassVar[str] = "PROJECT_REGIONAL_MANAGER"
    default_name: ClassVar[str] = "Regional Project Manager"


_ROLE_LABELS: dict[str, str] = {
    "HR_MANAGER": "HR Manager",
    "FINANCE_MANAGER": "Finance Manager",
    "GENERAL_MANAGER": "General Manager",
}


@dataclass(frozen=True)
class RoleHolder(ApproverRule):
    """The single active holder of an organizational role."""

    kind: ClassVar[str] = "ROLE_HOLDER"

    role: str = ""

    def __post_init__(self) -> None:
        if not self.role:
            raise ValueError("RoleHolder requires a role")

    def params(self) -> dict[str, Any]:
        return {"role": self.role}

    @property
    def label(self) -> str:
        return _ROLE_LABELS.get(self.role, self.role.replace("_", " ").title())


RULE_TYPES: dict[str, type[ApproverRule]] = {
    cls.kind: cls
    for cls in (
        FixedEmployee,
        DirectManager,
        DepartmentManager,
        ProjectManager,
        ProjectRegionalManager,
        RoleHolder,
    )
}


def parse_rule(kind: str, params: Mapping[str, Any] | None = None) -> ApproverRule:
    """Build a rule from its kind string and parameter mapping.

    Raises:
        ValueError: unknown kind, unexpected parameters, or invalid values.
    """
    rule_cls = RULE_TYPES.get(kind)
    if rule_cls is None:
        raise ValueError(f"Unknown approver rule kind: {kind!r}")
    try:
        return rule_cls(**dict(params or {}))
    except TypeError as exc:
        raise ValueError(f"Invalid parameters for {kind}: {exc}") from None


# =============================================================================
# Chain configuration
# =============================================================================


@dataclass(frozen=True)
class ApprovalChainStep:
    """One level of an approval chain."""

    request_type: RequestType
    level: int
    rule: ApproverRule
    level_name: str | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        if self.level < 1:
            raise ValueError(f"Approval level must be >= 1, got {self.level}")

    @property
    def display_name(self) -> str:
        return self.level_name or self.rule.label


@dataclass(frozen=True)
class ApprovalChain:
    """
    Ordered steps for one request type, optionally scoped.

    Contract:
        A chain scoped to a department or a project applies only to
        requests carrying that code.  An unscoped chain is the global
        default.  An empty ``steps`` tuple is a registered chain that
        auto-approves.
    """

    request_type: RequestType
    steps: tuple[ApprovalChainStep, ...] = ()
    department_code: int | None = None
    project_code: int | None = None

    def __post_init__(self) -> None:
        if self.department_code is not None and self.project_code is not None:
            raise ValueError("A chain is scoped to a department or a project, not both")
        levels = [s.level for s in self.steps]
        if len(levels) != len(set(levels)):
            raise ValueError(f"Duplicate levels in {self.request_type.value} chain")
        for step in self.steps:
            if step.request_type != self.request_type:
                raise ValueError(
                    f"Step for {step.request_type.value} placed in "
                    f"{self.request_type.value} chain"
                )
        object.__setattr__(
            self, "steps", tuple(sorted(self.steps, key=lambda s: s.level))
        )
        # Routing advances one level at a time, so an inactive step may only
        # be followed by inactive steps.
        inactive_level = None
        for step in self.steps:
            if not step.is_active and inactive_level is None:
                inactive_level = step.level
            elif step.is_active and inactive_level is not None:
                raise ValueError(
                    f"{self.request_type.value} chain: inactive level {inactive_level} "
                    f"is followed by active level {step.level}"
                )

    @property
    def scope(self) -> str:
        if self.department_code is not None:
            return f"department:{self.department_code}"
        if self.project_code is not None:
            return f"project:{self.project_code}"
        return "global"

    def active_step(self, level: int) -> ApprovalChainStep | None:
        for step in self.steps:
            if step.level == level and step.is_active:
                return step
        return None

    def problems(self) -> list[str]:
        """Structural defects a well-formed chain must not have."""
        levels = [s.level for s in self.steps]
        if levels != list(range(1, len(levels) + 1)):
            return [
                f"{self.request_type.value} ({self.scope}): levels must be "
                f"contiguous from 1, got {levels}"
            ]
        return []


class ApprovalChainConfig:
    """
    Read-only store of approval chains.

    Contract:
        ``lookup(request_type, level)`` returns the rule for that level or
        ``None``.  ``None`` at level 1 means auto-approve; ``None`` at a
        higher level means the chain ended at the previous level.  Asking
        about a request type with no registered chain at all raises
        ``ApprovalConfigNotFoundError``.

    Guarantees:
        - Chain selection order: department-scoped, then project-scoped,
          then global.
        - Inactive steps are invisible to lookups.  They only ever trail
          the active ones, so a chain ends at its first inactive step.
        - Instances never change after construction.
    """

    def __init__(self, chains: Iterable[ApprovalChain]):
        self._chains: dict[tuple[RequestType, str], ApprovalChain] = {}
        for chain in chains:
            key = (chain.request_type, chain.scope)
            if key in self._chains:
                raise ValueError(
                    f"Duplicate {chain.scope} chain for {chain.request_type.value}"
                )
            self._chains[key] = chain

    def __repr__(self) -> str:
        return f"<ApprovalChainConfig chains={len(self._chains)}>"

    @property
    def chains(self) -> tuple[ApprovalChain, ...]:
        return tuple(self._chains.values())

    def request_types(self) -> frozenset[RequestType]:
        return frozenset(rt for rt, _ in self._chains)

    def has_chain(self, request_type: RequestType | str) -> bool:
        return RequestType.parse(request_type) in self.request_types()

    def problems(self) -> list[str]:
        """Missing global chains and malformed chains, in a stable order."""
        found = [
            f"No global approval chain registered for {rt.value}"
            for rt in RequestType
            if (rt, "global") not in self._chains
        ]
        for chain in self._chains.values():
            found.extend(chain.problems())
        return found

    def select_chain(
        self,
        request_type: RequestType | str,
        *,
        department_code: int | None = None,
        project_code: int | None = None,
    ) -> ApprovalChain:
        rt = RequestType.parse(request_type)
        candidates = []
        if department_code is not None:
            candidates.append((rt, f"department:{department_code}"))
        if project_code is not None:
            candidates.append((rt, f"project:{project_code}"))
        candidates.append((rt, "global"))
        for key in candidates:
            chain = self._chains.get(key)
            if chain is not None:
                return chain
        raise ApprovalConfigNotFoundError(rt.value)

    def step(
        self,
        request_type: RequestType | str,
        level: int,
        *,
        department_code: int | None = None,
        project_code: int | None = None,
    ) -> ApprovalChainStep | None:
        chain = self.select_chain(
            request_type, department_code=department_code, project_code=project_code
        )
        return chain.active_step(level)

    def lookup(
        self,
        request_type: RequestType | str,
        level: int,
        *,
        department_code: int | None = None,
        project_code: int | None = None,
    ) -> ApproverRule | None:
        step = self.step(
            request_type,
            level,
            department_code=department_code,
            project_code=project_code,
        )
        return step.rule if step is not None else None

    def levels(
        self,
        request_type: RequestType | str,
        *,
        department_code: int | None = None,
        project_code: int | None = None,
    ) -> tuple[ApprovalChainStep, ...]:
        """Active steps in order, up to the first inactive or missing level."""
        chain = self.select_chain(
            request_type, department_code=department_code, project_code=project_code
        )
        result: list[ApprovalChainStep] = []
        level = 1
        step = chain.active_step(level)
        while step is not None:
            result.append(step)
            level += 1
            step = chain.active_step(level)
        return tuple(result)


# =============================================================================
# Engine inputs and outputs
# =============================================================================


@dataclass(frozen=True)
class RequestContext:
    """Who is asking, and for which department/project, at one engine call."""

    request_type: RequestType
    employee_no: int
    department_code: int | None = None
    project_code: int | None = None


@dataclass(frozen=True)
class ApprovalState:
    """
    Engine output, mirrored by callers onto their entity columns.

    Invariants:
        - PENDING: ``next_approver`` and ``next_level`` set, level >= 1.
        - APPROVED / REJECTED: approver, level and level name all None.
    """

    trans_status: TransStatus
    next_approver: int | None = None
    next_level: int | None = None
    next_level_name: str | None = None

    def __post_init__(self) -> None:
        if self.trans_status == TransStatus.PENDING:
            if self.next_approver is None or self.next_level is None:
                raise ValueError("Pending state requires next_approver and next_level")
            if self.next_level < 1:
                raise ValueError(f"next_level must be >= 1, got {self.next_level}")
        elif (
            self.next_approver is not None
            or self.next_level is not None
            or self.next_level_name is not None
        ):
            raise ValueError(
                f"{self.trans_status.name} state cannot carry a next approver or level"
            )

    @classmethod
    def pending(
        cls, level: int, approver_no: int, level_name: str | None = None
    ) -> "ApprovalState":
        return cls(TransStatus.PENDING, approver_no, level, level_name)

    @classmethod
    def approved(cls) -> "ApprovalState":
        return cls(TransStatus.APPROVED)

    @classmethod
    def rejected(cls) -> "ApprovalState":
        return cls(TransStatus.REJECTED)

    @property
    def is_pending(self) -> bool:
        return self.trans_status == TransStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.trans_status in TERMINAL_STATUSES


class TimelineStepStatus(str, Enum):
    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    FUTURE = "FUTURE"
    REJECTED = "REJECTED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class ApprovalTimelineStep:
    """Projected view of one chain level for a specific request."""

    level: int
    level_name: str
    approver_no: int | None
    status: TimelineStepStatus
    unresolved_reason: str | None = field(default=None, compare=False)
