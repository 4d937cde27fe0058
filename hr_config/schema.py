"""
Approval chain set schema.

The human-authored, reviewable source artifact for approval routing.
YAML files are parsed into these types by the loader, checked by the
validator and turned into a runtime ``ApprovalChainConfig`` by
``hr_config.bridges``.

Key distinction:
  ApprovalChainSetDef  = source artifact (strings, as written in YAML)
  ApprovalChainConfig  = runtime artifact (typed, immutable, validated)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ChainStepDef:
    """One level as written in YAML."""

    level: int
    rule: str
    params: dict[str, Any] = field(default_factory=dict)
    name: str | None = None
    active: bool = True


@dataclass(frozen=True)
class ChainDef:
    """One chain as written in YAML; unscoped when both codes are None."""

    request_type: str
    steps: tuple[ChainStepDef, ...] = ()
    department_code: int | None = None
    project_code: int | None = None
    description: str | None = None

    @property
    def scope(self) -> str:
        if self.department_code is not None:
            return f"department:{self.department_code}"
        if self.project_code is not None:
            return f"project:{self.project_code}"
        return "global"


@dataclass(frozen=True)
class ApprovalChainSetDef:
    """A complete, versioned set of approval chains."""

    name: str
    version: int
    chains: tuple[ChainDef, ...]
    description: str | None = None
    checksum: str = ""
