"""
Chain set validator (``hr_config.validator``).

Responsibility
--------------
Checks an ``ApprovalChainSetDef`` before it becomes the runtime
configuration, so that a misspelled request type or a gap in a chain is a
startup failure instead of a ``ApprovalConfigNotFoundError`` in the middle
of someone's loan approval.

Invariants enforced
-------------------
* Every chain names a member of ``RequestType``.
* Every ``RequestType`` has a global chain (possibly empty, which means
  auto-approve).
* At most one chain per (request type, scope); a chain is scoped to a
  department or a project, never both.
* Levels are unique and contiguous from 1, and once a level is inactive
  every later level is inactive too.
* Rule kinds are known and their parameters are valid.

Failure modes
-------------
* Errors  -> the set MUST NOT be used.
* Warnings  -> usable, but should be reviewed (empty non-global chains).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hr_config.schema import ApprovalChainSetDef, ChainDef
from hr_kernel.domain.approval import RequestType, parse_rule


@dataclass
class ChainValidationResult:
    """
    Result of chain set validation.

    Contract
    --------
    * ``is_valid`` is ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_chain_set(chain_set: ApprovalChainSetDef) -> ChainValidationResult:
    """Validate a parsed chain set.  A set with errors MUST NOT be used."""
    result = ChainValidationResult()

    _validate_request_types(chain_set, result)
    _validate_scopes(chain_set, result)
    _validate_coverage(chain_set, result)
    for chain in chain_set.chains:
        _validate_levels(chain, result)
        _validate_rules(chain, result)

    return result


def _validate_request_types(
    chain_set: ApprovalChainSetDef, result: ChainValidationResult
) -> None:
    known = {rt.value for rt in RequestType}
    for chain in chain_set.chains:
        if chain.request_type not in known:
            result.add_error(f"Unknown request type '{chain.request_type}'")


def _validate_scopes(chain_set: ApprovalChainSetDef, result: ChainValidationResult) -> None:
    seen: set[tuple[str, str]] = set()
    for chain in chain_set.chains:
        if chain.department_code is not None and chain.project_code is not None:
            result.add_error(
                f"{chain.request_type}: chain scoped to both department "
                f"{chain.department_code} and project {chain.project_code}"
            )
        key = (chain.request_type, chain.scope)
        if key in seen:
            result.add_error(f"{chain.request_type}: duplicate {chain.scope} chain")
        seen.add(key)
        if not chain.steps and chain.scope != "global":
            result.add_warning(
                f"{chain.request_type}: {chain.scope} chain is empty and auto-approves"
            )


def _validate_coverage(chain_set: ApprovalChainSetDef, result: ChainValidationResult) -> None:
    registered = {c.request_type for c in chain_set.chains if c.scope == "global"}
    for rt in RequestType:
        if rt.value not in registered:
            result.add_error(f"No global approval chain registered for {rt.value}")


def _validate_levels(chain: ChainDef, result: ChainValidationResult) -> None:
    label = f"{chain.request_type} ({chain.scope})"
    levels = [s.level for s in chain.steps]
    if len(levels) != len(set(levels)):
        result.add_error(f"{label}: duplicate levels {sorted(levels)}")
        return
    expected = list(range(1, len(levels) + 1))
    if sorted(levels) != expected:
        result.add_error(
            f"{label}: levels must be contiguous from 1, got {sorted(levels)}"
        )
        return
    by_level = {s.level: s for s in chain.steps}
    for level in expected:
        if not by_level[level].active and any(
            by_level[later].active for later in expected if later > level
        ):
            result.add_error(
                f"{label}: inactive level {level} is followed by an active level"
            )
            break


def _validate_rules(chain: ChainDef, result: ChainValidationResult) -> None:
    for step in chain.steps:
        try:
            parse_rule(step.rule, step.params)
        except ValueError as exc:
            result.add_error(f"{chain.request_type} level {step.level}: {exc}")
