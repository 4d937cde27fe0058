"""
Bridges from the chain-set source artifact to kernel domain objects.

``build_chains`` expects a set that already passed
``validate_chain_set``; it raises ``ValueError`` / ``UnknownRequestTypeError``
on anything the validator would have rejected.
"""

from __future__ import annotations

from hr_config.schema import ApprovalChainSetDef, ChainDef
from hr_kernel.domain.approval import (
    ApprovalChain,
    ApprovalChainConfig,
    ApprovalChainStep,
    RequestType,
    parse_rule,
)


def build_chain(chain: ChainDef) -> ApprovalChain:
    rt = RequestType.parse(chain.request_type)
    return ApprovalChain(
        request_type=rt,
        steps=tuple(
            ApprovalChainStep(
                request_type=rt,
                level=step.level,
                rule=parse_rule(step.rule, step.params),
                level_name=step.name,
                is_active=step.active,
            )
            for step in chain.steps
        ),
        department_code=chain.department_code,
        project_code=chain.project_code,
    )


def build_chains(chain_set: ApprovalChainSetDef) -> tuple[ApprovalChain, ...]:
    return tuple(build_chain(c) for c in chain_set.chains)


def build_chain_config(chain_set: ApprovalChainSetDef) -> ApprovalChainConfig:
    return ApprovalChainConfig(build_chains(chain_set))
