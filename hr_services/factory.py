"""
Wiring helpers for the approval engine.

``build_engine`` composes the SQL organization directory, the resolver and
a chain configuration into an ``ApprovalWorkflowEngine`` bound to one
session.  The chain configuration comes from (in order) the argument, the
``approval_chains`` tables when ``from_database`` is set, or the validated
YAML set returned by ``hr_config.get_active_chains()``.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from hr_config import get_active_chains
from hr_engines.approval import ApprovalWorkflowEngine
from hr_engines.resolver import ApproverResolver
from hr_kernel.domain.approval import ApprovalChainConfig
from hr_kernel.services.chain_store import load_chain_config
from hr_kernel.services.organization_directory import SqlOrganizationDirectory


def build_engine(
    session: Session,
    chains: ApprovalChainConfig | None = None,
    from_database: bool = False,
) -> ApprovalWorkflowEngine:
    if chains is None:
        chains = load_chain_config(session) if from_database else get_active_chains()
    return ApprovalWorkflowEngine(chains, ApproverResolver(SqlOrganizationDirectory(session)))
