"""
Approval chain store -- database-backed ApprovalChainConfig.

Responsibility:
    Load the ``approval_chains`` / ``approval_chain_steps`` rows into an
    immutable ``ApprovalChainConfig``, and seed those tables from a set of
    domain chains (typically the validated YAML chain set from
    ``hr_config``).

Architecture position:
    Kernel > Services.  ``load_chain_config`` is read-only.
    ``seed_chains`` flushes but never commits; the caller owns the
    transaction.

Failure modes:
    - ChainConfigValidationError if the stored rows do not form a usable
      chain set (unknown rule kind, missing global chain, level gap, an
      active level after an inactive one).
    - IntegrityError if seeding a (request_type, scope) that already exists
      with ``replace=False``.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from hr_kernel.domain.approval import ApprovalChain, ApprovalChainConfig
from hr_kernel.exceptions import ChainConfigValidationError, UnknownRequestTypeError
from hr_kernel.logging_config import get_logger
from hr_kernel.models.approval_chain import ApprovalChainModel

logger = get_logger("services.chain_store")


def load_chain_config(session: Session) -> ApprovalChainConfig:
    """Read every stored chain into an ``ApprovalChainConfig``.

    The stored rows get the same structural checks as a YAML chain set:
    each request type needs a global chain, levels run contiguously from
    1, and no active level follows an inactive one.

    Raises:
        ChainConfigValidationError: the stored chains fail those checks.
    """
    rows = session.execute(
        select(ApprovalChainModel).options(selectinload(ApprovalChainModel.steps))
    ).scalars().all()

    chains: list[ApprovalChain] = []
    errors: list[str] = []
    for row in rows:
        try:
            chains.append(row.to_domain())
        except (ValueError, UnknownRequestTypeError) as exc:
            errors.append(f"{row.request_type} ({row.scope_key}): {exc}")
    if not errors:
        config = ApprovalChainConfig(chains)
        errors = config.problems()
    if errors:
        logger.error(
            "approval_chains_invalid",
            extra={"chain_count": len(rows), "errors": errors},
        )
        raise ChainConfigValidationError("database", errors)

    logger.info(
        "approval_chains_loaded",
        extra={
            "chain_count": len(rows),
            "request_types": sorted(rt.value for rt in config.request_types()),
        },
    )
    return config


def seed_chains(
    session: Session,
    chains: Iterable[ApprovalChain],
    actor_no: int,
    replace: bool = True,
) -> int:
    """Write chains to the database.  Returns the number written.

    With ``replace=True`` an existing chain for the same request type and
    scope is deleted first (its steps cascade).
    """
    written = 0
    for chain in chains:
        if replace:
            existing = session.execute(
                select(ApprovalChainModel).where(
                    ApprovalChainModel.request_type == chain.request_type.value,
                    ApprovalChainModel.scope_key == chain.scope,
                )
            ).scalar_one_or_none()
            if existing is not None:
                session.delete(existing)
                session.flush()
        session.add(ApprovalChainModel.from_domain(chain, created_by=actor_no))
        written += 1
    session.flush()
    logger.info("approval_chains_seeded", extra={"chain_count": written, "actor_no": actor_no})
    return written
