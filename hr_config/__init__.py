"""
hr_config -- single public entrypoint for approval routing configuration.

Responsibility:
    ``get_active_chains()`` loads a named YAML chain set, validates it and
    returns the immutable ``ApprovalChainConfig`` the approval engine
    queries.  Every ``RequestType`` must have a registered chain, so a
    missing or misspelled chain fails at startup rather than at the first
    approval.

Architecture position:
    Configuration -- sits above ``hr_kernel`` and below ``hr_services`` /
    ``hr_modules``.  The kernel never imports from ``hr_config``.

Failure modes:
    - ``FileNotFoundError`` -- no chain set with that name.
    - ``ChainConfigValidationError`` -- validation errors (all listed).

Audit relevance:
    Each successful call emits an ``HR_CONFIG_TRACE`` log entry with the
    set name, version, checksum and chain count, tying every approval
    decision to the configuration that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hr_config.bridges import build_chain_config, build_chains
from hr_config.loader import load_chain_set
from hr_config.schema import ApprovalChainSetDef
from hr_config.validator import ChainValidationResult, validate_chain_set
from hr_kernel.domain.approval import ApprovalChainConfig
from hr_kernel.exceptions import ChainConfigValidationError

_logger = logging.getLogger("hr_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def load_validated_chain_set(
    name: str = "default",
    config_dir: Path | None = None,
) -> ApprovalChainSetDef:
    """Load ``<config_dir>/<name>.yaml`` and validate it.

    Raises:
        FileNotFoundError: no such set.
        ChainConfigValidationError: the set has validation errors.
    """
    path = (config_dir or _DEFAULT_CONFIG_DIR) / f"{name}.yaml"
    chain_set = load_chain_set(path)

    result = validate_chain_set(chain_set)
    for warning in result.warnings:
        _logger.warning(
            "chain_config_warning",
            extra={"config_name": chain_set.name, "warning": warning},
        )
    if not result.is_valid:
        raise ChainConfigValidationError(chain_set.name, result.errors)
    return chain_set


def get_active_chains(
    name: str = "default",
    config_dir: Path | None = None,
) -> ApprovalChainConfig:
    """The public configuration entrypoint for approval routing."""
    chain_set = load_validated_chain_set(name, config_dir)
    config = build_chain_config(chain_set)

    _logger.info(
        "HR_CONFIG_TRACE",
        extra={
            "trace_type": "HR_CONFIG_TRACE",
            "config_name": chain_set.name,
            "config_version": chain_set.version,
            "checksum": chain_set.checksum,
            "chain_count": len(chain_set.chains),
        },
    )
    return config


__all__ = [
    "ChainValidationResult",
    "build_chains",
    "get_active_chains",
    "load_validated_chain_set",
    "validate_chain_set",
]
