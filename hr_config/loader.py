"""
Approval chain set loader (``hr_config.loader``).

Responsibility
--------------
Reads a YAML chain-set file and parses it into ``hr_config.schema``
dataclasses.  Runtime callers go through ``hr_config.get_active_chains()``
instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrong value types  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from hr_config.schema import ApprovalChainSetDef, ChainDef, ChainStepDef


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields ``{}``."""
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _optional_int(value: Any, what: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be an integer, got {value!r}")
    return value


def parse_step(data: dict[str, Any]) -> ChainStepDef:
    level = data["level"]
    if isinstance(level, bool) or not isinstance(level, int):
        raise ValueError(f"level must be an integer, got {level!r}")
    params = data.get("params") or {}
    if not isinstance(params, dict):
        raise ValueError(f"params for level {level} must be a mapping")
    return ChainStepDef(
        level=level,
        rule=str(data["rule"]),
        params=dict(params),
        name=data.get("name"),
        active=bool(data.get("active", True)),
    )


def parse_chain(data: dict[str, Any]) -> ChainDef:
    steps = data.get("steps") or []
    if not isinstance(steps, list):
        raise ValueError(f"steps for {data.get('request_type')} must be a list")
    return ChainDef(
        request_type=str(data["request_type"]),
        steps=tuple(parse_step(s) for s in steps),
        department_code=_optional_int(data.get("department_code"), "department_code"),
        project_code=_optional_int(data.get("project_code"), "project_code"),
        description=data.get("description"),
    )


def parse_chain_set(data: dict[str, Any]) -> ApprovalChainSetDef:
    return ApprovalChainSetDef(
        name=str(data["name"]),
        version=int(data.get("version", 1)),
        chains=tuple(parse_chain(c) for c in data.get("chains") or []),
        description=data.get("description"),
        checksum=compute_checksum(data),
    )


def load_chain_set(path: Path) -> ApprovalChainSetDef:
    """Load and parse one chain-set file."""
    return parse_chain_set(load_yaml_file(path))
