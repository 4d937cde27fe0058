"""
Module: hr_engines
Responsibility:
    Pure approval computation: approver resolution and the multi-level
    workflow state machine.

Architecture position:
    Engines -- may import hr_kernel.domain, hr_kernel.exceptions and
    hr_kernel.logging_config.  MUST NOT import hr_services or hr_modules.

Usage:
    from hr_engines import ApprovalWorkflowEngine, ApproverResolver

    engine = ApprovalWorkflowEngine(chains, ApproverResolver(directory))
    state = engine.initialize_approval("VAC", 100, 5, 9)
"""

from hr_engines.approval import ApprovalWorkflowEngine
from hr_engines.resolver import ApproverResolver
from hr_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "ApprovalWorkflowEngine",
    "ApproverResolver",
    "compute_input_fingerprint",
    "traced_engine",
]
