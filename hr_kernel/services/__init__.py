"""Kernel services: organization lookups and approval chain storage."""

from hr_kernel.services.chain_store import load_chain_config, seed_chains
from hr_kernel.services.organization_directory import SqlOrganizationDirectory

__all__ = ["SqlOrganizationDirectory", "load_chain_config", "seed_chains"]
