"""Database layer: declarative base, engine and sessions."""

from hr_kernel.db.base import SYSTEM_ACTOR_NO, Base, TrackedBase, UUIDString
from hr_kernel.db.engine import create_tables, get_engine, get_session, session_scope

__all__ = [
    "SYSTEM_ACTOR_NO",
    "Base",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session",
    "session_scope",
]
