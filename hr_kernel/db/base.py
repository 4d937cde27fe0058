"""
Declarative base for every HR table.

Each table gets a uuid4 primary key stored as String(36), so one schema
serves PostgreSQL and SQLite.  Money and day counts are Decimal columns
(Numeric(18, 4)), never float.  Employee numbers are plain integers from
the HR master data, and the ``created_by`` / ``updated_by`` audit columns
hold them too.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

# Employee number stamped by batch jobs (auto-approval, alerts, dispatch).
SYSTEM_ACTOR_NO = 0


class UUIDString(TypeDecorator):
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        int: BigInteger,
        Decimal: Numeric(18, 4),
        date: Date,
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """Adds who/when audit columns; the database fills the timestamps unless the caller sets them."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
    created_by: Mapped[int]
    updated_by: Mapped[int | None]
