"""
Module: grade_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the integer primary key convention, the type annotation map for consistent
    column types, and the TimestampedBase mixin for row timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer primary keys: every model inherits an autoincrementing surrogate
      key.  User, group and project ids travel through action payloads as
      plain integers, so the key type must stay integral.
    - Timestamps are always timezone-aware DateTime columns.

Failure modes:
    - IntegrityError on duplicate primary key (only possible with explicit ids).
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from grade_kernel.db.types import UTCDateTime


# SQLite only autoincrements INTEGER PRIMARY KEY columns.
BigIntKey = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base (or TimestampedBase).
        Base provides an integer primary key and a type_annotation_map that
        keeps column types consistent across the schema.

    Guarantees:
        - id is an autoincrementing integer.
        - datetime maps to UTCDateTime (timezone-aware on every backend).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        int: BigIntKey,
    }

    id: Mapped[int] = mapped_column(BigIntKey, primary_key=True, autoincrement=True)


class TimestampedBase(Base):
    """
    Abstract base with creation and modification timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at is set to server NOW() on INSERT and refreshed on
          every UPDATE (via onupdate=func.now()).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
