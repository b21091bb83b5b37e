"""Database layer - engine, base classes, column types, and transaction hooks."""

from grade_kernel.db.after_commit import run_after_commit
from grade_kernel.db.base import Base, TimestampedBase
from grade_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from grade_kernel.db.locking import acquire_row_lock
from grade_kernel.db.types import JSONPayload, UTCDateTime

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "JSONPayload",
    "UTCDateTime",
    "run_after_commit",
    "acquire_row_lock",
]
