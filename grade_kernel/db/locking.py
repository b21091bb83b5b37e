"""
Module: grade_kernel.db.locking
Responsibility: Row-lock fallback for backends without SELECT ... FOR UPDATE.
Architecture position: Kernel > DB.  Used by services that lock approval rows.
    MUST NOT import from models/, services/, selectors/, or domain/.

On PostgreSQL the caller's `with_for_update()` select is the lock, and
acquire_row_lock() is a no-op.  SQLite silently drops FOR UPDATE, so a
process-local re-entrant mutex keyed by (table, id) stands in for it.  The
mutex is held until the session's root transaction ends (commit, rollback
or close), mirroring how a database row lock behaves.

Invariants enforced:
    - A mutex acquired through a session is released exactly once, in the
      thread that acquired it, when that session's root transaction ends.
    - Re-acquiring the same key inside one transaction does not deadlock.

Failure modes:
    - Threads sharing one Session are unsupported (as with SQLAlchemy itself).
"""

import threading
from collections.abc import Hashable

from sqlalchemy.orm import Session

from grade_kernel.logging_config import get_logger

logger = get_logger("db.locking")

_HELD_KEY = "grade_kernel.row_locks"

_DIALECTS_WITH_ROW_LOCKS = frozenset({"postgresql", "mysql", "mariadb", "oracle", "mssql"})


class _KeyedMutex:
    """Re-entrant mutexes created on demand and discarded when unused."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[Hashable, list] = {}

    def acquire(self, key: Hashable) -> None:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.RLock(), 0])
            entry[1] += 1
        entry[0].acquire()

    def release(self, key: Hashable) -> None:
        with self._guard:
            entry = self._entries[key]
            entry[0].release()
            entry[1] -= 1
            if entry[1] == 0:
                del self._entries[key]


_mutex = _KeyedMutex()


def supports_row_locks(session: Session) -> bool:
    """True when the session's dialect honours SELECT ... FOR UPDATE."""
    return session.get_bind().dialect.name in _DIALECTS_WITH_ROW_LOCKS


def acquire_row_lock(session: Session, table: str, row_id: int) -> None:
    """
    Serialize writers of one row for the rest of the session's transaction.

    Call before the locking select.  Does nothing on dialects with native
    row locks.
    """
    if supports_row_locks(session):
        return
    key = (table, row_id)
    _mutex.acquire(key)
    session.info.setdefault(_HELD_KEY, []).append(key)
    logger.debug("row_mutex_acquired", extra={"table": table, "row_id": row_id})


def release_row_locks(session: Session) -> None:
    """Release every mutex the session acquired.  Called at root transaction end."""
    held = session.info.pop(_HELD_KEY, None)
    if not held:
        return
    for key in reversed(held):
        _mutex.release(key)
