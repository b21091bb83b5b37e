"""
Module: grade_kernel.db.after_commit
Responsibility: Defer side effects until the enclosing transaction commits.
Architecture position: Kernel > DB.  Imported by services that need to run
    work strictly after their data is durable.  MUST NOT import from models/,
    services/, selectors/, or domain/.

Callbacks are kept in ``session.info`` tagged with the transaction that was
innermost when they were registered:

    - Releasing a SAVEPOINT hands its callbacks to the parent transaction.
    - Rolling back a SAVEPOINT discards its callbacks.
    - Committing the root transaction marks every callback ready.
    - When the root transaction ends, ready callbacks run in registration
      order and anything left unpromoted (rollback, close) is dropped.

Ready callbacks run after the root transaction has closed and released its
connection, still inside ``session.commit()``.  They may open their own
sessions and transactions.

Invariants enforced:
    - A callback never runs if the transaction it was registered in rolls back.
    - A callback runs at most once.
    - Row mutexes held by the session are released before any callback runs.

Failure modes:
    - An exception raised by a callback propagates out of session.commit().
      The commit itself has already happened.  Callbacks queued behind the
      failing one are dropped and logged.
"""

from collections.abc import Callable

from sqlalchemy import event
from sqlalchemy.orm import Session, SessionTransaction

from grade_kernel.db.locking import release_row_locks
from grade_kernel.logging_config import get_logger

logger = get_logger("db.after_commit")

_PENDING_KEY = "grade_kernel.after_commit.pending"
_READY_KEY = "grade_kernel.after_commit.ready"
_COMMITTED_KEY = "grade_kernel.after_commit.committed"

AfterCommitCallback = Callable[[], None]


def run_after_commit(session: Session, callback: AfterCommitCallback) -> None:
    """
    Register callback to run once the session's root transaction commits.

    Raises:
        RuntimeError: If the session has no transaction in progress.
    """
    transaction = session.get_nested_transaction() or session.get_transaction()
    if transaction is None:
        raise RuntimeError("run_after_commit() requires a transaction in progress")
    session.info.setdefault(_PENDING_KEY, []).append((transaction, callback))


def pending_callback_count(session: Session) -> int:
    """Number of callbacks waiting for a commit."""
    return len(session.info.get(_PENDING_KEY, ()))


def root_committed(session: Session) -> bool:
    """True once the current root transaction has committed to the database.

    Stays true until the session begins its next root transaction, so an
    exception escaping ``commit()`` can be told apart from a failed commit.
    """
    return bool(session.info.get(_COMMITTED_KEY))


@event.listens_for(Session, "after_transaction_create")
def _on_transaction_create(session: Session, transaction: SessionTransaction) -> None:
    if transaction.parent is None:
        session.info.pop(_COMMITTED_KEY, None)


@event.listens_for(Session, "after_commit")
def _on_commit(session: Session) -> None:
    nested = session.in_nested_transaction()
    if not nested:
        session.info[_COMMITTED_KEY] = True

    pending = session.info.get(_PENDING_KEY)
    if not pending:
        return

    if nested:
        savepoint = session.get_nested_transaction()
        parent = savepoint.parent
        session.info[_PENDING_KEY] = [
            (parent if tx is savepoint else tx, cb) for tx, cb in pending
        ]
        return

    session.info.setdefault(_READY_KEY, []).extend(cb for _, cb in pending)
    session.info[_PENDING_KEY] = []


@event.listens_for(Session, "after_soft_rollback")
def _on_rollback(session: Session, previous_transaction: SessionTransaction) -> None:
    pending = session.info.get(_PENDING_KEY)
    if not pending:
        return
    session.info[_PENDING_KEY] = [
        (tx, cb) for tx, cb in pending if tx is not previous_transaction
    ]


@event.listens_for(Session, "after_transaction_end")
def _on_transaction_end(session: Session, transaction: SessionTransaction) -> None:
    if transaction.parent is not None:
        return

    try:
        release_row_locks(session)
    finally:
        dropped = session.info.pop(_PENDING_KEY, None)
        if dropped:
            logger.debug(
                "after_commit_callbacks_discarded",
                extra={"count": len(dropped)},
            )
        ready = session.info.pop(_READY_KEY, None) or []
        _run_ready(ready)


def _run_ready(ready: list[AfterCommitCallback]) -> None:
    for index, callback in enumerate(ready):
        try:
            callback()
        except Exception:
            skipped = len(ready) - index - 1
            if skipped:
                logger.error(
                    "after_commit_callbacks_skipped",
                    extra={"skipped": skipped},
                )
            raise
