"""
BaseService -- shared constructor for the kernel's write services.

Architecture position:
    Kernel > Services.

Every service writes into the session it was given and stops at
``session.flush()``.  Whoever opened the session (``session_scope()``, an
action handler's own scope, a test) commits or rolls back.  Anything that
must only happen once the data is durable goes through
``run_after_commit()``.

Failure modes:
    - A service that committed on its own would split ``create()`` into two
      transactions and fire after-commit dispatch before the caller's work
      was done.  None of them do.
"""

from abc import ABC

from sqlalchemy.orm import Session

from grade_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """Session plus clock; ``SystemClock`` when no clock is injected."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
