"""
Module: grade_kernel.selectors.base
Responsibility: Common base for the kernel's read side.
Architecture position: Kernel > Selectors.  May import from models/ and
    domain/.  MUST NOT import from services/ or outer layers.

A selector runs queries on a session it was handed and returns domain DTOs.
It never adds, deletes, flushes or commits; the caller decides how long the
session and its snapshot live.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """Holds the caller's session for subclass queries."""

    def __init__(self, session: Session):
        self.session = session
