"""
Module: grade_kernel.models.user
Responsibility: Local mirror of identity-directory users.

Architecture position: Kernel > Models.  May import from db/ only.

The identity service remains the source of truth.  Rows here exist so that
handlers and the database-backed user directory can show names and check
that a referenced user exists.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from grade_kernel.db.base import TimestampedBase

if TYPE_CHECKING:
    from grade_kernel.domain.approval import UserSummary


class User(TimestampedBase):
    """A person known to the grade backend."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)

    def __repr__(self) -> str:
        return f"<User {self.id} {self.name}>"

    def to_summary(self) -> UserSummary:
        from grade_kernel.domain.approval import UserSummary

        return UserSummary(id=self.id, name=self.name, email=self.email)
