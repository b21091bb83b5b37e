"""
Module: grade_kernel.models.proposal
Responsibility: ORM persistence for degree-project proposals.

Architecture position: Kernel > Models.  May import from db/ only.

Type, status and thematic line ids point at catalogue tables owned by
other parts of the backend and are stored as plain integers here.
"""

from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from grade_kernel.db.base import TimestampedBase
from grade_kernel.db.types import TITLE_MAX_LENGTH


class Proposal(TimestampedBase):
    """A proposed degree project, created when a committee approves it."""

    __tablename__ = "proposals"

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    proposal_type_id: Mapped[int] = mapped_column(nullable=False)
    proposal_status_id: Mapped[int] = mapped_column(nullable=False)
    proposer_id: Mapped[int] = mapped_column(nullable=False)
    preferred_director_id: Mapped[int | None] = mapped_column(nullable=True)
    thematic_line_id: Mapped[int] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Proposal {self.id} {self.title!r}>"
