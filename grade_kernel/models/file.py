"""
Module: grade_kernel.models.file
Responsibility: ORM persistence for stored files and their attachment to
    approval requests.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A file is attached to a given request at most once (composite PK).
    - Deleting either side removes the link (ON DELETE CASCADE).
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, String, Table, func
from sqlalchemy.orm import Mapped, mapped_column

from grade_kernel.db.base import Base, TimestampedBase
from grade_kernel.db.types import UTCDateTime


approval_request_files = Table(
    "approval_request_files",
    Base.metadata,
    Column(
        "approval_request_id",
        ForeignKey("approval_requests.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "file_id",
        ForeignKey("files.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("created_at", UTCDateTime(), server_default=func.now(), nullable=False),
)


class File(TimestampedBase):
    """A blob written to storage, addressed by disk and path."""

    __tablename__ = "files"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    extension: Mapped[str | None] = mapped_column(String(32), nullable=True)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    disk: Mapped[str] = mapped_column(String(64), nullable=False)
    path: Mapped[str] = mapped_column(String(1024), nullable=False)

    def __repr__(self) -> str:
        return f"<File {self.id} {self.name!r} disk={self.disk}>"
