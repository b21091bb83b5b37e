"""
Module: grade_kernel.models.project
Responsibility: ORM persistence for projects, project groups and their
    members, staff positions and staff assignments.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - A user belongs to at most one project group: UNIQUE(user_id) on
      group_members, plus UNIQUE(group_id, user_id).
    - A (project, user, position) staff assignment exists at most once.
    - Project status names are unique.

Failure modes:
    - IntegrityError when a second membership for the same user is inserted
      without removing the first.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grade_kernel.db.base import TimestampedBase
from grade_kernel.db.types import STATUS_MAX_LENGTH, TITLE_MAX_LENGTH


class ProjectStatus(TimestampedBase):
    """Catalogue of project statuses (e.g. in progress, finished)."""

    __tablename__ = "project_statuses"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ProjectStatus {self.id} {self.name}>"


class Project(TimestampedBase):
    """A degree project, usually born from an approved proposal."""

    __tablename__ = "projects"

    proposal_id: Mapped[int | None] = mapped_column(
        ForeignKey("proposals.id", ondelete="SET NULL"), nullable=True,
    )
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    thematic_line_id: Mapped[int | None] = mapped_column(nullable=True)
    status_id: Mapped[int] = mapped_column(
        ForeignKey("project_statuses.id"), nullable=False,
    )
    phase_id: Mapped[int | None] = mapped_column(
        ForeignKey("phases.id", ondelete="SET NULL"), nullable=True,
    )

    status: Mapped[ProjectStatus] = relationship("ProjectStatus")

    def __repr__(self) -> str:
        return f"<Project {self.id} {self.title!r}>"


class ProjectGroup(TimestampedBase):
    """A student team, optionally attached to a project."""

    __tablename__ = "project_groups"

    project_id: Mapped[int | None] = mapped_column(
        ForeignKey("projects.id", ondelete="SET NULL"), nullable=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    members: Mapped[list[GroupMember]] = relationship(
        "GroupMember",
        back_populates="group",
        order_by="GroupMember.id",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<ProjectGroup {self.id} {self.name!r}>"


class GroupMember(TimestampedBase):
    """Membership of one user in one project group."""

    __tablename__ = "group_members"

    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
        UniqueConstraint("user_id", name="uq_group_members_user"),
    )

    group_id: Mapped[int] = mapped_column(
        ForeignKey("project_groups.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[int] = mapped_column(nullable=False)

    group: Mapped[ProjectGroup] = relationship(
        "ProjectGroup", back_populates="members",
    )

    def __repr__(self) -> str:
        return f"<GroupMember group={self.group_id} user={self.user_id}>"


class ProjectPosition(TimestampedBase):
    """A staff role on a project (director, co-director, juror, ...)."""

    __tablename__ = "project_positions"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<ProjectPosition {self.id} {self.name}>"


class ProjectStaff(TimestampedBase):
    """Assignment of a user to a project in a given position."""

    __tablename__ = "project_staff"

    __table_args__ = (
        UniqueConstraint(
            "project_id", "user_id", "project_position_id",
            name="uq_project_staff_assignment",
        ),
    )

    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    project_position_id: Mapped[int] = mapped_column(
        ForeignKey("project_positions.id", ondelete="CASCADE"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(STATUS_MAX_LENGTH), nullable=False, default="active",
    )

    def __repr__(self) -> str:
        return (
            f"<ProjectStaff project={self.project_id} user={self.user_id} "
            f"position={self.project_position_id} status={self.status}>"
        )
