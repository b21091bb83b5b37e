"""
Module: grade_kernel.models.academic
Responsibility: ORM persistence for the academic calendar: period states,
    academic periods and their phases.

Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Period state names are unique (get-or-create by name is race safe).
    - A phase always belongs to one period (FK, cascade on delete).

Failure modes:
    - IntegrityError on duplicate state name.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grade_kernel.db.base import TimestampedBase


class AcademicPeriodState(TimestampedBase):
    """Lifecycle state of an academic period (e.g. active, finished)."""

    __tablename__ = "academic_period_states"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<AcademicPeriodState {self.id} {self.name}>"


class AcademicPeriod(TimestampedBase):
    """A semester or term, bounded by calendar dates."""

    __tablename__ = "academic_periods"

    __table_args__ = (
        Index("ix_academic_periods_state_start", "state_id", "start_date"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    state_id: Mapped[int] = mapped_column(
        ForeignKey("academic_period_states.id"), nullable=False,
    )

    state: Mapped[AcademicPeriodState] = relationship("AcademicPeriodState")
    phases: Mapped[list[Phase]] = relationship(
        "Phase",
        back_populates="period",
        order_by="Phase.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<AcademicPeriod {self.id} {self.name} {self.start_date}..{self.end_date}>"

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class Phase(TimestampedBase):
    """A stage of project work within an academic period."""

    __tablename__ = "phases"

    period_id: Mapped[int] = mapped_column(
        ForeignKey("academic_periods.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    period: Mapped[AcademicPeriod] = relationship(
        "AcademicPeriod", back_populates="phases",
    )

    def __repr__(self) -> str:
        return f"<Phase {self.id} {self.name} period={self.period_id}>"
