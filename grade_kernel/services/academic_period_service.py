"""
Module: grade_kernel.services.academic_period_service
Responsibility:
    Resolve the "current" active academic period and the phase new projects
    start in, creating the missing reference rows (active state, first
    phase) on demand.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Period resolution order:
    1. Active periods whose [start_date, end_date] contains today, earliest
       start_date first, then lowest id.
    2. Otherwise the earliest active period by (start_date, id).
    3. Otherwise NoActiveAcademicPeriodError.

Failure modes:
    - NoActiveAcademicPeriodError when no period is in the active state.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from grade_kernel.domain.clock import Clock
from grade_kernel.exceptions import NoActiveAcademicPeriodError
from grade_kernel.logging_config import get_logger
from grade_kernel.models.academic import AcademicPeriod, AcademicPeriodState, Phase
from grade_kernel.services.base import BaseService

logger = get_logger("services.academic_period")

ACTIVE_STATE_NAME = "Activo"
AUTO_PHASE_NAME = "Fase inicial automática"


class AcademicPeriodService(BaseService):
    """Current-period and first-phase resolution."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        active_state_name: str = ACTIVE_STATE_NAME,
        auto_phase_name: str = AUTO_PHASE_NAME,
    ):
        super().__init__(session, clock)
        self.active_state_name = active_state_name
        self.auto_phase_name = auto_phase_name

    def ensure_state(self, name: str) -> int:
        """Id of the period state called name, created if missing."""
        state_id = self.session.execute(
            select(AcademicPeriodState.id).where(AcademicPeriodState.name == name)
        ).scalar_one_or_none()
        if state_id is not None:
            return state_id

        state = AcademicPeriodState(name=name)
        self.session.add(state)
        self.session.flush()
        logger.info(
            "academic_period_state_created",
            extra={"state_id": state.id, "state_name": name},
        )
        return state.id

    def active_state_id(self) -> int:
        return self.ensure_state(self.active_state_name)

    def current_period(self) -> AcademicPeriod:
        """
        The active period new work is attached to.

        Raises:
            NoActiveAcademicPeriodError: No period is in the active state.
        """
        state_id = self.active_state_id()
        today = self.clock.today()
        ordering = (AcademicPeriod.start_date, AcademicPeriod.id)

        period = self.session.execute(
            select(AcademicPeriod)
            .where(
                AcademicPeriod.state_id == state_id,
                AcademicPeriod.start_date <= today,
                AcademicPeriod.end_date >= today,
            )
            .order_by(*ordering)
            .limit(1)
        ).scalar_one_or_none()

        if period is None:
            period = self.session.execute(
                select(AcademicPeriod)
                .where(AcademicPeriod.state_id == state_id)
                .order_by(*ordering)
                .limit(1)
            ).scalar_one_or_none()

        if period is None:
            raise NoActiveAcademicPeriodError(self.active_state_name)
        return period

    def first_phase_of_current_period(self) -> int:
        """
        Id of the lowest-id phase of the current period.

        A period without phases gets one, named after the configured
        automatic phase name and spanning the whole period.

        Raises:
            NoActiveAcademicPeriodError: No period is in the active state.
        """
        period = self.current_period()

        phase_id = self.session.execute(
            select(Phase.id)
            .where(Phase.period_id == period.id)
            .order_by(Phase.id)
            .limit(1)
        ).scalar_one_or_none()
        if phase_id is not None:
            return phase_id

        phase = Phase(
            period_id=period.id,
            name=self.auto_phase_name,
            start_date=period.start_date,
            end_date=period.end_date,
        )
        self.session.add(phase)
        self.session.flush()
        logger.info(
            "academic_phase_created",
            extra={"period_id": period.id, "phase_id": phase.id},
        )
        return phase.id
