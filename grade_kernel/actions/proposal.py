"""
Module: grade_kernel.actions.proposal
Responsibility: The two-step student proposal flow.

    proposal.student.director   The student's preferred director approves.
                                ForwardProposalToCommitteeAction opens a new
                                request for the curriculum committee.
    proposal.committee          The committee approves.
                                CreateProposalFromApprovalAction creates the
                                Proposal and, for student proposals, the
                                Project that starts in the current phase.

Rejections in either step have no side effect.

Committee payload shape::

    {
        "proposal": {
            "title": str, "description": str | None,
            "proposal_type_id": int, "proposal_status_id": int,
            "proposer_id": int, "preferred_director_id": int | None,
            "thematic_line_id": int,
        },
        "origin": "student" | "teacher",      # default "teacher"
        "requested_by": int,
        "committee_recipient_ids": [int, ...],
    }

Failure modes:
    - NoActiveAcademicPeriodError when a student proposal is approved and no
      academic period is active.  The Proposal insert is rolled back with it.
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from grade_kernel.actions.base import (
    ApprovalRequestAction,
    coerce_int,
    positive_ids,
    unique_ids,
)
from grade_kernel.domain.approval import (
    ApprovalActionKey,
    ApprovalRequest,
    thaw,
)
from grade_kernel.logging_config import get_logger
from grade_kernel.models.project import Project, ProjectStatus
from grade_kernel.models.proposal import Proposal
from grade_kernel.services.academic_period_service import AcademicPeriodService

logger = get_logger("actions.proposal")

ORIGIN_STUDENT = "student"
ORIGIN_TEACHER = "teacher"

_REQUIRED_PROPOSAL_FIELDS = (
    "title",
    "proposal_type_id",
    "proposal_status_id",
    "proposer_id",
    "thematic_line_id",
)
_INTEGER_PROPOSAL_FIELDS = _REQUIRED_PROPOSAL_FIELDS[1:]


def proposal_fields(data: Any) -> dict[str, Any] | None:
    """Column values for a Proposal built from payload data, or None."""
    if not isinstance(data, Mapping):
        return None
    if any(field not in data for field in _REQUIRED_PROPOSAL_FIELDS):
        return None

    fields: dict[str, Any] = {
        "title": str(data["title"]),
        "description": data.get("description"),
    }
    ids = positive_ids(data, *_INTEGER_PROPOSAL_FIELDS)
    if ids is None:
        return None
    fields.update(ids)

    director = coerce_int(data.get("preferred_director_id"))
    fields["preferred_director_id"] = director if director is not None and director > 0 else None
    return fields


class CreateProposalFromApprovalAction(ApprovalRequestAction):
    """Creates the Proposal (and a Project for student proposals)."""

    action_key = ApprovalActionKey.PROPOSAL_COMMITTEE

    def handle_approval(self, request: ApprovalRequest) -> None:
        fields = proposal_fields(request.action_payload.get("proposal"))
        if fields is None:
            self.skip(request, "invalid_payload")
            return

        origin = request.action_payload.get("origin", ORIGIN_TEACHER)
        if not isinstance(origin, str):
            origin = ORIGIN_TEACHER

        project_id = None
        with self.context.session_scope() as session:
            proposal = Proposal(**fields)
            session.add(proposal)
            session.flush()
            proposal_id = proposal.id

            if origin == ORIGIN_STUDENT:
                project_id = self._create_project(session, proposal)

        logger.info(
            "proposal_created_from_approval",
            extra={
                "approval_request_id": request.id,
                "proposal_id": proposal_id,
                "project_id": project_id,
                "origin": origin,
            },
        )

    def handle_rejection(self, request: ApprovalRequest) -> None:
        pass

    def _create_project(self, session: Session, proposal: Proposal) -> int:
        settings = self.context.settings
        status_id = self._ensure_project_status(session, settings.project_in_progress_status)
        phase_id = AcademicPeriodService(
            session,
            self.context.clock,
            active_state_name=settings.active_state_name,
            auto_phase_name=settings.auto_phase_name,
        ).first_phase_of_current_period()

        project = Project(
            proposal_id=proposal.id,
            title=proposal.title,
            description=proposal.description,
            thematic_line_id=proposal.thematic_line_id,
            status_id=status_id,
            phase_id=phase_id,
        )
        session.add(project)
        session.flush()
        return project.id

    @staticmethod
    def _ensure_project_status(session: Session, name: str) -> int:
        status_id = session.execute(
            select(ProjectStatus.id).where(ProjectStatus.name == name)
        ).scalar_one_or_none()
        if status_id is not None:
            return status_id
        status = ProjectStatus(name=name)
        session.add(status)
        session.flush()
        return status.id


class ForwardProposalToCommitteeAction(ApprovalRequestAction):
    """Opens the committee request once the preferred director approves."""

    action_key = ApprovalActionKey.PROPOSAL_STUDENT_DIRECTOR

    def handle_approval(self, request: ApprovalRequest) -> None:
        payload = request.action_payload
        if any(
            key not in payload
            for key in ("proposal", "requested_by", "committee_recipient_ids")
        ):
            self.skip(request, "invalid_payload")
            return

        ids = positive_ids(payload, "requested_by")
        recipient_ids = unique_ids(payload["committee_recipient_ids"])
        if ids is None or not recipient_ids:
            self.skip(request, "invalid_payload")
            return
        requested_by = ids["requested_by"]

        settings = self.context.settings
        title = payload.get("committee_title") or settings.committee_title
        description = payload.get("committee_description") or settings.committee_description

        with self.context.session_scope() as session:
            forwarded = self.context.approval_service(session).create(
                title=title,
                description=description,
                requested_by=requested_by,
                action_key=ApprovalActionKey.PROPOSAL_COMMITTEE,
                action_payload={
                    "proposal": thaw(payload["proposal"]),
                    "requested_by": requested_by,
                    "origin": ORIGIN_STUDENT,
                    "committee_recipient_ids": recipient_ids,
                },
                recipient_ids=recipient_ids,
            )

        logger.info(
            "proposal_forwarded_to_committee",
            extra={
                "approval_request_id": request.id,
                "committee_request_id": forwarded.id,
                "recipient_count": len(recipient_ids),
            },
        )

    def handle_rejection(self, request: ApprovalRequest) -> None:
        pass
