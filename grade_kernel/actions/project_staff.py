"""Staff assignment for ``project.staff.assign`` requests.

Payload: ``{"project_id": int, "project_position_id": int, "user_id": int}``.
All three must be positive and reference existing rows, otherwise the
handler does nothing.
"""

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from grade_kernel.actions.base import ApprovalRequestAction, positive_ids
from grade_kernel.domain.approval import ApprovalActionKey, ApprovalRequest
from grade_kernel.logging_config import get_logger
from grade_kernel.models.project import Project, ProjectPosition, ProjectStaff
from grade_kernel.models.user import User

logger = get_logger("actions.project_staff")

ACTIVE_STATUS = "active"

_KEYS = ("project_id", "project_position_id", "user_id")


def _references_exist(session: Session, ids: dict[str, int]) -> bool:
    return (
        session.get(Project, ids["project_id"]) is not None
        and session.get(ProjectPosition, ids["project_position_id"]) is not None
        and session.get(User, ids["user_id"]) is not None
    )


class AssignProjectStaffAction(ApprovalRequestAction):
    """Upserts the assignment on approval, deletes it on rejection."""

    action_key = ApprovalActionKey.PROJECT_STAFF_ASSIGN

    def handle_approval(self, request: ApprovalRequest) -> None:
        ids = positive_ids(request.action_payload, *_KEYS)
        if ids is None:
            self.skip(request, "invalid_payload")
            return

        with self.context.session_scope() as session:
            if not _references_exist(session, ids):
                self.skip(request, "reference_not_found")
                return

            staff = session.execute(
                select(ProjectStaff).where(
                    ProjectStaff.project_id == ids["project_id"],
                    ProjectStaff.project_position_id == ids["project_position_id"],
                    ProjectStaff.user_id == ids["user_id"],
                )
            ).scalar_one_or_none()
            if staff is None:
                session.add(ProjectStaff(status=ACTIVE_STATUS, **ids))
            else:
                staff.status = ACTIVE_STATUS
            session.flush()

        logger.info(
            "project_staff_assigned",
            extra={"approval_request_id": request.id, **ids},
        )

    def handle_rejection(self, request: ApprovalRequest) -> None:
        ids = positive_ids(request.action_payload, *_KEYS)
        if ids is None:
            self.skip(request, "invalid_payload")
            return

        with self.context.session_scope() as session:
            if not _references_exist(session, ids):
                self.skip(request, "reference_not_found")
                return
            session.execute(
                delete(ProjectStaff).where(
                    ProjectStaff.project_id == ids["project_id"],
                    ProjectStaff.project_position_id == ids["project_position_id"],
                    ProjectStaff.user_id == ids["user_id"],
                )
            )

        logger.info(
            "project_staff_unassigned",
            extra={"approval_request_id": request.id, **ids},
        )
