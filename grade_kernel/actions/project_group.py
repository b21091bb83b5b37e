"""
Module: grade_kernel.actions.project_group
Responsibility: Add a student to a project group once their membership
    request is approved; drop the membership when it is rejected.

Payload: ``{"group_id": int, "user_id": int}``.

A user belongs to at most one project group.  Approval therefore moves the
user: memberships in every other group are deleted and the target
membership is created (if absent) in the same transaction.
"""

from sqlalchemy import delete, select

from grade_kernel.actions.base import ApprovalRequestAction, positive_ids
from grade_kernel.domain.approval import ApprovalActionKey, ApprovalRequest
from grade_kernel.logging_config import get_logger
from grade_kernel.models.project import GroupMember, ProjectGroup

logger = get_logger("actions.project_group")


class AddProjectGroupMemberAction(ApprovalRequestAction):
    """Membership change for ``project_group.add_member`` requests."""

    action_key = ApprovalActionKey.PROJECT_GROUP_ADD_MEMBER

    def handle_approval(self, request: ApprovalRequest) -> None:
        ids = positive_ids(request.action_payload, "group_id", "user_id")
        if ids is None:
            self.skip(request, "invalid_payload")
            return
        group_id, user_id = ids["group_id"], ids["user_id"]

        with self.context.session_scope() as session:
            if session.get(ProjectGroup, group_id) is None:
                self.skip(request, "group_not_found")
                return

            session.execute(
                delete(GroupMember).where(
                    GroupMember.user_id == user_id,
                    GroupMember.group_id != group_id,
                )
            )
            existing = session.execute(
                select(GroupMember).where(
                    GroupMember.group_id == group_id,
                    GroupMember.user_id == user_id,
                )
            ).scalar_one_or_none()
            if existing is None:
                session.add(GroupMember(group_id=group_id, user_id=user_id))
                session.flush()

        logger.info(
            "project_group_member_added",
            extra={
                "approval_request_id": request.id,
                "group_id": group_id,
                "user_id": user_id,
            },
        )

    def handle_rejection(self, request: ApprovalRequest) -> None:
        ids = positive_ids(request.action_payload, "group_id", "user_id")
        if ids is None:
            self.skip(request, "invalid_payload")
            return

        with self.context.session_scope() as session:
            if session.get(ProjectGroup, ids["group_id"]) is None:
                self.skip(request, "group_not_found")
                return
            result = session.execute(
                delete(GroupMember).where(
                    GroupMember.group_id == ids["group_id"],
                    GroupMember.user_id == ids["user_id"],
                )
            )

        logger.info(
            "project_group_member_removed",
            extra={
                "approval_request_id": request.id,
                "group_id": ids["group_id"],
                "user_id": ids["user_id"],
                "deleted": result.rowcount,
            },
        )
