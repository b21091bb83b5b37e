"""Handler for requests whose resolution has no side effect."""

from grade_kernel.actions.base import ApprovalRequestAction
from grade_kernel.domain.approval import ApprovalActionKey, ApprovalRequest


class NoOpAction(ApprovalRequestAction):
    """Does nothing on approval or rejection."""

    action_key = ApprovalActionKey.NOOP

    def handle_approval(self, request: ApprovalRequest) -> None:
        pass

    def handle_rejection(self, request: ApprovalRequest) -> None:
        pass
