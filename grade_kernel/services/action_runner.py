"""
Module: grade_kernel.services.action_runner
Responsibility: Dispatch a resolved approval request to its action handler.

Architecture position: Kernel > Services.  Called from the after-commit
    callback that ApprovalRequestService registers on resolution.

Invariants enforced:
    - Exactly one handler callback per run(): handle_approval for approved,
      handle_rejection for rejected.
    - An unknown or misconfigured action key is logged at WARNING and
      skipped.  It never raises.

Failure modes:
    - Anything the handler raises propagates unchanged.  There is no retry.
"""

from grade_kernel.actions.registry import ActionRegistry
from grade_kernel.domain.approval import ApprovalRequest, Decision
from grade_kernel.exceptions import (
    MisconfiguredActionHandlerError,
    UnknownActionHandlerError,
)
from grade_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.action_runner")


class ActionRunner:
    """Looks up the handler for a request's action key and invokes it."""

    def __init__(self, registry: ActionRegistry):
        self.registry = registry

    def run(self, request: ApprovalRequest, decision: Decision) -> None:
        """
        Invoke the handler callback matching decision.

        Preconditions: request has been resolved to decision and committed.
        """
        with LogContext.bind(
            approval_request_id=request.id,
            action_key=request.action_key,
        ):
            try:
                handler = self.registry.resolve(request.action_key)
            except UnknownActionHandlerError as exc:
                logger.warning(
                    "approval_action_handler_unknown",
                    extra={"error_code": exc.code},
                )
                return
            except MisconfiguredActionHandlerError as exc:
                logger.warning(
                    "approval_action_handler_misconfigured",
                    extra={"error_code": exc.code, "handler_type": exc.handler_type},
                )
                return

            logger.info(
                "approval_action_dispatched",
                extra={"decision": decision.value, "handler": type(handler).__name__},
            )
            if decision is Decision.APPROVED:
                handler.handle_approval(request)
            else:
                handler.handle_rejection(request)
