"""
grade_kernel.services.approval_service -- Approval request lifecycle.

Responsibility:
    Creates approval requests with their recipients, records one decision
    per recipient, resolves a request once a strict majority agrees, and
    queues the action handler to run after the resolving transaction
    commits.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/, and the
    ActionRunner.  Flushes into the caller's transaction; never commits.

Invariants enforced:
    - Recipient ids are deduplicated (first occurrence wins) and at least
      one remains.
    - A recipient decides at most once.  Decisions on a resolved request
      are refused before anything is written.
    - Resolution happens once: the request row is locked, and the status
      is re-checked before it is changed.
    - The action handler never runs inside, or before, the resolving
      transaction; it runs only if that transaction commits.

Concurrency:
    record_decision() locks the request row with SELECT ... FOR UPDATE
    before reading recipients, so decisions on one request are serialized
    and each quorum evaluation sees every previously committed decision.
    On SQLite the row lock is emulated with a process-local mutex
    (grade_kernel.db.locking).

Failure modes:
    - EmptyRecipientListError, InvalidDecisionError, CommentTooLongError on
      bad input.
    - ApprovalNotFoundError, ApprovalAlreadyResolvedError,
      NotARecipientError, DecisionAlreadyRecordedError from
      record_decision(), in that order of precedence.
    - Handler errors surface from the caller's commit, after the
      resolution is durable.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from grade_kernel.db.after_commit import run_after_commit
from grade_kernel.db.locking import acquire_row_lock
from grade_kernel.db.types import COMMENT_MAX_LENGTH
from grade_kernel.domain.approval import (
    ApprovalRequest,
    ApprovalStatus,
    Decision,
    UserDirectory,
    can_transition,
    evaluate_quorum,
    normalize_decision,
)
from grade_kernel.domain.clock import Clock
from grade_kernel.exceptions import (
    ApprovalAlreadyResolvedError,
    ApprovalNotFoundError,
    CommentTooLongError,
    DecisionAlreadyRecordedError,
    EmptyRecipientListError,
    NotARecipientError,
)
from grade_kernel.logging_config import LogContext, get_logger
from grade_kernel.models.approval import ApprovalRecipientModel, ApprovalRequestModel
from grade_kernel.services.action_runner import ActionRunner
from grade_kernel.services.base import BaseService

logger = get_logger("services.approval")


def dedupe_recipient_ids(recipient_ids: Iterable[int]) -> list[int]:
    """Distinct ids in first-seen order."""
    return list(dict.fromkeys(int(user_id) for user_id in recipient_ids))


def clean_comment(comment: str | None) -> str | None:
    """
    Trimmed comment, or None when blank.

    Raises:
        CommentTooLongError: The trimmed comment is over the column limit.
    """
    if comment is None:
        return None
    comment = comment.strip()
    if not comment:
        return None
    if len(comment) > COMMENT_MAX_LENGTH:
        raise CommentTooLongError(len(comment), COMMENT_MAX_LENGTH)
    return comment


class ApprovalRequestService(BaseService):
    """Manages approval request creation, decisions and resolution."""

    def __init__(
        self,
        session: Session,
        runner: ActionRunner,
        clock: Clock | None = None,
        user_directory: UserDirectory | None = None,
    ) -> None:
        super().__init__(session, clock)
        self.runner = runner
        self.user_directory = user_directory

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(
        self,
        title: str,
        description: str | None,
        requested_by: int,
        action_key: str,
        action_payload: Mapping[str, Any] | None,
        recipient_ids: Iterable[int],
    ) -> ApprovalRequest:
        """Create a pending request and one recipient row per distinct id.

        Both inserts join the caller's transaction, so a rollback removes
        the request and every recipient together.  No handler runs.
        """
        unique_ids = dedupe_recipient_ids(recipient_ids)
        if not unique_ids:
            raise EmptyRecipientListError(action_key)

        model = ApprovalRequestModel(
            title=title,
            description=description,
            requested_by=requested_by,
            action_key=action_key,
            action_payload=dict(action_payload) if action_payload is not None else None,
            status=ApprovalStatus.PENDING.value,
        )
        model.recipients = [ApprovalRecipientModel(user_id=uid) for uid in unique_ids]
        self.session.add(model)
        self.session.flush()

        logger.info(
            "approval_request_created",
            extra={
                "approval_request_id": model.id,
                "action_key": action_key,
                "requested_by": requested_by,
                "recipient_count": len(unique_ids),
            },
        )
        return self._to_dto(model)

    def record_decision(
        self,
        request_id: int,
        user_id: int,
        decision: Decision | str,
        comment: str | None = None,
    ) -> ApprovalRequest:
        """Record user_id's decision and resolve the request on quorum.

        Returns the request as it stands after this decision (resolved or
        still pending).
        """
        decision = normalize_decision(decision)
        comment = clean_comment(comment)

        with LogContext.bind(approval_request_id=request_id, actor_id=user_id):
            request = self._lock_request(request_id)
            if request.status != ApprovalStatus.PENDING.value:
                raise ApprovalAlreadyResolvedError(request_id, request.status)

            recipient = self._lock_recipient(request_id, user_id)
            if recipient is None:
                raise NotARecipientError(request_id, user_id)
            if recipient.decision is not None:
                raise DecisionAlreadyRecordedError(request_id, user_id, recipient.decision)

            recipient.decision = decision.value
            recipient.decision_at = self.clock.now()
            recipient.comment = comment
            self.session.flush()

            logger.info(
                "approval_decision_recorded",
                extra={"decision": decision.value, "has_comment": comment is not None},
            )

            self.session.expire(request, ["recipients"])
            self._maybe_resolve(request)
            return self._to_dto(request)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, request_id: int) -> ApprovalRequest:
        """
        Raises:
            ApprovalNotFoundError: No request with that id.
        """
        model = self.session.get(ApprovalRequestModel, request_id)
        if model is None:
            raise ApprovalNotFoundError(request_id)
        return self._to_dto(model)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_request(self, request_id: int) -> ApprovalRequestModel:
        acquire_row_lock(self.session, ApprovalRequestModel.__tablename__, request_id)
        model = self.session.execute(
            select(ApprovalRequestModel)
            .where(ApprovalRequestModel.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if model is None:
            raise ApprovalNotFoundError(request_id)
        return model

    def _lock_recipient(
        self, request_id: int, user_id: int,
    ) -> ApprovalRecipientModel | None:
        return self.session.execute(
            select(ApprovalRecipientModel)
            .where(
                ApprovalRecipientModel.approval_request_id == request_id,
                ApprovalRecipientModel.user_id == user_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _maybe_resolve(self, request: ApprovalRequestModel) -> None:
        outcome = evaluate_quorum(r.decision for r in request.recipients)
        if outcome is None:
            return
        # Re-checked under the row lock so the transition happens once.
        if not can_transition(request.status, outcome.status):
            return

        request.status = outcome.status.value
        request.resolved_decision = outcome.value
        request.resolved_at = self.clock.now()
        self.session.flush()

        snapshot = self._to_dto(request)
        runner = self.runner
        run_after_commit(self.session, lambda: runner.run(snapshot, outcome))

        logger.info(
            "approval_request_resolved",
            extra={
                "decision": outcome.value,
                "action_key": request.action_key,
                "approvals": snapshot.tally.approvals,
                "rejections": snapshot.tally.rejections,
                "recipient_count": snapshot.tally.total,
            },
        )

    def _to_dto(self, model: ApprovalRequestModel) -> ApprovalRequest:
        if self.user_directory is None:
            return model.to_dto()
        ids = {model.requested_by, *(r.user_id for r in model.recipients)}
        return model.to_dto(self.user_directory.lookup(ids))
