"""
Tests for ApprovalRequestService -- approval request lifecycle.

Covers:
- create(): recipient dedup, empty recipient list, payload storage,
  all-or-nothing insert, user enrichment, no handler call
- record_decision(): quorum resolution, decide-once,
  decisions after resolution, non-recipients, unknown requests, comment
  cleanup, check order
- after-commit dispatch: the handler runs once after commit, never on
  rollback, never inside the resolving transaction
- get(): happy path, not found
"""

import pytest
from sqlalchemy import func, select

from grade_kernel.actions.base import ApprovalRequestAction
from grade_kernel.db.after_commit import pending_callback_count
from grade_kernel.domain.approval import ApprovalStatus, Decision
from grade_kernel.exceptions import (
    ApprovalAlreadyResolvedError,
    ApprovalNotFoundError,
    CommentTooLongError,
    DecisionAlreadyRecordedError,
    EmptyRecipientListError,
    InvalidDecisionError,
    NotARecipientError,
)
from grade_kernel.models.approval import ApprovalRecipientModel, ApprovalRequestModel


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

RECORDING_KEY = "test.recording"


class RecordingAction(ApprovalRequestAction):
    """Records every callback it receives."""

    def __init__(self, context):
        super().__init__(context)
        self.calls: list[tuple[str, int, ApprovalStatus]] = []

    def handle_approval(self, request):
        self.calls.append(("approval", request.id, request.status))

    def handle_rejection(self, request):
        self.calls.append(("rejection", request.id, request.status))


@pytest.fixture
def recorder(workflow):
    action = RecordingAction(workflow)
    workflow.registry.register(RECORDING_KEY, action)
    return action


def create_request(service, recipients, action_key=RECORDING_KEY, payload=None, **kwargs):
    return service.create(
        title=kwargs.pop("title", "Solicitud"),
        description=kwargs.pop("description", None),
        requested_by=kwargs.pop("requested_by", 100),
        action_key=action_key,
        action_payload=payload,
        recipient_ids=recipients,
    )


# ---------------------------------------------------------------------------
# create()
# ---------------------------------------------------------------------------


class TestCreate:
    def test_creates_pending_request_with_recipients(self, session, approval_service):
        request = create_request(approval_service, [1, 2, 3], payload={"k": "v"})
        session.commit()

        assert request.id is not None
        assert request.status == ApprovalStatus.PENDING
        assert request.resolved_decision is None
        assert request.resolved_at is None
        assert request.recipient_ids == (1, 2, 3)
        assert all(r.decision is None for r in request.recipients)
        assert dict(request.action_payload) == {"k": "v"}

    def test_duplicate_recipient_ids_collapse(self, session, approval_service):
        request = create_request(approval_service, [4, 4, 5])
        session.commit()

        assert request.recipient_ids == (4, 5)
        rows = session.execute(
            select(ApprovalRecipientModel.user_id)
            .where(ApprovalRecipientModel.approval_request_id == request.id)
            .order_by(ApprovalRecipientModel.id)
        ).scalars().all()
        assert rows == [4, 5]

    def test_first_occurrence_order_is_kept(self, approval_service):
        request = create_request(approval_service, [9, 3, 9, 1, 3])
        assert request.recipient_ids == (9, 3, 1)

    def test_empty_recipient_list_raises(self, session, approval_service):
        with pytest.raises(EmptyRecipientListError) as exc_info:
            create_request(approval_service, [])
        assert exc_info.value.code == "APPROVAL_NO_RECIPIENTS"
        assert session.execute(select(func.count(ApprovalRequestModel.id))).scalar() == 0

    def test_null_payload_reads_as_empty(self, session, approval_service):
        request = create_request(approval_service, [1], payload=None)
        session.commit()
        assert dict(approval_service.get(request.id).action_payload) == {}

    def test_rollback_removes_request_and_recipients(self, session, approval_service):
        create_request(approval_service, [1, 2])
        session.rollback()

        assert session.execute(select(func.count(ApprovalRequestModel.id))).scalar() == 0
        assert session.execute(select(func.count(ApprovalRecipientModel.id))).scalar() == 0

    def test_recipients_enriched_from_directory(self, session, approval_service, make_user):
        ana = make_user("Ana")
        luis = make_user("Luis")

        request = create_request(approval_service, [ana, luis, 999], requested_by=ana)

        assert request.requester.name == "Ana"
        names = [r.user.name if r.user else None for r in request.recipients]
        assert names == ["Ana", "Luis", None]

    def test_create_never_runs_handler(self, session, approval_service, recorder):
        create_request(approval_service, [1])
        session.commit()
        assert recorder.calls == []

    def test_logs_creation(self, session, approval_service, captured_logs):
        request = create_request(approval_service, [1, 1, 2])

        records = [r for r in captured_logs() if r["message"] == "approval_request_created"]
        assert len(records) == 1
        assert records[0]["approval_request_id"] == request.id
        assert records[0]["recipient_count"] == 2


# ---------------------------------------------------------------------------
# record_decision()
# ---------------------------------------------------------------------------


class TestRecordDecision:
    def test_three_recipients_resolve_on_second_approval(
        self, session, approval_service, recorder, deterministic_clock,
    ):
        request = create_request(approval_service, [1, 2, 3])
        session.commit()

        after_first = approval_service.record_decision(request.id, 1, "approved")
        session.commit()
        assert after_first.status == ApprovalStatus.PENDING
        assert recorder.calls == []

        after_second = approval_service.record_decision(request.id, 2, Decision.APPROVED)
        session.commit()
        assert after_second.status == ApprovalStatus.APPROVED
        assert after_second.resolved_decision == Decision.APPROVED
        assert after_second.resolved_at == deterministic_clock.now()
        assert recorder.calls == [("approval", request.id, ApprovalStatus.APPROVED)]

    def test_single_recipient_rejects(self, session, approval_service, recorder):
        request = create_request(approval_service, [1])
        session.commit()

        result = approval_service.record_decision(request.id, 1, "rejected")
        session.commit()

        assert result.status == ApprovalStatus.REJECTED
        assert result.resolved_decision == Decision.REJECTED
        assert recorder.calls == [("rejection", request.id, ApprovalStatus.REJECTED)]

    def test_split_vote_stays_pending(self, session, approval_service, recorder):
        request = create_request(approval_service, [1, 2])
        session.commit()

        approval_service.record_decision(request.id, 1, "approved")
        result = approval_service.record_decision(request.id, 2, "rejected")
        session.commit()

        assert result.status == ApprovalStatus.PENDING
        assert result.tally.approvals == 1
        assert result.tally.rejections == 1
        assert recorder.calls == []

    def test_decision_fields_are_stored(self, session, approval_service, deterministic_clock):
        request = create_request(approval_service, [1, 2, 3])
        session.commit()

        result = approval_service.record_decision(request.id, 2, "approved", "  Looks good  ")
        session.commit()

        recipient = result.recipient_for(2)
        assert recipient.decision == Decision.APPROVED
        assert recipient.comment == "Looks good"
        assert recipient.decision_at == deterministic_clock.now()
        assert result.recipient_for(1).decision is None

    def test_blank_comment_becomes_none(self, session, approval_service):
        request = create_request(approval_service, [1, 2])
        session.commit()
        result = approval_service.record_decision(request.id, 1, "approved", "   ")
        assert result.recipient_for(1).comment is None

    def test_comment_too_long(self, session, approval_service):
        request = create_request(approval_service, [1, 2])
        session.commit()
        with pytest.raises(CommentTooLongError) as exc_info:
            approval_service.record_decision(request.id, 1, "approved", "x" * 2001)
        assert exc_info.value.max_length == 2000

    def test_comment_at_limit_is_accepted(self, session, approval_service):
        request = create_request(approval_service, [1, 2])
        session.commit()
        result = approval_service.record_decision(request.id, 1, "approved", "x" * 2000)
        assert len(result.recipient_for(1).comment) == 2000

    def test_invalid_decision(self, session, approval_service):
        request = create_request(approval_service, [1])
        session.commit()
        with pytest.raises(InvalidDecisionError):
            approval_service.record_decision(request.id, 1, "maybe")

    def test_second_decision_by_same_recipient_is_rejected(self, session, approval_service):
        request = create_request(approval_service, [1, 2, 3])
        session.commit()
        approval_service.record_decision(request.id, 1, "approved", "first")
        session.commit()

        with pytest.raises(DecisionAlreadyRecordedError) as exc_info:
            approval_service.record_decision(request.id, 1, "rejected", "second")
        session.rollback()

        assert exc_info.value.code == "APPROVAL_ALREADY_DECIDED"
        recipient = approval_service.get(request.id).recipient_for(1)
        assert recipient.decision == Decision.APPROVED
        assert recipient.comment == "first"

    def test_decision_after_resolution_is_rejected(self, session, approval_service, recorder):
        request = create_request(approval_service, [1, 2, 3])
        session.commit()
        approval_service.record_decision(request.id, 1, "approved")
        approval_service.record_decision(request.id, 2, "approved")
        session.commit()

        with pytest.raises(ApprovalAlreadyResolvedError) as exc_info:
            approval_service.record_decision(request.id, 3, "rejected", "late")
        session.rollback()

        assert exc_info.value.status == "approved"
        reloaded = approval_service.get(request.id)
        assert reloaded.status == ApprovalStatus.APPROVED
        assert reloaded.recipient_for(3).decision is None
        assert reloaded.recipient_for(3).comment is None
        assert len(recorder.calls) == 1

    def test_non_recipient_is_refused(self, session, approval_service):
        request = create_request(approval_service, [1, 2])
        session.commit()
        with pytest.raises(NotARecipientError) as exc_info:
            approval_service.record_decision(request.id, 42, "approved")
        assert exc_info.value.user_id == 42

    def test_unknown_request(self, approval_service):
        with pytest.raises(ApprovalNotFoundError):
            approval_service.record_decision(987654, 1, "approved")

    def test_resolved_check_precedes_recipient_check(self, session, approval_service):
        request = create_request(approval_service, [1])
        session.commit()
        approval_service.record_decision(request.id, 1, "approved")
        session.commit()

        with pytest.raises(ApprovalAlreadyResolvedError):
            approval_service.record_decision(request.id, 42, "approved")

    def test_logs_decision_and_resolution(
        self, session, approval_service, recorder, captured_logs,
    ):
        request = create_request(approval_service, [1])
        session.commit()

        approval_service.record_decision(request.id, 1, "approved")
        session.commit()

        records = captured_logs()
        decided = [r for r in records if r["message"] == "approval_decision_recorded"]
        resolved = [r for r in records if r["message"] == "approval_request_resolved"]
        assert len(decided) == 1
        assert decided[0]["approval_request_id"] == str(request.id)
        assert decided[0]["actor_id"] == "1"
        assert len(resolved) == 1
        assert resolved[0]["decision"] == "approved"
        assert any(r["message"] == "approval_action_dispatched" for r in records)


# ---------------------------------------------------------------------------
# After-commit dispatch
# ---------------------------------------------------------------------------


class TestAfterCommitDispatch:
    def test_handler_waits_for_commit(self, session, approval_service, recorder):
        request = create_request(approval_service, [1])
        session.commit()

        approval_service.record_decision(request.id, 1, "approved")
        assert recorder.calls == []
        assert pending_callback_count(session) == 1

        session.commit()
        assert len(recorder.calls) == 1
        assert pending_callback_count(session) == 0

    def test_rollback_discards_handler(self, session, approval_service, recorder):
        request = create_request(approval_service, [1])
        session.commit()

        approval_service.record_decision(request.id, 1, "approved")
        session.rollback()
        session.commit()

        assert recorder.calls == []
        reloaded = approval_service.get(request.id)
        assert reloaded.status == ApprovalStatus.PENDING
        assert reloaded.recipient_for(1).decision is None

    def test_handler_sees_committed_resolution(
        self, session, approval_service, workflow, session_factory,
    ):
        seen = []

        class ReadBack(ApprovalRequestAction):
            def handle_approval(self, request):
                with session_factory() as other:
                    row = other.get(ApprovalRequestModel, request.id)
                    seen.append(row.status)

            def handle_rejection(self, request):
                pass

        workflow.registry.register("test.readback", ReadBack(workflow))
        request = create_request(approval_service, [1], action_key="test.readback")
        session.commit()

        approval_service.record_decision(request.id, 1, "approved")
        session.commit()

        assert seen == ["approved"]

    def test_handler_failure_propagates_after_commit(
        self, session, approval_service, workflow,
    ):
        class Exploding(ApprovalRequestAction):
            def handle_approval(self, request):
                raise RuntimeError("handler failed")

            def handle_rejection(self, request):
                pass

        workflow.registry.register("test.exploding", Exploding(workflow))
        request = create_request(approval_service, [1], action_key="test.exploding")
        session.commit()

        approval_service.record_decision(request.id, 1, "approved")
        with pytest.raises(RuntimeError, match="handler failed"):
            session.commit()

        assert approval_service.get(request.id).status == ApprovalStatus.APPROVED

    def test_unknown_action_key_resolves_without_error(
        self, session, approval_service, captured_logs,
    ):
        request = create_request(approval_service, [1], action_key="does.not.exist")
        session.commit()

        approval_service.record_decision(request.id, 1, "approved")
        session.commit()

        assert approval_service.get(request.id).status == ApprovalStatus.APPROVED
        assert any(
            r["message"] == "approval_action_handler_unknown" for r in captured_logs()
        )


# ---------------------------------------------------------------------------
# get()
# ---------------------------------------------------------------------------


class TestGet:
    def test_returns_dto(self, session, approval_service):
        request = create_request(approval_service, [1, 2], title="Cambio de director")
        session.commit()

        loaded = approval_service.get(request.id)
        assert loaded.title == "Cambio de director"
        assert loaded.recipient_ids == (1, 2)

    def test_not_found(self, approval_service):
        with pytest.raises(ApprovalNotFoundError) as exc_info:
            approval_service.get(123456)
        assert exc_info.value.code == "APPROVAL_NOT_FOUND"
