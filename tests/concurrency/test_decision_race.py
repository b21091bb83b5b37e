"""
Concurrent decisions on one approval request.

Each thread records its decision in its own session.  Whatever the
interleaving, the request resolves exactly once and the handler runs
exactly once.  On PostgreSQL the request row is locked with FOR UPDATE;
on SQLite the in-process row mutex serializes the same section.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier, Lock

import pytest

from grade_kernel.actions.base import ApprovalRequestAction
from grade_kernel.domain.approval import ApprovalStatus
from grade_kernel.exceptions import (
    ApprovalAlreadyResolvedError,
    DecisionAlreadyRecordedError,
)

pytestmark = pytest.mark.slow_locks

RACE_KEY = "test.race"


class CountingAction(ApprovalRequestAction):
    def __init__(self, context):
        super().__init__(context)
        self._lock = Lock()
        self.calls: list[tuple[str, int]] = []

    def handle_approval(self, request):
        with self._lock:
            self.calls.append(("approval", request.id))

    def handle_rejection(self, request):
        with self._lock:
            self.calls.append(("rejection", request.id))


@pytest.fixture
def counter(workflow):
    action = CountingAction(workflow)
    workflow.registry.register(RACE_KEY, action)
    return action


@pytest.fixture
def create_request(session, approval_service):
    def _create(recipient_ids):
        request = approval_service.create(
            title="Carrera",
            description=None,
            requested_by=1,
            action_key=RACE_KEY,
            action_payload=None,
            recipient_ids=recipient_ids,
        )
        session.commit()
        return request.id

    return _create


def decide_concurrently(workflow, request_id, votes):
    """Run one record_decision per (user_id, decision) at the same time.

    Returns one entry per vote: the resulting status, or the exception type.
    """
    barrier = Barrier(len(votes))

    def _vote(user_id, decision):
        barrier.wait(timeout=10)
        try:
            with workflow.session_scope() as session:
                result = workflow.approval_service(session).record_decision(
                    request_id, user_id, decision,
                )
            return result.status
        except (ApprovalAlreadyResolvedError, DecisionAlreadyRecordedError) as exc:
            return type(exc)

    with ThreadPoolExecutor(max_workers=len(votes)) as pool:
        futures = [pool.submit(_vote, user_id, decision) for user_id, decision in votes]
        return [future.result(timeout=30) for future in futures]


class TestDecisionRace:
    def test_resolves_exactly_once(self, workflow, counter, create_request):
        request_id = create_request([11, 12, 13])

        results = decide_concurrently(
            workflow, request_id, [(11, "approved"), (12, "approved"), (13, "approved")],
        )

        assert results.count(ApprovalStatus.PENDING) == 1
        assert results.count(ApprovalStatus.APPROVED) == 1
        assert results.count(ApprovalAlreadyResolvedError) == 1
        assert counter.calls == [("approval", request_id)]

    def test_split_race_resolves_once(self, session, workflow, counter, create_request):
        request_id = create_request([21, 22, 23, 24, 25])

        decide_concurrently(
            workflow,
            request_id,
            [(21, "approved"), (22, "rejected"), (23, "approved"),
             (24, "rejected"), (25, "approved")],
        )

        session.expire_all()
        request = workflow.approval_service(session).get(request_id)
        assert request.status != ApprovalStatus.PENDING
        assert len(counter.calls) == 1
        tally = request.tally
        assert max(tally.approvals, tally.rejections) == tally.threshold

    def test_same_recipient_twice(self, session, workflow, counter, create_request):
        request_id = create_request([31, 32])

        results = decide_concurrently(
            workflow, request_id, [(31, "approved"), (31, "rejected")],
        )

        assert ApprovalStatus.PENDING in results
        assert DecisionAlreadyRecordedError in results
        session.expire_all()
        request = workflow.approval_service(session).get(request_id)
        assert request.status == ApprovalStatus.PENDING
        assert request.tally.approvals + request.tally.rejections == 1
        assert counter.calls == []
