"""The no-op handler leaves the database untouched in both directions."""

import pytest
from sqlalchemy import func, select

from grade_kernel.domain.approval import ApprovalStatus
from grade_kernel.models.approval import ApprovalRequestModel
from grade_kernel.models.project import GroupMember, Project


@pytest.mark.parametrize("decision,status", [
    ("approved", ApprovalStatus.APPROVED),
    ("rejected", ApprovalStatus.REJECTED),
])
def test_noop_resolution_has_no_side_effect(session, resolve_request, decision, status):
    resolved = resolve_request("noop", {"anything": [1, 2, 3]}, decision=decision)

    assert resolved.status == status
    assert session.execute(select(func.count(ApprovalRequestModel.id))).scalar() == 1
    assert session.execute(select(func.count(Project.id))).scalar() == 0
    assert session.execute(select(func.count(GroupMember.id))).scalar() == 0


def test_noop_logs_dispatch(captured_logs, resolve_request):
    resolve_request("noop", None)

    dispatched = [r for r in captured_logs() if r["message"] == "approval_action_dispatched"]
    assert len(dispatched) == 1
    assert dispatched[0]["action_key"] == "noop"
    assert dispatched[0]["handler"] == "NoOpAction"
