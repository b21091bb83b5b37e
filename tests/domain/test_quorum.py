"""
Tests for the strict-majority quorum rule and approval value objects.

Covers:
- resolution_threshold() for 0..5 recipients
- evaluate_quorum(): approvals checked first, undecided slots count toward
  the total, pending while neither side reaches the threshold
- normalize_decision(): case/whitespace handling, invalid values
- ApprovalRequest snapshots: deep-frozen payload, payload_dict() copy
"""

from types import MappingProxyType

import pytest

from grade_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    ApprovalRecipient,
    ApprovalRequest,
    ApprovalStatus,
    Decision,
    QuorumTally,
    can_transition,
    evaluate_quorum,
    normalize_decision,
    resolution_threshold,
)
from grade_kernel.exceptions import InvalidDecisionError

A = Decision.APPROVED
R = Decision.REJECTED


class TestThreshold:
    @pytest.mark.parametrize(
        "total, threshold",
        [(0, 1), (1, 1), (2, 2), (3, 2), (4, 3), (5, 3)],
    )
    def test_strict_majority(self, total, threshold):
        assert resolution_threshold(total) == threshold

    def test_tally_exposes_threshold(self):
        assert QuorumTally(total=4, approvals=0, rejections=0).threshold == 3


class TestEvaluateQuorum:
    def test_single_recipient_resolves_immediately(self):
        assert evaluate_quorum([A]) is A
        assert evaluate_quorum([R]) is R

    def test_two_recipients_need_both(self):
        assert evaluate_quorum([A, None]) is None
        assert evaluate_quorum([A, R]) is None
        assert evaluate_quorum([A, A]) is A

    def test_three_recipients_two_agree(self):
        assert evaluate_quorum([A, None, None]) is None
        assert evaluate_quorum([A, A, None]) is A
        assert evaluate_quorum([R, R, None]) is R
        assert evaluate_quorum([A, R, None]) is None

    def test_four_recipients_split_stays_pending(self):
        assert evaluate_quorum([A, A, R, R]) is None

    def test_five_recipients(self):
        assert evaluate_quorum([A, A, R, R, None]) is None
        assert evaluate_quorum([A, A, A, R, R]) is A
        assert evaluate_quorum([R, R, R, None, None]) is R

    def test_string_values_count(self):
        assert evaluate_quorum(["approved", "approved", None]) is A

    def test_empty_set_never_resolves(self):
        assert evaluate_quorum([]) is None

    def test_tally_counts(self):
        tally = QuorumTally.from_decisions([A, R, None, A])
        assert (tally.total, tally.approvals, tally.rejections) == (4, 2, 1)
        assert tally.outcome is None


class TestNormalizeDecision:
    @pytest.mark.parametrize("raw", ["approved", "APPROVED", "  Approved "])
    def test_accepts_case_insensitive_strings(self, raw):
        assert normalize_decision(raw) is A

    def test_passes_enum_through(self):
        assert normalize_decision(R) is R

    @pytest.mark.parametrize("raw", ["approve", "", "pending", None, 1])
    def test_rejects_anything_else(self, raw):
        with pytest.raises(InvalidDecisionError) as exc_info:
            normalize_decision(raw)
        assert exc_info.value.code == "APPROVAL_INVALID_DECISION"


class TestLifecycle:
    def test_only_pending_has_transitions(self):
        assert APPROVAL_TRANSITIONS[ApprovalStatus.PENDING] == {
            ApprovalStatus.APPROVED,
            ApprovalStatus.REJECTED,
        }
        assert not APPROVAL_TRANSITIONS[ApprovalStatus.APPROVED]
        assert not APPROVAL_TRANSITIONS[ApprovalStatus.REJECTED]

    @pytest.mark.parametrize("current,target,allowed", [
        ("pending", "approved", True),
        ("pending", "rejected", True),
        ("approved", "rejected", False),
        ("rejected", "approved", False),
        ("approved", "approved", False),
        (ApprovalStatus.PENDING, ApprovalStatus.PENDING, False),
    ])
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed

    def test_decision_maps_to_status(self):
        assert A.status is ApprovalStatus.APPROVED
        assert R.status is ApprovalStatus.REJECTED


class TestApprovalRequestSnapshot:
    def _request(self, payload):
        return ApprovalRequest(
            id=1,
            title="t",
            requested_by=10,
            action_key="noop",
            action_payload=payload,
            recipients=[
                ApprovalRecipient(id=1, approval_request_id=1, user_id=20),
                ApprovalRecipient(id=2, approval_request_id=1, user_id=21, decision=A),
            ],
        )

    def test_payload_is_deep_frozen(self):
        request = self._request({"proposal": {"title": "x"}, "ids": [1, 2]})
        assert isinstance(request.action_payload, MappingProxyType)
        assert isinstance(request.action_payload["proposal"], MappingProxyType)
        assert request.action_payload["ids"] == (1, 2)
        with pytest.raises(TypeError):
            request.action_payload["new"] = 1

    def test_payload_dict_is_a_mutable_copy(self):
        request = self._request({"ids": [1, 2]})
        copy = request.payload_dict()
        copy["ids"].append(3)
        assert copy == {"ids": [1, 2, 3]}
        assert request.action_payload["ids"] == (1, 2)

    def test_null_payload_is_empty_mapping(self):
        assert dict(self._request(None).action_payload) == {}

    def test_recipient_helpers(self):
        request = self._request({})
        assert request.recipient_ids == (20, 21)
        assert request.recipient_for(21).has_decided
        assert not request.recipient_for(20).has_decided
        assert request.recipient_for(99) is None
        assert request.tally.approvals == 1
