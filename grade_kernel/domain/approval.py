"""
Approval domain types (``grade_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the approval request workflow: lifecycle status,
decisions, registered action keys, the frozen request/recipient snapshots
handed to callers and action handlers, and the strict-majority quorum rule.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Status is ``pending`` exactly when ``resolved_decision`` and
  ``resolved_at`` are both unset.  Only ``pending`` has outgoing
  transitions, and only to ``approved`` or ``rejected``.
* Quorum is a strict majority of the recipient count:
  ``threshold = max(total, 1) // 2 + 1``.  Approvals are checked before
  rejections.
* Snapshots are deep-frozen.  Handlers receive the payload as a read-only
  mapping and call ``payload_dict()`` for a mutable copy.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Protocol

from grade_kernel.exceptions import InvalidDecisionError


# =========================================================================
# Status lifecycle
# =========================================================================


class ApprovalStatus(str, Enum):
    """Approval request lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    """A recipient's decision, and a request's final outcome."""

    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def status(self) -> ApprovalStatus:
        return ApprovalStatus(self.value)


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
}


def can_transition(current: ApprovalStatus | str, target: ApprovalStatus | str) -> bool:
    """True when a request in ``current`` may move to ``target``."""
    return ApprovalStatus(target) in APPROVAL_TRANSITIONS[ApprovalStatus(current)]


class ApprovalActionKey:
    """Action keys shipped with the default configuration."""

    NOOP = "noop"
    PROJECT_GROUP_ADD_MEMBER = "project_group.add_member"
    PROJECT_STAFF_ASSIGN = "project.staff.assign"
    PROPOSAL_COMMITTEE = "proposal.committee"
    PROPOSAL_STUDENT_DIRECTOR = "proposal.student.director"


def normalize_decision(value: Decision | str) -> Decision:
    """
    Coerce a caller-supplied decision to a Decision.

    Strings are matched case-insensitively after trimming.

    Raises:
        InvalidDecisionError: value is not 'approved' or 'rejected'.
    """
    if isinstance(value, Decision):
        return value
    if isinstance(value, str):
        try:
            return Decision(value.strip().lower())
        except ValueError:
            pass
    raise InvalidDecisionError(value)


# =========================================================================
# Quorum
# =========================================================================


def resolution_threshold(total: int) -> int:
    """Strict majority of ``total`` recipients (an empty set counts as one)."""
    return max(total, 1) // 2 + 1


@dataclass(frozen=True)
class QuorumTally:
    """Decision counts for one request at a point in time."""

    total: int
    approvals: int
    rejections: int

    @property
    def threshold(self) -> int:
        return resolution_threshold(self.total)

    @property
    def outcome(self) -> Decision | None:
        """Resolved decision, or None while quorum has not been reached."""
        if self.approvals >= self.threshold:
            return Decision.APPROVED
        if self.rejections >= self.threshold:
            return Decision.REJECTED
        return None

    @classmethod
    def from_decisions(cls, decisions: Iterable[Decision | str | None]) -> QuorumTally:
        total = approvals = rejections = 0
        for decision in decisions:
            total += 1
            if decision == Decision.APPROVED:
                approvals += 1
            elif decision == Decision.REJECTED:
                rejections += 1
        return cls(total=total, approvals=approvals, rejections=rejections)


def evaluate_quorum(decisions: Iterable[Decision | str | None]) -> Decision | None:
    """Outcome for a recipient decision list (None entries are undecided)."""
    return QuorumTally.from_decisions(decisions).outcome


# =========================================================================
# Snapshots
# =========================================================================


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list | tuple):
        return tuple(_freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Mutable, JSON-serializable copy of a frozen payload value."""
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple | list):
        return [thaw(item) for item in value]
    return value


@dataclass(frozen=True)
class UserSummary:
    """Display data for a user, as returned by the user directory."""

    id: int
    name: str
    email: str | None = None


@dataclass(frozen=True)
class ApprovalRecipient:
    """One recipient's slot on a request."""

    id: int
    approval_request_id: int
    user_id: int
    decision: Decision | None = None
    comment: str | None = None
    decision_at: datetime | None = None
    user: UserSummary | None = None

    @property
    def has_decided(self) -> bool:
        return self.decision is not None


@dataclass(frozen=True)
class ApprovalRequest:
    """Immutable snapshot of an approval request and its recipients.

    ``action_payload`` is deep-frozen.  A null payload is exposed as an
    empty mapping.
    """

    id: int
    title: str
    requested_by: int
    action_key: str
    description: str | None = None
    action_payload: Mapping[str, Any] = field(default_factory=dict)
    status: ApprovalStatus = ApprovalStatus.PENDING
    resolved_decision: Decision | None = None
    resolved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    recipients: tuple[ApprovalRecipient, ...] = ()
    requester: UserSummary | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "action_payload", _freeze(self.action_payload or {}))
        object.__setattr__(self, "recipients", tuple(self.recipients))

    @property
    def is_pending(self) -> bool:
        return self.status == ApprovalStatus.PENDING

    @property
    def recipient_ids(self) -> tuple[int, ...]:
        return tuple(r.user_id for r in self.recipients)

    @property
    def tally(self) -> QuorumTally:
        return QuorumTally.from_decisions(r.decision for r in self.recipients)

    def recipient_for(self, user_id: int) -> ApprovalRecipient | None:
        for recipient in self.recipients:
            if recipient.user_id == user_id:
                return recipient
        return None

    def payload_dict(self) -> dict[str, Any]:
        """Mutable copy of the action payload."""
        return thaw(self.action_payload)


@dataclass(frozen=True)
class ApprovalRequestView:
    """A request as seen by one viewer.

    ``pending_decision`` is None when the viewer is not a recipient,
    otherwise True until the viewer has decided.
    """

    request: ApprovalRequest
    pending_decision: bool | None = None


@dataclass(frozen=True)
class ApprovalRequestSummary:
    """Compact listing row: recipients rendered as a display label."""

    id: int
    title: str
    status: ApprovalStatus
    recipients: str
    description: str | None = None


@dataclass(frozen=True)
class AttachedFile:
    """A file linked to an approval request."""

    id: int
    name: str
    extension: str | None
    url: str
    path: str
    disk: str
    attached_at: datetime | None = None


# =========================================================================
# UserDirectory Protocol
# =========================================================================


class UserDirectory(Protocol):
    """Pluggable interface for identity lookups."""

    def lookup(self, user_ids: Iterable[int]) -> dict[int, UserSummary]:
        """Summaries for the ids the directory knows; unknown ids are absent."""
        ...
