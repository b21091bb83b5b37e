"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (beyond SystemClock)

All domain objects are immutable and deterministic.
"""

from grade_kernel.domain.approval import (
    ApprovalActionKey,
    ApprovalRecipient,
    ApprovalRequest,
    ApprovalRequestSummary,
    ApprovalRequestView,
    ApprovalStatus,
    AttachedFile,
    Decision,
    QuorumTally,
    UserDirectory,
    UserSummary,
    can_transition,
    evaluate_quorum,
    normalize_decision,
    resolution_threshold,
)
from grade_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from grade_kernel.domain.storage import BlobStorage, StoredBlob

__all__ = [
    "ApprovalActionKey",
    "ApprovalRecipient",
    "ApprovalRequest",
    "ApprovalRequestSummary",
    "ApprovalRequestView",
    "ApprovalStatus",
    "AttachedFile",
    "Decision",
    "QuorumTally",
    "UserDirectory",
    "UserSummary",
    "can_transition",
    "evaluate_quorum",
    "normalize_decision",
    "resolution_threshold",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "BlobStorage",
    "StoredBlob",
]
