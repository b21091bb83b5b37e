"""
Module: grade_kernel.models.approval
Responsibility: ORM persistence for approval requests and their recipients.

Architecture position: Kernel > Models.  May import from db/ only (and the
    domain DTOs it converts to, imported lazily inside to_dto()).

Invariants enforced:
    - Status values limited to pending/approved/rejected (check constraint).
    - status = 'pending' exactly when resolved_decision and resolved_at are
      both NULL; otherwise resolved_decision equals status (check constraint).
    - One recipient row per (request, user): UNIQUE(approval_request_id, user_id).
    - decision is NULL exactly when decision_at is NULL (check constraint).
    - Deleting a request deletes its recipients (ON DELETE CASCADE).

Failure modes:
    - IntegrityError on duplicate recipient rows.
    - IntegrityError if a write would break the resolution invariant.

user_id and requested_by are identity-service ids.  They are not foreign
keys into the local users mirror, which may lag behind the directory.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from grade_kernel.db.base import TimestampedBase
from grade_kernel.db.types import (
    ACTION_KEY_MAX_LENGTH,
    STATUS_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    JSONPayload,
)

if TYPE_CHECKING:
    from grade_kernel.domain.approval import (
        ApprovalRecipient,
        ApprovalRequest,
        UserSummary,
    )


class ApprovalRequestModel(TimestampedBase):
    """Persistent approval request.

    Contract:
        Status moves from pending to approved or rejected once and is then
        frozen.  ApprovalRequestService is the only writer of status,
        resolved_decision and resolved_at.
    """

    __tablename__ = "approval_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_approval_requests_valid_status",
        ),
        CheckConstraint(
            "(status = 'pending' AND resolved_decision IS NULL AND resolved_at IS NULL)"
            " OR (status <> 'pending' AND resolved_decision = status"
            " AND resolved_at IS NOT NULL)",
            name="ck_approval_requests_resolution",
        ),
        Index("ix_approval_requests_requested_by", "requested_by"),
        Index("ix_approval_requests_status_created", "status", "created_at"),
    )

    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_by: Mapped[int] = mapped_column(nullable=False)
    action_key: Mapped[str] = mapped_column(String(ACTION_KEY_MAX_LENGTH), nullable=False)
    action_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONPayload, nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(STATUS_MAX_LENGTH), nullable=False, default="pending",
    )
    resolved_decision: Mapped[str | None] = mapped_column(
        String(STATUS_MAX_LENGTH), nullable=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    recipients: Mapped[list[ApprovalRecipientModel]] = relationship(
        "ApprovalRecipientModel",
        back_populates="request",
        order_by="ApprovalRecipientModel.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalRequest {self.id} {self.action_key} "
            f"status={self.status}>"
        )

    def to_dto(
        self, users: Mapping[int, UserSummary] | None = None,
    ) -> ApprovalRequest:
        """Convert ORM model to frozen domain DTO.

        users, when given, enriches the requester and each recipient.
        """
        from grade_kernel.domain.approval import (
            ApprovalRequest as ApprovalRequestDTO,
            ApprovalStatus,
            Decision,
        )

        users = users or {}
        return ApprovalRequestDTO(
            id=self.id,
            title=self.title,
            description=self.description,
            requested_by=self.requested_by,
            action_key=self.action_key,
            action_payload=self.action_payload or {},
            status=ApprovalStatus(self.status),
            resolved_decision=(
                Decision(self.resolved_decision) if self.resolved_decision else None
            ),
            resolved_at=self.resolved_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
            recipients=tuple(r.to_dto(users.get(r.user_id)) for r in self.recipients),
            requester=users.get(self.requested_by),
        )


class ApprovalRecipientModel(TimestampedBase):
    """One recipient of an approval request and their (single) decision."""

    __tablename__ = "approval_request_recipients"

    __table_args__ = (
        UniqueConstraint(
            "approval_request_id", "user_id",
            name="uq_approval_request_recipients_user",
        ),
        CheckConstraint(
            "decision IS NULL OR decision IN ('approved', 'rejected')",
            name="ck_approval_request_recipients_valid_decision",
        ),
        CheckConstraint(
            "(decision IS NULL AND decision_at IS NULL)"
            " OR (decision IS NOT NULL AND decision_at IS NOT NULL)",
            name="ck_approval_request_recipients_decided_at",
        ),
        Index("ix_approval_request_recipients_user_id", "user_id"),
    )

    approval_request_id: Mapped[int] = mapped_column(
        ForeignKey("approval_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(nullable=False)
    decision: Mapped[str | None] = mapped_column(
        String(STATUS_MAX_LENGTH), nullable=True,
    )
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    decision_at: Mapped[datetime | None] = mapped_column(nullable=True)

    request: Mapped[ApprovalRequestModel] = relationship(
        "ApprovalRequestModel",
        back_populates="recipients",
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalRecipient request={self.approval_request_id} "
            f"user={self.user_id} decision={self.decision}>"
        )

    def to_dto(self, user: UserSummary | None = None) -> ApprovalRecipient:
        """Convert ORM model to frozen domain DTO."""
        from grade_kernel.domain.approval import (
            ApprovalRecipient as ApprovalRecipientDTO,
            Decision,
        )

        return ApprovalRecipientDTO(
            id=self.id,
            approval_request_id=self.approval_request_id,
            user_id=self.user_id,
            decision=Decision(self.decision) if self.decision else None,
            comment=self.comment,
            decision_at=self.decision_at,
            user=user,
        )
