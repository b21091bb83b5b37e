"""
Module: grade_kernel.selectors.approval_selector
Responsibility: Read-only listings and viewer-aware views of approval
    requests.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/ or outer
    layers.

Invariants enforced:
    - Read-only: no mutations are performed.
    - Listings are ordered newest first: created_at DESC, then id DESC.
    - Recipients are loaded with their request (selectin), never one query
      per row.

Failure modes:
    - get_view() and the summary lookups raise ApprovalNotFoundError when the
      request does not exist or the user may not see it in that role.
    - Listings return an empty list when nothing matches.
"""

from collections.abc import Iterable, Sequence

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from grade_kernel.domain.approval import (
    ApprovalRequest,
    ApprovalRequestSummary,
    ApprovalRequestView,
    UserDirectory,
    UserSummary,
)
from grade_kernel.exceptions import ApprovalNotFoundError
from grade_kernel.models.approval import ApprovalRecipientModel, ApprovalRequestModel
from grade_kernel.selectors.base import BaseSelector


def recipients_label(request: ApprovalRequest) -> str:
    """Distinct recipient names joined by ', '; unknown users as 'User #<id>'."""
    names: dict[str, None] = {}
    for recipient in request.recipients:
        name = recipient.user.name if recipient.user is not None else None
        names.setdefault(name or f"User #{recipient.user_id}", None)
    return ", ".join(names)


class ApprovalSelector(BaseSelector):
    """
    Selector for approval request queries.

    Contract:
        Every public method returns frozen DTOs.  When a user directory is
        configured, requesters and recipients carry UserSummary values.
    """

    def __init__(self, session: Session, user_directory: UserDirectory | None = None):
        super().__init__(session)
        self.user_directory = user_directory

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_all(self) -> list[ApprovalRequest]:
        return self._list(self._base_query())

    def list_sent(self, user_id: int) -> list[ApprovalRequest]:
        """Requests created by user_id."""
        return self._list(
            self._base_query().where(ApprovalRequestModel.requested_by == user_id)
        )

    def list_received(self, user_id: int) -> list[ApprovalRequest]:
        """Requests where user_id is a recipient."""
        return self._list(
            self._base_query().where(ApprovalRequestModel.id.in_(self._received_ids(user_id)))
        )

    def list_relevant(self, user_id: int) -> list[ApprovalRequest]:
        """Requests user_id created or was asked to decide on."""
        return self._list(
            self._base_query().where(
                or_(
                    ApprovalRequestModel.requested_by == user_id,
                    ApprovalRequestModel.id.in_(self._received_ids(user_id)),
                )
            )
        )

    # ------------------------------------------------------------------
    # Single request
    # ------------------------------------------------------------------

    def get_view(self, request_id: int, viewer_id: int | None = None) -> ApprovalRequestView:
        """
        The request as viewer_id sees it.

        pending_decision is None when the viewer is not a recipient,
        otherwise True while their decision is still missing.
        """
        request = self._get(request_id)
        pending = None
        if viewer_id is not None:
            recipient = request.recipient_for(viewer_id)
            if recipient is not None:
                pending = not recipient.has_decided
        return ApprovalRequestView(request=request, pending_decision=pending)

    def summarize(
        self, request: ApprovalRequest, include_description: bool = False,
    ) -> ApprovalRequestSummary:
        return ApprovalRequestSummary(
            id=request.id,
            title=request.title,
            status=request.status,
            recipients=recipients_label(request),
            description=request.description if include_description else None,
        )

    def get_sent_summary(self, request_id: int, user_id: int) -> ApprovalRequestSummary:
        """Summary of a request user_id created; otherwise not found."""
        request = self._get(request_id)
        if request.requested_by != user_id:
            raise ApprovalNotFoundError(request_id)
        return self.summarize(request, include_description=True)

    def get_received_summary(self, request_id: int, user_id: int) -> ApprovalRequestSummary:
        """Summary of a request user_id was asked to decide; otherwise not found."""
        request = self._get(request_id)
        if request.recipient_for(user_id) is None:
            raise ApprovalNotFoundError(request_id)
        return self.summarize(request, include_description=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _base_query() -> Select:
        return select(ApprovalRequestModel).order_by(
            ApprovalRequestModel.created_at.desc(),
            ApprovalRequestModel.id.desc(),
        )

    @staticmethod
    def _received_ids(user_id: int) -> Select:
        return select(ApprovalRecipientModel.approval_request_id).where(
            ApprovalRecipientModel.user_id == user_id
        )

    def _get(self, request_id: int) -> ApprovalRequest:
        model = self.session.get(ApprovalRequestModel, request_id)
        if model is None:
            raise ApprovalNotFoundError(request_id)
        return self._to_dtos([model])[0]

    def _list(self, query: Select) -> list[ApprovalRequest]:
        models = self.session.execute(query).scalars().all()
        return self._to_dtos(models)

    def _to_dtos(self, models: Sequence[ApprovalRequestModel]) -> list[ApprovalRequest]:
        users = self._lookup(
            user_id
            for model in models
            for user_id in (model.requested_by, *(r.user_id for r in model.recipients))
        )
        return [model.to_dto(users) for model in models]

    def _lookup(self, user_ids: Iterable[int]) -> dict[int, UserSummary]:
        if self.user_directory is None:
            return {}
        ids = set(user_ids)
        return self.user_directory.lookup(ids) if ids else {}
