"""
Module: grade_kernel.actions.base
Responsibility: The contract every post-resolution action handler implements,
    the context handlers receive, and shared payload coercion helpers.
Architecture position: Kernel > Actions.  Handlers may import from db/,
    models/, domain/ and services/.  The context is supplied by the
    composition root (grade_services.workflow) and typed here as a Protocol,
    so the kernel never imports the outer layer.

Invariants enforced:
    - Handlers run after the resolving transaction committed and open their
      own transaction through ``context.session_scope()``.
    - Malformed payloads are never errors: helpers return None and the
      handler logs ``approval_action_skipped`` and returns.

Failure modes:
    - Database or domain errors inside a handler propagate to the runner's
      caller (the committing ``session.commit()``).  There is no retry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy.orm import Session

from grade_kernel.domain.approval import ApprovalRequest
from grade_kernel.domain.clock import Clock
from grade_kernel.logging_config import get_logger
from grade_kernel.services.academic_period_service import (
    ACTIVE_STATE_NAME,
    AUTO_PHASE_NAME,
)

if TYPE_CHECKING:
    from grade_kernel.services.approval_service import ApprovalRequestService

logger = get_logger("actions")


@dataclass(frozen=True)
class ActionSettings:
    """Names and texts handlers fall back to when the payload is silent."""

    active_state_name: str = ACTIVE_STATE_NAME
    auto_phase_name: str = AUTO_PHASE_NAME
    project_in_progress_status: str = "En proceso"
    committee_title: str = "Aprobación de propuesta estudiantil"
    committee_description: str = "El comité debe revisar y aprobar esta propuesta."


class ActionContext(Protocol):
    """What a handler may use besides the request snapshot."""

    clock: Clock
    settings: ActionSettings

    def session_scope(self) -> AbstractContextManager[Session]:
        """A new session committed on exit, rolled back on error."""
        ...

    def approval_service(self, session: Session) -> ApprovalRequestService:
        """An approval service bound to session."""
        ...


class ApprovalRequestAction(ABC):
    """
    Capability implemented by every registered action handler.

    Exactly one of the two callbacks runs for a resolved request, once,
    after the resolution has committed.
    """

    action_key: str = ""

    def __init__(self, context: ActionContext):
        self.context = context

    @abstractmethod
    def handle_approval(self, request: ApprovalRequest) -> None:
        """The request resolved as approved."""

    @abstractmethod
    def handle_rejection(self, request: ApprovalRequest) -> None:
        """The request resolved as rejected."""

    def skip(self, request: ApprovalRequest, reason: str) -> None:
        logger.info(
            "approval_action_skipped",
            extra={
                "approval_request_id": request.id,
                "action_key": request.action_key,
                "handler": type(self).__name__,
                "reason": reason,
            },
        )


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def coerce_int(value: Any) -> int | None:
    """
    Integer value of a payload field, or None.

    Accepts ints and strings holding a base-10 integer.  Booleans, floats
    and anything else are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def positive_ids(payload: Mapping[str, Any], *keys: str) -> dict[str, int] | None:
    """
    The named payload fields as positive ints, or None if any is missing,
    not an integer, or not greater than zero.
    """
    ids: dict[str, int] = {}
    for key in keys:
        value = coerce_int(payload.get(key))
        if value is None or value <= 0:
            return None
        ids[key] = value
    return ids


def unique_ids(values: Any) -> list[int]:
    """Distinct positive integer ids in first-seen order; anything else dropped."""
    if isinstance(values, str | bytes) or not isinstance(values, list | tuple):
        return []
    seen: dict[int, None] = {}
    for value in values:
        number = coerce_int(value)
        if number is not None and number > 0:
            seen.setdefault(number, None)
    return list(seen)
