"""
Action handler registry.

Maps action-key strings to handler objects.  The registry is a pure lookup:
it is filled once at startup by the composition root and only read after
that.  Entries are stored as given; whether an entry actually implements
ApprovalRequestAction is checked on resolve(), so a misconfigured entry is
reported when a request carrying its key resolves.
"""

from grade_kernel.actions.base import ApprovalRequestAction
from grade_kernel.exceptions import (
    MisconfiguredActionHandlerError,
    UnknownActionHandlerError,
)


class ActionRegistry:
    """
    Registry for approval action handlers, keyed by action key.
    """

    def __init__(self):
        self._handlers: dict[str, object] = {}

    def register(self, action_key: str, handler: object) -> None:
        """
        Register a handler for an action key (replacing any previous one).

        Args:
            action_key: The key stored on approval requests.
            handler: Normally an ApprovalRequestAction instance.
        """
        self._handlers[action_key] = handler

    def get(self, action_key: str) -> object | None:
        """Raw registered entry, or None."""
        return self._handlers.get(action_key)

    def resolve(self, action_key: str) -> ApprovalRequestAction:
        """
        Handler for action_key.

        Raises:
            UnknownActionHandlerError: Nothing is registered for the key.
            MisconfiguredActionHandlerError: The entry is not an
                ApprovalRequestAction.
        """
        if action_key not in self._handlers:
            raise UnknownActionHandlerError(action_key)
        handler = self._handlers[action_key]
        if not isinstance(handler, ApprovalRequestAction):
            raise MisconfiguredActionHandlerError(action_key, type(handler).__name__)
        return handler

    def __contains__(self, action_key: str) -> bool:
        return action_key in self._handlers

    def list_action_keys(self) -> list[str]:
        """All registered keys, sorted."""
        return sorted(self._handlers)
