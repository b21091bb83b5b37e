"""
Typed Exception Hierarchy for the Grade Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval decisions are submitted by people through several outer surfaces
(HTTP controllers, CLI tools, scheduled jobs).  Each surface has to turn a
failure into its own response: a 404, a 403, a 409, an exit status.  Parsing
message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        service.record_decision(request_id, user_id, "approved")
    except NotARecipientError as e:
        return response(403, code=e.code, request_id=e.request_id)
    except (ApprovalAlreadyResolvedError, DecisionAlreadyRecordedError) as e:
        return response(409, code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from GradeKernelError:

    GradeKernelError (base)
    |
    +-- ApprovalError
    |   +-- ApprovalNotFoundError
    |   +-- ApprovalAlreadyResolvedError
    |   +-- NotARecipientError
    |   +-- DecisionAlreadyRecordedError
    |   +-- EmptyRecipientListError
    |   +-- InvalidDecisionError
    |   +-- CommentTooLongError
    |
    +-- ActionError
    |   +-- UnknownActionHandlerError
    |   +-- MisconfiguredActionHandlerError
    |
    +-- AcademicError
    |   +-- NoActiveAcademicPeriodError
    |
    +-- StorageError
        +-- EmptyUploadError
        +-- InvalidStoragePathError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                          | When Raised
-----------|-------------------------------|----------------------------------------
Approval   | APPROVAL_NOT_FOUND            | Request id doesn't exist (404)
           | APPROVAL_ALREADY_RESOLVED     | Decision on a resolved request (409)
           | APPROVAL_NOT_A_RECIPIENT      | Decider isn't a recipient (403)
           | APPROVAL_ALREADY_DECIDED      | Recipient decided before (409)
           | APPROVAL_NO_RECIPIENTS        | Recipient list empty after dedup
           | APPROVAL_INVALID_DECISION     | Decision not approved/rejected
           | APPROVAL_COMMENT_TOO_LONG     | Comment over the column limit
-----------|-------------------------------|----------------------------------------
Action     | ACTION_HANDLER_UNKNOWN        | No handler registered for the key
           | ACTION_HANDLER_MISCONFIGURED  | Registered entry lacks the contract
-----------|-------------------------------|----------------------------------------
Academic   | NO_ACTIVE_ACADEMIC_PERIOD     | No active period to attach a phase to
-----------|-------------------------------|----------------------------------------
Storage    | EMPTY_UPLOAD                  | Attachment with zero bytes
           | STORAGE_INVALID_PATH          | Path resolves outside the root

The two Action errors are produced by ActionRegistry.resolve().  The
ActionRunner catches them, logs a warning, and returns; they never escape a
commit.

===============================================================================
"""


class GradeKernelError(Exception):
    """
    Base exception for all grade kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "GRADE_KERNEL_ERROR"


# Approval-related exceptions


class ApprovalError(GradeKernelError):
    """Base exception for approval request errors."""

    code: str = "APPROVAL_ERROR"


class ApprovalNotFoundError(ApprovalError):
    """Approval request with given ID was not found."""

    code: str = "APPROVAL_NOT_FOUND"

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Approval request not found: {request_id}")


class ApprovalAlreadyResolvedError(ApprovalError):
    """The request is no longer pending; decisions are closed."""

    code: str = "APPROVAL_ALREADY_RESOLVED"

    def __init__(self, request_id: int, status: str):
        self.request_id = request_id
        self.status = status
        super().__init__(
            f"Approval request {request_id} has already been resolved ({status})"
        )


class NotARecipientError(ApprovalError):
    """The deciding user is not a recipient of the request."""

    code: str = "APPROVAL_NOT_A_RECIPIENT"

    def __init__(self, request_id: int, user_id: int):
        self.request_id = request_id
        self.user_id = user_id
        super().__init__(
            f"User {user_id} is not authorized to decide approval request {request_id}"
        )


class DecisionAlreadyRecordedError(ApprovalError):
    """The recipient has already decided; decisions are recorded once."""

    code: str = "APPROVAL_ALREADY_DECIDED"

    def __init__(self, request_id: int, user_id: int, decision: str):
        self.request_id = request_id
        self.user_id = user_id
        self.decision = decision
        super().__init__(
            f"User {user_id} already recorded '{decision}' on approval request {request_id}"
        )


class EmptyRecipientListError(ApprovalError):
    """A request needs at least one recipient."""

    code: str = "APPROVAL_NO_RECIPIENTS"

    def __init__(self, action_key: str):
        self.action_key = action_key
        super().__init__(f"Approval request for '{action_key}' has no recipients")


class InvalidDecisionError(ApprovalError):
    """Decision value is neither 'approved' nor 'rejected'."""

    code: str = "APPROVAL_INVALID_DECISION"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid decision: {value!r}")


class CommentTooLongError(ApprovalError):
    """Decision comment exceeds the stored length limit."""

    code: str = "APPROVAL_COMMENT_TOO_LONG"

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(
            f"Comment length {length} exceeds maximum of {max_length} characters"
        )


# Action dispatch exceptions


class ActionError(GradeKernelError):
    """Base exception for post-resolution action dispatch."""

    code: str = "ACTION_ERROR"


class UnknownActionHandlerError(ActionError):
    """No handler is registered for the action key."""

    code: str = "ACTION_HANDLER_UNKNOWN"

    def __init__(self, action_key: str):
        self.action_key = action_key
        super().__init__(f"Unknown approval request action handler: {action_key}")


class MisconfiguredActionHandlerError(ActionError):
    """The registered entry does not implement ApprovalRequestAction."""

    code: str = "ACTION_HANDLER_MISCONFIGURED"

    def __init__(self, action_key: str, handler_type: str):
        self.action_key = action_key
        self.handler_type = handler_type
        super().__init__(
            f"Handler {handler_type} registered for '{action_key}' "
            "does not implement ApprovalRequestAction"
        )


# Academic calendar exceptions


class AcademicError(GradeKernelError):
    """Base exception for academic calendar errors."""

    code: str = "ACADEMIC_ERROR"


class NoActiveAcademicPeriodError(AcademicError):
    """No active academic period exists to assign a project phase."""

    code: str = "NO_ACTIVE_ACADEMIC_PERIOD"

    def __init__(self, active_state_name: str):
        self.active_state_name = active_state_name
        super().__init__(
            f"No active academic period available to assign a phase "
            f"(state '{active_state_name}')"
        )


# Storage exceptions


class StorageError(GradeKernelError):
    """Base exception for blob storage errors."""

    code: str = "STORAGE_ERROR"


class EmptyUploadError(StorageError):
    """Uploaded file has no content."""

    code: str = "EMPTY_UPLOAD"

    def __init__(self, original_name: str):
        self.original_name = original_name
        super().__init__(f"Uploaded file is empty: {original_name}")


class InvalidStoragePathError(StorageError):
    """Storage path escapes the storage root."""

    code: str = "STORAGE_INVALID_PATH"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Storage path escapes the storage root: {path}")
