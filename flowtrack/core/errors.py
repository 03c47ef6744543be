"""Error taxonomy for the request workflow.

Callers catch these to decide user-facing messaging. A failed operation
never leaves a request partially updated.
"""

from typing import Iterable, Optional


class WorkflowError(Exception):
    """Base class for workflow failures surfaced to callers."""


class NotFoundError(WorkflowError):
    """Raised when a request or notification id is unknown."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} {entity_id} not found")
        self.kind = kind
        self.entity_id = entity_id


class TransitionError(WorkflowError):
    """Raised when an action is not legal from the current status.

    Also raised when a concurrent writer changed the record first.
    """

    def __init__(self, message: str, from_status=None, action=None):
        super().__init__(message)
        self.from_status = from_status
        self.action = action


class ValidationFailedError(WorkflowError):
    """Raised when input fails validation."""

    def __init__(self, message: str, details: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.details = list(details or [])


class PermissionDeniedError(ValidationFailedError):
    """Raised when the acting identity may not perform the operation."""

    def __init__(self, message: str):
        super().__init__(f"Permission denied: {message}")
