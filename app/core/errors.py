"""
Error taxonomy shared by every operation.

Services raise these; the HTTP layer turns them into structured responses
(see app.main). Raw storage or network exceptions never cross that boundary.
"""

from typing import Optional


VALIDATION = "VALIDATION"
NOT_FOUND = "NOT_FOUND"
FORBIDDEN = "FORBIDDEN"
CONFLICT = "CONFLICT"
UPSTREAM_FAILURE = "UPSTREAM_FAILURE"


class CoreError(Exception):
    kind = UPSTREAM_FAILURE

    def __init__(self, message: str, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class ValidationError(CoreError):
    kind = VALIDATION


class NotFoundError(CoreError):
    kind = NOT_FOUND


class ForbiddenError(CoreError):
    kind = FORBIDDEN


class ConflictError(CoreError):
    kind = CONFLICT


class ActiveTaskExists(ConflictError):
    """The assignee already has another task in WORKING."""

    code = "ACTIVE_TASK_EXISTS"

    def __init__(self, task_id: int, title: str):
        super().__init__(
            "Another task is already in progress",
            {"code": self.code, "runningTask": {"id": task_id, "title": title}},
        )
        self.task_id = task_id
        self.title = title


class UpstreamFailure(CoreError):
    kind = UPSTREAM_FAILURE


class AuthenticationError(Exception):
    """Caller credentials are missing or could not be verified."""
