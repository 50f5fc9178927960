"""
Workflow error taxonomy.

Services raise these; ``main.py`` renders them into the JSON error envelope
with the matching HTTP status.
"""

from typing import Any, Iterable, Optional


class WorkflowError(Exception):
    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None, **extra: Any):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details
        self.extra = extra

    def to_dict(self):
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        body.update(self.extra)
        return body


class ValidationError(WorkflowError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class AuthenticationError(WorkflowError):
    status_code = 401
    default_code = "AUTHENTICATION_REQUIRED"


class AuthorizationError(WorkflowError):
    status_code = 403
    default_code = "INSUFFICIENT_PERMISSIONS"


class NotFoundError(WorkflowError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(WorkflowError):
    status_code = 409
    default_code = "CONFLICT"


class TransitionError(WorkflowError):
    """Illegal state-machine move; the message always names the allowed targets."""

    status_code = 400
    default_code = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str, allowed: Iterable[str], code: Optional[str] = None, **extra: Any):
        allowed = list(allowed)
        message = (
            f"Invalid status transition from '{current}' to '{target}'. "
            f"Allowed transitions: {', '.join(allowed) or 'none'}"
        )
        super().__init__(message, code=code, current_status=current, allowed_transitions=allowed, **extra)
        self.allowed = allowed


class UnexpectedError(WorkflowError):
    status_code = 500
    default_code = "INTERNAL_ERROR"
