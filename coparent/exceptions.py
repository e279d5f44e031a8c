"""Domain errors raised by services and translated to HTTP responses in main.py"""

from typing import Optional


class AppError(Exception):
    """Base class for errors surfaced to API callers.

    ``code`` is a stable machine-readable identifier, ``message`` is shown to users.
    """

    status_code = 500
    default_code = "internal-error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationFailed(AppError):
    """Input is well-formed but violates a business rule"""

    status_code = 400
    default_code = "validation-error"


class NotFound(AppError):
    """Referenced entity does not exist"""

    status_code = 404
    default_code = "not-found"


class Forbidden(AppError):
    """Caller's role or ownership does not allow the action"""

    status_code = 403
    default_code = "forbidden"


class InvalidState(AppError):
    """Action is not allowed from the entity's current state"""

    status_code = 400
    default_code = "invalid-state"


class Conflict(AppError):
    """Uniqueness collision or concurrent modification"""

    status_code = 409
    default_code = "conflict"
