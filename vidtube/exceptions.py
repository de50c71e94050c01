"""Error taxonomy shared by services and the HTTP layer.

Services raise these; ``vidtube.api.errors`` turns them into the failure
envelope ``{statusCode, message, success: false, errors: []}``.
"""

from typing import Any, List, Optional


class ApiError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[List[Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(ApiError):
    """Malformed or missing input."""

    status_code = 400
    default_message = "Validation failed"


class UnauthorizedError(ApiError):
    """Missing, invalid, expired or mismatched credentials."""

    status_code = 401
    default_message = "Unauthorized request"


class NotFoundError(ApiError):
    """Requested resource does not exist."""

    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    """A unique field is already taken."""

    status_code = 409
    default_message = "Resource already exists"


class InternalError(ApiError):
    """Unexpected store or provider failure."""

    status_code = 500
    default_message = "Something went wrong"
