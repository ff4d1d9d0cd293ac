"""Domain error taxonomy.

Every service raises subclasses of :class:`CodeArcError`. The API layer maps
each family to an HTTP status through :func:`http_status_for`; services never
build HTTP responses themselves.
"""

from fastapi import status


class CodeArcError(Exception):
    """Base domain error."""

    default_message = "Request failed"
    default_code = "error"

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        super().__init__(self.message)


class ValidationError(CodeArcError):
    """Malformed or semantically invalid input. Raised before any write."""

    default_message = "Invalid request"
    default_code = "validation_error"


class NotFoundError(CodeArcError):
    """A referenced course, chapter or user does not exist."""

    default_message = "Resource not found"
    default_code = "not_found"


class AuthenticationError(CodeArcError):
    """Missing, invalid or expired credentials."""

    default_message = "Invalid credentials"
    default_code = "authentication_failed"


class PermissionDeniedError(CodeArcError):
    """Role mismatch, non-owner mentor or missing enrollment."""

    default_message = "You do not have permission to perform this action"
    default_code = "permission_denied"


class SequenceViolationError(CodeArcError):
    """A chapter was completed before its predecessor."""

    default_message = "You must complete the previous chapter first."
    default_code = "sequence_violation"


class ConflictError(CodeArcError):
    """A uniqueness invariant would be broken (duplicate enrollment, email)."""

    default_message = "Resource already exists"
    default_code = "conflict"


class DeliveryFailure(CodeArcError):
    """A notification could not be stored. Never surfaced to callers."""

    default_message = "Notification delivery failed"
    default_code = "delivery_failure"


class RenderFailure(CodeArcError):
    """The certificate renderer failed before the response started."""

    default_message = "Certificate could not be generated"
    default_code = "render_failure"


STATUS_MAP: dict[type[CodeArcError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    SequenceViolationError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    RenderFailure: status.HTTP_502_BAD_GATEWAY,
}


def http_status_for(error: CodeArcError) -> int:
    """Get the HTTP status code for a domain error."""
    for error_type in type(error).__mro__:
        if error_type in STATUS_MAP:
            return STATUS_MAP[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR
