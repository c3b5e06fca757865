"""Error taxonomy and boundary error responses."""

from enum import Enum, StrEnum

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


class ErrorKind(StrEnum):
    """Machine-readable kinds of errors raised by the core layer."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    STORAGE = "storage"
    CONFIGURATION = "configuration"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_UNAUTHORIZED = "ERR_UNAUTHORIZED"
    ERR_FORBIDDEN = "ERR_FORBIDDEN"
    ERR_STORAGE = "ERR_STORAGE"
    ERR_CONFIGURATION = "ERR_CONFIGURATION"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class PantryHubError(Exception):
    """Base class for errors that cross the service boundary."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PantryHubError):
    """Malformed input, such as an unrecognized opt status code."""

    kind = ErrorKind.VALIDATION


class NotFoundError(PantryHubError):
    """A lookup that expected a result returned none."""

    kind = ErrorKind.NOT_FOUND


class UnauthorizedError(PantryHubError):
    """Missing, invalid or expired token, or wrong credentials."""

    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(PantryHubError):
    """Authenticated, but the access level is insufficient."""

    kind = ErrorKind.FORBIDDEN


class StorageError(PantryHubError):
    """Transport or backend failure, or a stored record that cannot be mapped."""

    kind = ErrorKind.STORAGE


class ConfigurationError(PantryHubError):
    """Missing or unusable startup configuration. Fatal."""

    kind = ErrorKind.CONFIGURATION


class ErrorResponse(BaseModel):
    """Structured error response returned across the API boundary."""

    code: str
    message: str
    severity: ErrorSeverity


_RESPONSES: dict[ErrorKind, tuple[str, ErrorSeverity, int]] = {
    ErrorKind.VALIDATION: (ErrorCode.ERR_VALIDATION, ErrorSeverity.LOW, 400),
    ErrorKind.NOT_FOUND: (ErrorCode.ERR_NOT_FOUND, ErrorSeverity.LOW, 404),
    ErrorKind.UNAUTHORIZED: (ErrorCode.ERR_UNAUTHORIZED, ErrorSeverity.MEDIUM, 401),
    ErrorKind.FORBIDDEN: (ErrorCode.ERR_FORBIDDEN, ErrorSeverity.MEDIUM, 403),
    ErrorKind.STORAGE: (ErrorCode.ERR_STORAGE, ErrorSeverity.HIGH, 500),
    ErrorKind.CONFIGURATION: (ErrorCode.ERR_CONFIGURATION, ErrorSeverity.CRITICAL, 500),
}

# Kinds whose messages may carry backend detail and are replaced before leaving the process
_OPAQUE_KINDS = {ErrorKind.STORAGE, ErrorKind.CONFIGURATION}


def http_status_for(kind: ErrorKind) -> int:
    """Return the HTTP status code used for an error kind."""
    return _RESPONSES[kind][2]


def to_error_response(exception: Exception) -> ErrorResponse:
    """Convert any exception into a response body safe to show to callers.

    Args:
        exception: The exception raised while handling a request

    Returns:
        ErrorResponse with code, message, and severity
    """
    if not isinstance(exception, PantryHubError):
        return ErrorResponse(
            code=ErrorCode.ERR_UNKNOWN,
            message="An unexpected error occurred.",
            severity=ErrorSeverity.MEDIUM,
        )

    code, severity, _ = _RESPONSES[exception.kind]
    if exception.kind in _OPAQUE_KINDS:
        message = "The service is temporarily unable to complete this request."
    else:
        message = exception.message

    return ErrorResponse(code=code, message=message, severity=severity)


def describe_validation_error(error: PydanticValidationError) -> str:
    """Summarize the first problem in a pydantic validation error as "field: message"."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return f"{field}: {first['msg']}" if field else first["msg"]
