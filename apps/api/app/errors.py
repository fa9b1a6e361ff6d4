"""Application exception types."""

from enum import Enum

from app.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error that maps directly to contract error payloads."""

    def __init__(self, status_code: int, code: str, message: str, details: dict | None = None) -> None:
        self.status_code = status_code
        self.payload = ErrorResponse(code=code, message=message, details=details)
        super().__init__(message)


class ValidationErrorKind(str, Enum):
    UNKNOWN_FIELD = "UNKNOWN_FIELD"
    INVALID_ENUM = "INVALID_ENUM"
    MISSING_FIELD = "MISSING_FIELD"
    NULL_FIELD = "NULL_FIELD"
    EMPTY_STRING = "EMPTY_STRING"
    EMPTY_ARRAY = "EMPTY_ARRAY"
    INVALID_VALUE = "INVALID_VALUE"
    UNSUPPORTED_OPERATOR = "UNSUPPORTED_OPERATOR"


class ValidationError(ApiError):
    """A request field violated the entity's field policy."""

    def __init__(self, kind: ValidationErrorKind, field: str, message: str) -> None:
        self.kind = kind
        self.field = field
        super().__init__(
            status_code=400,
            code=kind.value,
            message=message,
            details={"field": field},
        )


class AuthenticationError(ApiError):
    def __init__(self, message: str = "Invalid or missing bearer token") -> None:
        super().__init__(status_code=401, code="UNAUTHORIZED", message=message)


class NotFoundError(ApiError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(status_code=404, code="RESOURCE_NOT_FOUND", message=message)


class ConflictError(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(status_code=409, code="ALREADY_REGISTERED", message=message)


class PersistenceError(ApiError):
    """Wraps a storage failure; the cause is chained, never rendered."""

    def __init__(self, message: str = "Database error") -> None:
        super().__init__(status_code=500, code="PERSISTENCE_ERROR", message=message)


class ConfigurationError(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(status_code=500, code="CONFIGURATION_ERROR", message=message)


__all__ = [
    "ApiError",
    "AuthenticationError",
    "ConfigurationError",
    "ConflictError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
    "ValidationErrorKind",
]
