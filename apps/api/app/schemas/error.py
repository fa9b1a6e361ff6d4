"""API error response schemas."""

from typing import Any
from typing import Literal

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None


class FieldErrorDetails(BaseModel):
    field: str


class FieldValidationError(BaseModel):
    code: Literal[
        "UNKNOWN_FIELD",
        "INVALID_ENUM",
        "MISSING_FIELD",
        "NULL_FIELD",
        "EMPTY_STRING",
        "EMPTY_ARRAY",
        "INVALID_VALUE",
        "UNSUPPORTED_OPERATOR",
    ]
    message: str
    details: FieldErrorDetails


class NotFoundErrorResponse(BaseModel):
    code: Literal["RESOURCE_NOT_FOUND"]
    message: str
