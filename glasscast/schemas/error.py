"""Error response schemas for consistent error handling."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from glasscast.errors import ErrorKind


class ErrorResponse(BaseModel):
    """Standardized error payload returned by the HTTP facade."""

    error_type: ErrorKind | str = Field(..., description="Category of error")
    message: str = Field(..., description="Human-readable error message")
    detail: str | None = Field(None, description="Additional error details or context")
    status_code: int = Field(..., description="HTTP status code")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="When error occurred"
    )
    request_id: str | None = Field(None, description="Unique request identifier for tracking")
    path: str | None = Field(None, description="Request path that caused the error")

    model_config = {
        "json_schema_extra": {
            "example": {
                "error_type": "already_exists",
                "message": "This city is already in your list.",
                "detail": "Lagos, NG",
                "status_code": 409,
                "timestamp": "2026-01-03T10:30:00Z",
                "request_id": "req_abc123xyz",
                "path": "/cities",
            }
        }
    }


class ValidationErrorDetail(BaseModel):
    """Details for validation errors."""

    field: str = Field(..., description="Field that failed validation")
    message: str = Field(..., description="Validation error message")


class ValidationErrorResponse(ErrorResponse):
    """Extended error response for request validation errors."""

    error_type: ErrorKind | str = Field(default="validation_error")
    errors: list[ValidationErrorDetail] = Field(
        default_factory=list, description="List of validation errors"
    )
