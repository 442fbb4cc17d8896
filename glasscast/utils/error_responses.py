"""Helpers for constructing structured HTTP error payloads.

Every payload embeds the request id and a timezone-aware timestamp so that
handlers in :mod:`glasscast.main` stay free of boilerplate.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from fastapi import status

from glasscast.errors import ErrorKind, GlasscastError
from glasscast.schemas.error import (
    ErrorResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from glasscast.utils.request_context import get_request_id

__all__ = [
    "STATUS_BY_KIND",
    "build_error_response",
    "build_validation_error_response",
    "error_response_for",
    "status_for",
]

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_CONFIGURED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.NOT_AUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorKind.FETCH_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.ADD_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.UPDATE_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.DELETE_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.DECODE_FAILED: status.HTTP_502_BAD_GATEWAY,
}


def _current_timestamp() -> datetime:
    return datetime.now(UTC)


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, status.HTTP_500_INTERNAL_SERVER_ERROR)


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    return ValidationErrorResponse(
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        errors=list(errors),
    )


def build_error_response(
    *,
    error_type: ErrorKind | str,
    message: str,
    detail: str | None,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
    )


def error_response_for(exc: GlasscastError, *, path: str) -> ErrorResponse:
    """Render a categorized failure; the wrapped cause becomes ``detail``."""

    return build_error_response(
        error_type=exc.kind,
        message=exc.message,
        detail=str(exc.cause) if exc.cause is not None else None,
        status_code=status_for(exc.kind),
        path=path,
    )
