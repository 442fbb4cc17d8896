"""Error taxonomy shared by the sync, cache and weather layers.

Errors are grouped by *category* rather than identity: callers branch on
``error.kind`` and the HTTP facade maps each kind to a status code.  Every
remote failure keeps the underlying transport exception on ``cause`` (and as
``__cause__`` when raised with ``from``) so logs retain the original detail.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Categories of failures surfaced by the sync layer."""

    NOT_CONFIGURED = "not_configured"
    NOT_AUTHENTICATED = "not_authenticated"
    FETCH_FAILED = "fetch_failed"
    ADD_FAILED = "add_failed"
    UPDATE_FAILED = "update_failed"
    DELETE_FAILED = "delete_failed"
    ALREADY_EXISTS = "already_exists"
    DECODE_FAILED = "decode_failed"


class GlasscastError(Exception):
    """Base class for every categorized failure."""

    kind: ErrorKind = ErrorKind.FETCH_FAILED
    default_message = "Operation failed"

    def __init__(self, message: str | None = None, *, cause: BaseException | None = None) -> None:
        self.cause = cause
        resolved = message or self.default_message
        if cause is not None and message is None:
            resolved = f"{self.default_message}: {cause}"
        self.message = resolved
        super().__init__(resolved)


class NotConfiguredError(GlasscastError):
    kind = ErrorKind.NOT_CONFIGURED
    default_message = "Backend is not configured. Check DATABASE_URL and OPENWEATHERMAP_API_KEY."


class NotAuthenticatedError(GlasscastError):
    kind = ErrorKind.NOT_AUTHENTICATED
    default_message = "Please sign in to manage cities."


class FetchFailedError(GlasscastError):
    kind = ErrorKind.FETCH_FAILED
    default_message = "Failed to fetch data"


class AddFailedError(GlasscastError):
    kind = ErrorKind.ADD_FAILED
    default_message = "Failed to add city"


class UpdateFailedError(GlasscastError):
    kind = ErrorKind.UPDATE_FAILED
    default_message = "Failed to update city"


class DeleteFailedError(GlasscastError):
    kind = ErrorKind.DELETE_FAILED
    default_message = "Failed to delete city"


class AlreadyExistsError(GlasscastError):
    kind = ErrorKind.ALREADY_EXISTS
    default_message = "This city is already in your list."


class DecodeFailedError(GlasscastError):
    kind = ErrorKind.DECODE_FAILED
    default_message = "Response could not be decoded"


class WeatherProviderError(Exception):
    """Transport or HTTP status failure reported by the weather provider."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MissingFavoriteColumnError(Exception):
    """The remote table predates the ``is_favorite`` column migration."""


__all__ = [
    "AddFailedError",
    "AlreadyExistsError",
    "DecodeFailedError",
    "DeleteFailedError",
    "ErrorKind",
    "FetchFailedError",
    "GlasscastError",
    "MissingFavoriteColumnError",
    "NotAuthenticatedError",
    "NotConfiguredError",
    "UpdateFailedError",
    "WeatherProviderError",
]
