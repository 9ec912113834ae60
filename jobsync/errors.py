"""Error taxonomy shared by the adapters and the state container."""

from __future__ import annotations

from enum import Enum
from typing import Optional

import httpx

DEFAULT_ERROR_MESSAGE = "An error occurred"


class ValidationFailure(str, Enum):
    """Why a payload was rejected."""

    MISSING_FIELD = "missing_field"
    EMPTY_FIELD = "empty_field"
    INVALID_STATUS = "invalid_status"
    TOO_LONG = "too_long"
    INVALID_URL = "invalid_url"
    INVALID_DATE = "invalid_date"
    INVALID_TYPE = "invalid_type"
    INVALID_VALUE = "invalid_value"


class JobSyncError(Exception):
    """Base class for every expected failure."""

    status_code: Optional[int] = None
    default_message = DEFAULT_ERROR_MESSAGE

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(JobSyncError):
    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, reason: ValidationFailure = ValidationFailure.INVALID_VALUE):
        super().__init__(message)
        self.reason = reason


class NotFoundError(JobSyncError):
    status_code = 404
    default_message = "Job not found"


class UnauthorizedError(JobSyncError):
    status_code = 401
    default_message = "Unauthorized"


class StorageError(JobSyncError):
    default_message = "Local storage is unavailable"


class NetworkError(JobSyncError):
    default_message = "Network request failed"


def error_message(exc: BaseException) -> str:
    """Return a human-readable message for any exception."""
    if isinstance(exc, JobSyncError):
        return exc.message
    return str(exc) or DEFAULT_ERROR_MESSAGE


def error_from_response(response: httpx.Response) -> JobSyncError:
    """Translate a failed HTTP response into the matching error type."""
    message: Optional[str] = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("message") or body.get("detail")
        if isinstance(detail, str):
            message = detail
    if not message:
        message = response.reason_phrase or f"Request failed with status code {response.status_code}"

    if response.status_code == 400:
        return ValidationError(message)
    if response.status_code == 401:
        return UnauthorizedError(message)
    if response.status_code == 404:
        return NotFoundError(message)
    return NetworkError(message)
