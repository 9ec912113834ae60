"""Pydantic schemas for job, note and dashboard payloads.

Attribute names are snake_case; the wire and local-storage format uses the
camelCase aliases (``jobUrl``, ``applyDate``, ``createdAt`` ...).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Generic, Optional, TypeVar
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from .errors import ValidationError, ValidationFailure

MAX_COMPANY_LENGTH = 120
MAX_POSITION_LENGTH = 160
MAX_STATUS_LENGTH = 32
MAX_DESCRIPTION_LENGTH = 5000
MAX_JOB_URL_LENGTH = 2048
MAX_NOTE_LENGTH = 2000


class JobStatus(str, Enum):
    """Lifecycle stage of an application."""

    APPLIED = "applied"
    SCREENING = "screening"
    INTERVIEW = "interview"
    OFFER = "offer"
    REJECTED = "rejected"
    ACCEPTED = "accepted"
    WITHDRAWN = "withdrawn"


JOB_STATUSES = [status.value for status in JobStatus]


class SortBy(str, Enum):
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"
    COMPANY_ASC = "company_asc"
    COMPANY_DESC = "company_desc"
    STATUS_ASC = "status_asc"
    STATUS_DESC = "status_desc"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO date or datetime; blank values mean "no date"."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise PydanticCustomError("invalid_date", "Date must be a string")
    text = value.strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise PydanticCustomError("invalid_date", "Invalid date: {value}", {"value": text}) from None
    return ensure_utc(parsed)


_LABELS = {
    "company": "Company",
    "position": "Position",
    "status": "Status",
    "description": "Description",
    "jobUrl": "Job URL",
    "job_url": "Job URL",
    "applyDate": "Apply date",
    "apply_date": "Apply date",
    "createdAt": "Created at",
    "created_at": "Created at",
    "content": "Content",
}


def _label(field: str) -> str:
    return _LABELS.get(field, field.replace("_", " ").capitalize())


def _required_text(value: Any, field: str) -> str:
    if value is None:
        raise PydanticCustomError("empty_field", "{label} must be a non-empty string", {"label": _label(field)})
    if not isinstance(value, str):
        raise PydanticCustomError("invalid_type", "{label} must be a string", {"label": _label(field)})
    text = value.strip()
    if not text:
        raise PydanticCustomError("empty_field", "{label} is required", {"label": _label(field)})
    return text


def _optional_text(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise PydanticCustomError("invalid_type", "{label} must be a string", {"label": _label(field)})
    return value.strip() or None


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self, **kwargs: Any) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, **kwargs)


class Note(CamelModel):
    id: int
    content: str
    job_application_id: int
    created_at: datetime

    @field_validator("created_at", mode="before")
    @classmethod
    def parse_created_at(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)


class JobApplication(CamelModel):
    """A tracked application, optionally carrying its notes."""

    id: int
    company: str
    position: str
    status: str
    description: Optional[str] = None
    job_url: Optional[str] = None
    apply_date: Optional[datetime] = None
    created_at: datetime
    user_id: Optional[str] = None
    notes: list[Note] = Field(default_factory=list)
    notes_count: Optional[int] = None

    @field_validator("apply_date", "created_at", mode="before")
    @classmethod
    def parse_dates(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)

    @field_validator("notes", mode="before")
    @classmethod
    def default_notes(cls, value: Any) -> Any:
        return value or []

    @property
    def effective_date(self) -> datetime:
        """The apply date when known, else the creation time."""
        return self.apply_date or self.created_at


class _JobFields(CamelModel):
    """Shared field rules for create and update payloads."""

    @field_validator("company", "position", "status", mode="before", check_fields=False)
    @classmethod
    def strip_required(cls, value: Any, info: ValidationInfo) -> str:
        return _required_text(value, info.field_name)

    @field_validator("status", check_fields=False)
    @classmethod
    def known_status(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in JOB_STATUSES:
            raise PydanticCustomError("invalid_status", "Invalid status: {status}", {"status": value})
        return value

    @field_validator("description", "job_url", mode="before", check_fields=False)
    @classmethod
    def strip_optional(cls, value: Any, info: ValidationInfo) -> Optional[str]:
        return _optional_text(value, info.field_name)

    @field_validator("job_url", check_fields=False)
    @classmethod
    def http_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise PydanticCustomError("invalid_url", "Invalid job URL: {url}", {"url": value})
        return value

    @field_validator("apply_date", mode="before", check_fields=False)
    @classmethod
    def parse_apply_date(cls, value: Any) -> Optional[datetime]:
        return parse_datetime(value)


class JobCreate(_JobFields):
    company: str = Field(max_length=MAX_COMPANY_LENGTH)
    position: str = Field(max_length=MAX_POSITION_LENGTH)
    status: str = Field(max_length=MAX_STATUS_LENGTH)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    job_url: Optional[str] = Field(default=None, max_length=MAX_JOB_URL_LENGTH)
    apply_date: Optional[datetime] = None


class JobUpdate(_JobFields):
    """Partial update; ``None`` on an optional field clears it."""

    company: Optional[str] = Field(default=None, max_length=MAX_COMPANY_LENGTH)
    position: Optional[str] = Field(default=None, max_length=MAX_POSITION_LENGTH)
    status: Optional[str] = Field(default=None, max_length=MAX_STATUS_LENGTH)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    job_url: Optional[str] = Field(default=None, max_length=MAX_JOB_URL_LENGTH)
    apply_date: Optional[datetime] = None

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class NoteCreate(CamelModel):
    content: str = Field(max_length=MAX_NOTE_LENGTH)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value: Any) -> str:
        return _required_text(value, "content")


class DashboardStats(CamelModel):
    total: int
    by_status: dict[str, int] = Field(default_factory=dict)
    recent: list[JobApplication] = Field(default_factory=list)


class ListMeta(CamelModel):
    """Paging facts for the list currently held in state."""

    total: int = 0
    limit: int = 50
    offset: int = 0
    sort_by: SortBy = SortBy.DATE_DESC
    has_more: bool = False

    def rederive(self, returned: int) -> "ListMeta":
        return self.model_copy(update={"has_more": self.offset + returned < self.total})


class JobsPage(CamelModel):
    items: list[JobApplication]
    total: int
    limit: int
    offset: int
    sort_by: SortBy
    has_more: bool

    @property
    def meta(self) -> ListMeta:
        return ListMeta(
            total=self.total,
            limit=self.limit,
            offset=self.offset,
            sort_by=self.sort_by,
            has_more=self.has_more,
        )


class MigrationResult(CamelModel):
    imported_jobs: int = 0
    skipped_jobs: int = 0
    imported_notes: int = 0

    def __add__(self, other: "MigrationResult") -> "MigrationResult":
        return MigrationResult(
            imported_jobs=self.imported_jobs + other.imported_jobs,
            skipped_jobs=self.skipped_jobs + other.skipped_jobs,
            imported_notes=self.imported_notes + other.imported_notes,
        )


ModelT = TypeVar("ModelT", bound=BaseModel)

_FAILURES = {
    "missing": ValidationFailure.MISSING_FIELD,
    "empty_field": ValidationFailure.EMPTY_FIELD,
    "invalid_status": ValidationFailure.INVALID_STATUS,
    "string_too_long": ValidationFailure.TOO_LONG,
    "invalid_url": ValidationFailure.INVALID_URL,
    "invalid_date": ValidationFailure.INVALID_DATE,
    "datetime_type": ValidationFailure.INVALID_DATE,
    "datetime_parsing": ValidationFailure.INVALID_DATE,
    "invalid_type": ValidationFailure.INVALID_TYPE,
    "string_type": ValidationFailure.INVALID_TYPE,
    "int_type": ValidationFailure.INVALID_TYPE,
    "int_parsing": ValidationFailure.INVALID_TYPE,
    "list_type": ValidationFailure.INVALID_TYPE,
    "dict_type": ValidationFailure.INVALID_TYPE,
    "model_type": ValidationFailure.INVALID_TYPE,
}


@dataclass(frozen=True)
class Decoded(Generic[ModelT]):
    """Result of :func:`decode`: a model instance or a tagged failure."""

    value: Optional[ModelT] = None
    failure: Optional[ValidationFailure] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> ModelT:
        if self.failure is not None:
            raise ValidationError(self.message, self.failure)
        return self.value


def _describe(error: dict[str, Any]) -> tuple[ValidationFailure, str]:
    failure = _FAILURES.get(error["type"], ValidationFailure.INVALID_VALUE)
    field = str(error["loc"][0]) if error.get("loc") else ""
    if error["type"] == "missing":
        return failure, f"{_label(field)} is required"
    if error["type"] == "string_too_long":
        limit = error.get("ctx", {}).get("max_length")
        return failure, f"{_label(field)} must be at most {limit} characters"
    return failure, error["msg"]


def decode(model: type[ModelT], payload: Any) -> Decoded[ModelT]:
    """Validate ``payload`` against ``model`` without raising."""
    if isinstance(payload, model):
        return Decoded(value=payload)
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, dict):
        return Decoded(failure=ValidationFailure.INVALID_TYPE, message="Request body must be an object")
    try:
        return Decoded(value=model.model_validate(payload))
    except PydanticValidationError as exc:
        failure, message = _describe(exc.errors()[0])
        return Decoded(failure=failure, message=message)
