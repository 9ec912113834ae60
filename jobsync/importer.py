"""Bulk import of guest jobs into an account.

This is the contract behind ``POST /jobs/migrate``: every incoming entry is
validated and clamped independently, malformed entries are dropped without
failing the batch, and jobs already present for the user (same signature)
are counted as skipped instead of being created twice.

The client side uses :func:`batches` to keep each upload under
:data:`MAX_IMPORT_JOBS`.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Iterator, Optional, Sequence

from pydantic import Field, field_validator

from .errors import ValidationError, ValidationFailure
from .schemas import (
    JOB_STATUSES,
    MAX_COMPANY_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_JOB_URL_LENGTH,
    MAX_NOTE_LENGTH,
    MAX_POSITION_LENGTH,
    MAX_STATUS_LENGTH,
    CamelModel,
    JobApplication,
    MigrationResult,
    decode,
    parse_datetime,
    utcnow,
)

logger = logging.getLogger(__name__)

MAX_IMPORT_JOBS = 500
MAX_NOTES_PER_JOB = 200


def _loose_date(value: Any) -> Optional[datetime]:
    try:
        return parse_datetime(value)
    except ValueError:
        return None


class ImportedNote(CamelModel):
    content: str = Field(min_length=1, max_length=MAX_NOTE_LENGTH)
    created_at: Optional[datetime] = None

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("created_at", mode="before")
    @classmethod
    def loose_created_at(cls, value: Any) -> Optional[datetime]:
        return _loose_date(value)


class ImportedJob(CamelModel):
    """One normalized import entry.

    Unparsable dates are treated as absent rather than rejecting the entry;
    a missing ``createdAt`` becomes the import time.
    """

    company: str = Field(min_length=1, max_length=MAX_COMPANY_LENGTH)
    position: str = Field(min_length=1, max_length=MAX_POSITION_LENGTH)
    status: str = Field(min_length=1, max_length=MAX_STATUS_LENGTH)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    job_url: Optional[str] = Field(default=None, max_length=MAX_JOB_URL_LENGTH)
    apply_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    notes: list[ImportedNote] = Field(default_factory=list)

    @field_validator("company", "position", "status", mode="before")
    @classmethod
    def strip_required(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("status")
    @classmethod
    def known_status(cls, value: str) -> str:
        if value not in JOB_STATUSES:
            raise ValueError(f"Invalid status: {value}")
        return value

    @field_validator("description", "job_url", mode="before")
    @classmethod
    def blank_is_none(cls, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        return value.strip() or None

    @field_validator("apply_date", mode="before")
    @classmethod
    def loose_apply_date(cls, value: Any) -> Optional[datetime]:
        return _loose_date(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def loose_created_at(cls, value: Any) -> datetime:
        return _loose_date(value) or utcnow()

    @field_validator("notes", mode="before")
    @classmethod
    def keep_valid_notes(cls, value: Any) -> list[ImportedNote]:
        if not isinstance(value, list):
            return []
        notes = []
        for raw in value[:MAX_NOTES_PER_JOB]:
            decoded = decode(ImportedNote, raw)
            if decoded.ok:
                notes.append(decoded.value)
        return notes

    def note_times(self) -> list[datetime]:
        """Note timestamps, defaulting to the job's own creation time."""
        return [note.created_at or self.created_at for note in self.notes]


def normalize_batch(jobs: Any) -> list[ImportedJob]:
    """Validate a raw ``jobs`` array, dropping malformed entries.

    Raises:
        ValidationError: if ``jobs`` is not a list or exceeds the batch size.
    """
    if not isinstance(jobs, list):
        raise ValidationError("jobs must be an array", ValidationFailure.INVALID_TYPE)
    if len(jobs) > MAX_IMPORT_JOBS:
        raise ValidationError(f"jobs exceeds maximum of {MAX_IMPORT_JOBS} items", ValidationFailure.TOO_LONG)
    normalized = []
    for raw in jobs:
        decoded = decode(ImportedJob, raw)
        if decoded.ok:
            normalized.append(decoded.value)
        else:
            logger.debug("Dropping import entry: %s", decoded.message)
    return normalized


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def job_signature(job: ImportedJob | JobApplication) -> str:
    """Digest of every field except notes; equal jobs share a signature."""
    source = json.dumps(
        {
            "company": job.company,
            "position": job.position,
            "status": job.status,
            "description": job.description,
            "jobUrl": job.job_url,
            "applyDate": _iso(job.apply_date),
            "createdAt": _iso(job.created_at),
        },
        sort_keys=True,
    )
    return hashlib.sha256(source.encode()).hexdigest()


@dataclass
class ImportPlan:
    """What an import will create, plus the report to send back."""

    to_create: list[ImportedJob] = field(default_factory=list)
    result: MigrationResult = field(default_factory=MigrationResult)


def plan_import(existing: Iterable[ImportedJob | JobApplication], incoming: Sequence[ImportedJob]) -> ImportPlan:
    """Decide which incoming jobs are new for a user.

    Duplicates within the same batch are skipped as well.
    """
    seen = {job_signature(job) for job in existing}
    plan = ImportPlan()
    for job in incoming:
        signature = job_signature(job)
        if signature in seen:
            plan.result.skipped_jobs += 1
            continue
        seen.add(signature)
        plan.to_create.append(job)
        plan.result.imported_jobs += 1
        plan.result.imported_notes += len(job.notes)
    return plan


def batches(jobs: Sequence[Any], size: int = MAX_IMPORT_JOBS) -> Iterator[list[Any]]:
    for start in range(0, len(jobs), size):
        yield list(jobs[start : start + size])
