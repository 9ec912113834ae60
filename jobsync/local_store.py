"""Guest-mode job storage kept in the local key-value store.

All jobs live in a single JSON blob (each job embeds its notes) under
:data:`JOBS_STORAGE_KEY`. Reads never raise: a missing, corrupt or unavailable
store reads as an empty collection. Writes are best effort.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import StorageError
from .schemas import (
    DashboardStats,
    JobApplication,
    JobCreate,
    JobUpdate,
    Note,
    NoteCreate,
    decode,
    utcnow,
)
from .storage import LocalStorage

logger = logging.getLogger(__name__)

JOBS_STORAGE_KEY = "job_tracker_jobs"
# Reserved by older releases; never read, only cleared.
NOTES_STORAGE_KEY = "job_tracker_notes"
DEFAULT_RECENT_LIMIT = 10


def _next_id(ids: list[int]) -> int:
    return max(ids) + 1 if ids else 1


class LocalJobStore:
    """Job and note records for the single guest profile."""

    def __init__(self, storage: Optional[LocalStorage], *, recent_limit: int = DEFAULT_RECENT_LIMIT):
        self._storage = storage
        self.recent_limit = recent_limit

    def load(self) -> list[JobApplication]:
        if self._storage is None:
            return []
        try:
            raw = self._storage.get_item(JOBS_STORAGE_KEY)
            if not raw:
                return []
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("stored jobs are not a list")
            return [JobApplication.model_validate(item) for item in data]
        except (StorageError, ValueError, PydanticValidationError) as exc:
            logger.warning("Ignoring unreadable local jobs: %s", exc)
            return []

    def save(self, jobs: list[JobApplication]) -> None:
        if self._storage is None:
            return
        payload = json.dumps([job.to_payload(exclude={"notes_count"}) for job in jobs])
        try:
            self._storage.set_item(JOBS_STORAGE_KEY, payload)
        except StorageError as exc:
            logger.warning("Could not save local jobs: %s", exc)

    def get(self, job_id: int) -> Optional[JobApplication]:
        return next((job for job in self.load() if job.id == job_id), None)

    def create(self, payload: JobCreate | dict[str, Any]) -> JobApplication:
        """Store a new job at the head of the list.

        Raises:
            ValidationError: if the payload breaks the job field rules.
        """
        data = decode(JobCreate, payload).unwrap()
        jobs = self.load()
        job = JobApplication(
            id=_next_id([existing.id for existing in jobs]),
            created_at=utcnow(),
            notes=[],
            **data.model_dump(),
        )
        jobs.insert(0, job)
        self.save(jobs)
        logger.debug("Created local job %s (%s)", job.id, job.company)
        return job

    def update(self, job_id: int, changes: JobUpdate | dict[str, Any]) -> Optional[JobApplication]:
        """Shallow-merge the sent fields; ``None`` when the job is unknown."""
        data = decode(JobUpdate, changes).unwrap()
        jobs = self.load()
        for index, job in enumerate(jobs):
            if job.id == job_id:
                jobs[index] = job.model_copy(update=data.changes())
                self.save(jobs)
                return jobs[index]
        return None

    def delete(self, job_id: int) -> bool:
        jobs = self.load()
        remaining = [job for job in jobs if job.id != job_id]
        if len(remaining) == len(jobs):
            return False
        self.save(remaining)
        return True

    def add_note(self, job_id: int, content: str) -> Optional[Note]:
        data = decode(NoteCreate, {"content": content}).unwrap()
        jobs = self.load()
        job = next((job for job in jobs if job.id == job_id), None)
        if job is None:
            return None
        note = Note(
            id=_next_id([existing.id for existing in job.notes]),
            content=data.content,
            job_application_id=job_id,
            created_at=utcnow(),
        )
        job.notes = [note, *job.notes]
        self.save(jobs)
        return note

    def dashboard_stats(self) -> DashboardStats:
        jobs = self.load()
        by_status: dict[str, int] = {}
        for job in jobs:
            by_status[job.status] = by_status.get(job.status, 0) + 1
        # Migrated or backdated jobs break "list order == recency", so sort explicitly.
        recent = sorted(jobs, key=lambda job: job.created_at, reverse=True)[: self.recent_limit]
        return DashboardStats(total=len(jobs), by_status=by_status, recent=recent)

    def clear(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.remove_item(JOBS_STORAGE_KEY)
            self._storage.remove_item(NOTES_STORAGE_KEY)
        except StorageError as exc:
            logger.warning("Could not clear local jobs: %s", exc)

    def has_data(self) -> bool:
        return bool(self.load())
