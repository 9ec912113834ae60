"""REST client for the authenticated job backend."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .errors import NetworkError, error_from_response
from .importer import batches
from .query import ListQuery
from .schemas import (
    DashboardStats,
    JobApplication,
    JobCreate,
    JobsPage,
    JobUpdate,
    MigrationResult,
    Note,
    NoteCreate,
)

logger = logging.getLogger(__name__)


class RemoteJobStore:
    """Thin wrapper around the backend's job, note and dashboard endpoints.

    Ids are assigned by the server. Every method raises a
    :class:`~jobsync.errors.JobSyncError` subclass on failure.
    """

    def __init__(
        self,
        base_url: str,
        *,
        auth_token: Optional[str] = None,
        timeout: float = 15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        self.set_auth_token(auth_token)

    async def __aenter__(self) -> "RemoteJobStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def set_auth_token(self, token: Optional[str]) -> None:
        if token:
            self._client.headers["Authorization"] = f"Bearer {token}"
        else:
            self._client.headers.pop("Authorization", None)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise NetworkError(f"Could not reach the server: {exc}") from exc
        if response.is_error:
            error = error_from_response(response)
            logger.warning("%s %s returned %s: %s", method, url, response.status_code, error.message)
            raise error
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(f"Invalid response from {url}") from exc

    async def list_jobs(self, query: Optional[ListQuery] = None) -> JobsPage:
        query = query or ListQuery()
        data = await self._request("GET", "/jobs", params=query.to_params())
        return JobsPage.model_validate(data)

    async def get_job(self, job_id: int) -> JobApplication:
        data = await self._request("GET", f"/jobs/{job_id}")
        return JobApplication.model_validate(data)

    async def create_job(self, payload: JobCreate) -> JobApplication:
        data = await self._request("POST", "/jobs", json=payload.to_payload())
        return JobApplication.model_validate(data)

    async def update_job(self, job_id: int, changes: JobUpdate) -> JobApplication:
        data = await self._request("PATCH", f"/jobs/{job_id}", json=changes.to_payload(exclude_unset=True))
        return JobApplication.model_validate(data)

    async def delete_job(self, job_id: int) -> bool:
        data = await self._request("DELETE", f"/jobs/{job_id}")
        return bool(data.get("deleted"))

    async def list_notes(self, job_id: int) -> list[Note]:
        data = await self._request("GET", f"/jobs/{job_id}/notes")
        return [Note.model_validate(item) for item in data]

    async def add_note(self, job_id: int, payload: NoteCreate) -> Note:
        data = await self._request("POST", f"/jobs/{job_id}/notes", json=payload.to_payload())
        return Note.model_validate(data)

    async def dashboard(self) -> DashboardStats:
        data = await self._request("GET", "/dashboard")
        return DashboardStats.model_validate(data)

    async def migrate(self, jobs: list[JobApplication]) -> MigrationResult:
        """Upload guest jobs (with their notes), one bounded batch at a time."""
        total = MigrationResult()
        for batch in batches(jobs):
            payload = {"jobs": [job.to_payload(exclude={"id", "user_id", "notes_count"}) for job in batch]}
            data = await self._request("POST", "/jobs/migrate", json=payload)
            total = total + MigrationResult.model_validate(data)
        logger.info(
            "Migrated %s jobs (%s skipped, %s notes)",
            total.imported_jobs,
            total.skipped_jobs,
            total.imported_notes,
        )
        return total
