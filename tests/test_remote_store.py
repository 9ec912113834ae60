"""Tests for the REST client against the in-process backend."""

import httpx
import pytest

from jobsync.errors import NetworkError, NotFoundError, UnauthorizedError, ValidationError
from jobsync.query import ListQuery
from jobsync.remote_store import RemoteJobStore
from jobsync.schemas import JobCreate, JobUpdate, Note, NoteCreate

from .conftest import USER_ID, make_job


class TestJobsApi:
    """CRUD and notes over HTTP."""

    @pytest.mark.asyncio
    async def test_create_get_update(self, remote, backend):
        """Created jobs can be updated and read back."""
        created = await remote.create_job(JobCreate(company="Acme", position="Dev", status="applied", job_url="https://acme.example"))
        assert created.id == 1
        assert created.user_id == USER_ID

        updated = await remote.update_job(created.id, JobUpdate(status="interview"))
        assert updated.status == "interview"
        assert updated.job_url == "https://acme.example"

        fetched = await remote.get_job(created.id)
        assert fetched.status == "interview"
        assert fetched.notes == []
        assert backend.calls == ["create", "update", "get"]

    @pytest.mark.asyncio
    async def test_list_sends_query_parameters(self, remote, backend):
        """List queries are filtered server side for the token's user."""
        backend.seed(
            USER_ID,
            [
                make_job(1, "Acme", created="2024-01-01T00:00:00"),
                make_job(2, "Globex", "offer", created="2024-01-02T00:00:00"),
            ],
        )
        backend.seed("someone-else", [make_job(3, "Acme", created="2024-01-03T00:00:00")])
        page = await remote.list_jobs(ListQuery(query="acme", limit=1))
        assert [job.id for job in page.items] == [1]
        assert page.total == 1
        assert page.limit == 1
        assert page.has_more is False
        assert page.items[0].notes_count == 0

    @pytest.mark.asyncio
    async def test_notes_newest_first_and_cascade_delete(self, remote, backend):
        """Notes list newest first and go away with their job."""
        job = await remote.create_job(JobCreate(company="Acme", position="Dev", status="applied"))
        first = await remote.add_note(job.id, NoteCreate(content="first"))
        second = await remote.add_note(job.id, NoteCreate(content="second"))
        assert isinstance(first, Note)
        notes = await remote.list_notes(job.id)
        assert [note.id for note in notes] == [second.id, first.id]

        assert await remote.delete_job(job.id) is True
        assert job.id not in backend.notes
        with pytest.raises(NotFoundError):
            await remote.get_job(job.id)

    @pytest.mark.asyncio
    async def test_dashboard(self, remote, backend):
        """Dashboard counts by status with the newest jobs first."""
        backend.seed(
            USER_ID,
            [
                make_job(1, "Acme", created="2024-01-01T00:00:00"),
                make_job(2, "Globex", "offer", created="2024-02-01T00:00:00"),
            ],
        )
        stats = await remote.dashboard()
        assert stats.total == 2
        assert stats.by_status == {"applied": 1, "offer": 1}
        assert [job.id for job in stats.recent] == [2, 1]


class TestErrors:
    """HTTP failures map onto the error taxonomy."""

    @pytest.mark.asyncio
    async def test_missing_token_is_unauthorized(self, remote):
        """Requests without a token raise UnauthorizedError."""
        remote.set_auth_token(None)
        with pytest.raises(UnauthorizedError):
            await remote.dashboard()

    @pytest.mark.asyncio
    async def test_other_users_job_is_not_found(self, remote, backend):
        """Jobs owned by someone else look missing."""
        backend.seed("someone-else", [make_job(5, "Acme", created="2024-01-01T00:00:00")])
        with pytest.raises(NotFoundError):
            await remote.get_job(5)

    @pytest.mark.asyncio
    async def test_server_rejection_is_validation_error(self, remote):
        """A 400 becomes ValidationError carrying the server message."""
        with pytest.raises(ValidationError) as excinfo:
            await remote.update_job(1, JobUpdate.model_construct(status="ghosted", _fields_set={"status"}))
        assert excinfo.value.message == "Invalid status: ghosted"

    @pytest.mark.asyncio
    async def test_server_error_is_network_error(self, remote, backend):
        """A 500 becomes NetworkError carrying the server message."""
        backend.failing = {"dashboard"}
        with pytest.raises(NetworkError) as excinfo:
            await remote.dashboard()
        assert excinfo.value.message == "Internal server error"

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        """Connection failures become NetworkError."""
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with RemoteJobStore("http://testserver/api", transport=httpx.MockTransport(refuse)) as remote:
            with pytest.raises(NetworkError):
                await remote.list_jobs()


class TestMigrate:
    """Bulk upload of guest jobs."""

    @pytest.mark.asyncio
    async def test_second_run_skips_everything(self, remote, backend, local):
        """Uploading the same jobs twice creates nothing the second time."""
        acme = local.create({"company": "Acme", "position": "Dev", "status": "applied"})
        local.add_note(acme.id, "Sent resume")
        local.create({"company": "Globex", "position": "Dev", "status": "interview"})
        jobs = local.load()

        first = await remote.migrate(jobs)
        assert (first.imported_jobs, first.skipped_jobs, first.imported_notes) == (2, 0, 1)
        second = await remote.migrate(jobs)
        assert (second.imported_jobs, second.skipped_jobs, second.imported_notes) == (0, 2, 0)
        assert len(backend.jobs_for(USER_ID)) == 2

        migrated = {job.company: job for job in backend.jobs_for(USER_ID)}
        assert migrated["Acme"].created_at == acme.created_at
        assert [note.content for note in backend.notes[migrated["Acme"].id]] == ["Sent resume"]

    @pytest.mark.asyncio
    async def test_large_uploads_are_batched(self, remote, backend):
        """More than 500 jobs go up in several requests."""
        jobs = [make_job(i, f"Co {i}", created="2024-01-01T00:00:00") for i in range(1, 1202)]
        result = await remote.migrate(jobs)
        assert result.imported_jobs == 1201
        assert backend.calls.count("migrate") == 3
