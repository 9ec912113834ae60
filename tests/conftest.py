"""Shared fixtures: a temporary local store and an in-process backend."""

from datetime import datetime, timezone
from typing import Optional

import httpx
import pytest

from jobsync.context import SessionContext
from jobsync.database import make_engine
from jobsync.local_store import LocalJobStore
from jobsync.remote_store import RemoteJobStore
from jobsync.schemas import JobApplication
from jobsync.state import JobsStore
from jobsync.storage import LocalStorage

from .fake_backend import FakeBackend

USER_ID = "user-1"


def make_job(job_id: int, company: str, status: str = "applied", *, created: str, applied: Optional[str] = None, position: str = "Engineer") -> JobApplication:
    """Build a job with explicit timestamps (ISO strings, UTC)."""
    return JobApplication(
        id=job_id,
        company=company,
        position=position,
        status=status,
        created_at=datetime.fromisoformat(created).replace(tzinfo=timezone.utc),
        apply_date=datetime.fromisoformat(applied).replace(tzinfo=timezone.utc) if applied else None,
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def remote(backend):
    return RemoteJobStore(
        "http://testserver/api",
        auth_token=USER_ID,
        transport=httpx.ASGITransport(app=backend.app),
    )


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(make_engine(f"sqlite:///{tmp_path / 'local.db'}"))


@pytest.fixture
def local(local_storage):
    return LocalJobStore(local_storage)


@pytest.fixture
def store(local, remote):
    return JobsStore(local, remote, SessionContext())
