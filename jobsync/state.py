"""Client-side job state that works against either store.

:class:`JobsStore` holds the job list, the job being viewed and the dashboard,
each with its own loading and error fields. Every intent reads the session
context to decide whether the local or the remote store answers it.

Fetches are fenced per kind (list, current job, dashboard): each one takes a
sequence number and its response is applied only if no newer fetch of the
same kind started in the meantime. Failures keep the previous data in place
and only set the matching error message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from .context import SessionContext
from .errors import JobSyncError, NotFoundError, error_message
from .local_store import LocalJobStore
from .query import ListQuery, run_query
from .remote_store import RemoteJobStore
from .schemas import (
    DashboardStats,
    JobApplication,
    JobCreate,
    JobsPage,
    JobUpdate,
    ListMeta,
    MigrationResult,
    Note,
    NoteCreate,
    decode,
)

logger = logging.getLogger(__name__)

LIST = "list"
CURRENT = "current"
DASHBOARD = "dashboard"

_FLAGS = {
    LIST: ("loading", "error"),
    CURRENT: ("loading_current", "error_current"),
    DASHBOARD: ("loading_dashboard", "error_dashboard"),
}


@dataclass
class JobsState:
    items: list[JobApplication] = field(default_factory=list)
    list_meta: ListMeta = field(default_factory=ListMeta)
    current_job: Optional[JobApplication] = None
    dashboard: Optional[DashboardStats] = None
    loading: bool = False
    loading_current: bool = False
    loading_dashboard: bool = False
    error: Optional[str] = None
    error_current: Optional[str] = None
    error_dashboard: Optional[str] = None


Listener = Callable[[JobsState], Any]


def _with_note(job: JobApplication, note: Note) -> JobApplication:
    update: dict[str, Any] = {"notes": [note, *job.notes]}
    if job.notes_count is not None:
        update["notes_count"] = job.notes_count + 1
    return job.model_copy(update=update)


class JobsStore:
    """State container dispatching each intent to the store chosen by mode."""

    def __init__(
        self,
        local: LocalJobStore,
        remote: RemoteJobStore,
        context: Optional[SessionContext] = None,
        *,
        default_query: Optional[ListQuery] = None,
    ):
        self.local = local
        self.remote = remote
        self.context = context or SessionContext()
        self.state = JobsState()
        self._default_query = default_query or ListQuery()
        self._query = self._default_query
        self._sequence = {LIST: 0, CURRENT: 0, DASHBOARD: 0}
        self._listeners: list[Listener] = []

    @property
    def use_local_storage(self) -> bool:
        return self.context.use_local_storage

    @property
    def is_guest_mode(self) -> bool:
        return self.context.is_guest

    @property
    def last_query(self) -> ListQuery:
        return self._query

    def set_use_local_storage(self, value: bool) -> None:
        if self.context.use_local_storage != value:
            logger.info("Switching to %s storage", "local" if value else "remote")
        self.context.use_local_storage = value
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    def _start(self, kind: str, *, fenced: bool = False) -> Optional[int]:
        loading, error = _FLAGS[kind]
        setattr(self.state, loading, True)
        setattr(self.state, error, None)
        self._notify()
        if not fenced:
            return None
        self._sequence[kind] += 1
        return self._sequence[kind]

    def _is_stale(self, kind: str, seq: Optional[int]) -> bool:
        if seq is None or seq == self._sequence[kind]:
            return False
        logger.debug("Discarding stale %s response #%s (latest #%s)", kind, seq, self._sequence[kind])
        return True

    def _finish(self, kind: str, error: Optional[str] = None) -> None:
        loading, error_field = _FLAGS[kind]
        setattr(self.state, loading, False)
        setattr(self.state, error_field, error)
        self._notify()

    def _fail(self, kind: str, seq: Optional[int], exc: JobSyncError) -> None:
        if self._is_stale(kind, seq):
            return
        logger.warning("%s request failed: %s", kind, exc.message)
        self._finish(kind, error_message(exc))

    # -- fetches -----------------------------------------------------------

    async def fetch_jobs(self, query: Optional[ListQuery] = None) -> Optional[JobsPage]:
        """Load one page of jobs; without ``query`` the last one is repeated."""
        query = query or self._query
        self._query = query
        seq = self._start(LIST, fenced=True)
        try:
            if self.use_local_storage:
                page = run_query(self.local.load(), query)
            else:
                page = await self.remote.list_jobs(query)
        except JobSyncError as exc:
            self._fail(LIST, seq, exc)
            return None
        if self._is_stale(LIST, seq):
            return page
        self.state.items = list(page.items)
        self.state.list_meta = page.meta
        self._finish(LIST)
        return page

    async def fetch_job(self, job_id: int) -> Optional[JobApplication]:
        seq = self._start(CURRENT, fenced=True)
        try:
            if self.use_local_storage:
                job = self.local.get(job_id)
                if job is None:
                    raise NotFoundError()
            else:
                job = await self.remote.get_job(job_id)
        except JobSyncError as exc:
            self._fail(CURRENT, seq, exc)
            return None
        if self._is_stale(CURRENT, seq):
            return job
        self.state.current_job = job
        self._finish(CURRENT)
        return job

    async def fetch_dashboard(self) -> Optional[DashboardStats]:
        seq = self._start(DASHBOARD, fenced=True)
        try:
            if self.use_local_storage:
                dashboard = self.local.dashboard_stats()
            else:
                dashboard = await self.remote.dashboard()
        except JobSyncError as exc:
            self._fail(DASHBOARD, seq, exc)
            return None
        if self._is_stale(DASHBOARD, seq):
            return dashboard
        self.state.dashboard = dashboard
        self._finish(DASHBOARD)
        return dashboard

    # -- mutations ---------------------------------------------------------

    async def create_job(self, payload: JobCreate | dict[str, Any]) -> Optional[JobApplication]:
        """Create a job; it only joins ``items`` when the first page is shown."""
        self._start(LIST)
        try:
            data = decode(JobCreate, payload).unwrap()
            if self.use_local_storage:
                job = self.local.create(data)
            else:
                job = await self.remote.create_job(data)
        except JobSyncError as exc:
            self._fail(LIST, None, exc)
            return None
        meta = self.state.list_meta
        if meta.offset == 0:
            self.state.items = [job, *self.state.items][: meta.limit]
        self.state.list_meta = meta.model_copy(update={"total": meta.total + 1}).rederive(len(self.state.items))
        self._finish(LIST)
        return job

    async def update_job(self, job_id: int, changes: JobUpdate | dict[str, Any]) -> Optional[JobApplication]:
        self._start(LIST)
        try:
            data = decode(JobUpdate, changes).unwrap()
            if self.use_local_storage:
                job = self.local.update(job_id, data)
                if job is None:
                    raise NotFoundError()
            else:
                job = await self.remote.update_job(job_id, data)
        except JobSyncError as exc:
            self._fail(LIST, None, exc)
            return None
        self.state.items = [job if item.id == job.id else item for item in self.state.items]
        if self.state.current_job is not None and self.state.current_job.id == job.id:
            self.state.current_job = job
        self._finish(LIST)
        return job

    async def delete_job(self, job_id: int) -> bool:
        self._start(LIST)
        try:
            if self.use_local_storage:
                if not self.local.delete(job_id):
                    raise NotFoundError()
            else:
                await self.remote.delete_job(job_id)
        except JobSyncError as exc:
            self._fail(LIST, None, exc)
            return False
        self.state.items = [item for item in self.state.items if item.id != job_id]
        if self.state.current_job is not None and self.state.current_job.id == job_id:
            self.state.current_job = None
        meta = self.state.list_meta
        self.state.list_meta = meta.model_copy(update={"total": max(meta.total - 1, 0)}).rederive(len(self.state.items))
        self._finish(LIST)
        return True

    async def add_note(self, job_id: int, content: str) -> Optional[Note]:
        """Attach a note and prepend it wherever the job is held in state."""
        self._start(CURRENT)
        try:
            data = decode(NoteCreate, {"content": content}).unwrap()
            if self.use_local_storage:
                note = self.local.add_note(job_id, data.content)
                if note is None:
                    raise NotFoundError()
            else:
                note = await self.remote.add_note(job_id, data)
        except JobSyncError as exc:
            self._fail(CURRENT, None, exc)
            return None
        self.state.items = [
            _with_note(item, note) if item.id == note.job_application_id else item for item in self.state.items
        ]
        current = self.state.current_job
        if current is not None and current.id == note.job_application_id:
            self.state.current_job = _with_note(current, note)
        self._finish(CURRENT)
        return note

    async def migrate_local_jobs(self, jobs: list[JobApplication]) -> MigrationResult:
        """Upload guest jobs to the backend; errors propagate to the caller."""
        return await self.remote.migrate(jobs)

    # -- plain state changes ----------------------------------------------

    def clear_current_job(self) -> None:
        self.state.current_job = None
        self.state.error_current = None
        self._notify()

    def clear_error(self) -> None:
        self.state.error = None
        self._notify()

    def clear_error_current(self) -> None:
        self.state.error_current = None
        self._notify()

    def clear_error_dashboard(self) -> None:
        self.state.error_dashboard = None
        self._notify()

    def reset(self) -> None:
        """Drop held data and ignore responses to requests already in flight."""
        for kind in self._sequence:
            self._sequence[kind] += 1
        self.state = JobsState()
        self._query = self._default_query
        self._notify()
