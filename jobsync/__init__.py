"""JobSync: job application tracking with guest-to-account sync."""

from .context import SessionContext, SessionUser
from .local_store import LocalJobStore
from .query import ListQuery, run_query
from .remote_store import RemoteJobStore
from .session import Phase, SessionEvent, SessionReconciler, SessionStatus
from .state import JobsState, JobsStore

__version__ = "1.0.0"

__all__ = [
    "JobsState",
    "JobsStore",
    "ListQuery",
    "LocalJobStore",
    "Phase",
    "RemoteJobStore",
    "SessionContext",
    "SessionEvent",
    "SessionReconciler",
    "SessionStatus",
    "SessionUser",
    "run_query",
]
