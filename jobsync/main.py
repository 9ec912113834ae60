"""Command line entry point for jobsync.

The signed-in session (if any) is remembered in the local key-value store and
replayed through :class:`~jobsync.session.SessionReconciler` on every run, so
guest data is migrated the first time a command runs after ``login``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

from .config import Settings, get_settings
from .context import SessionUser
from .database import make_engine
from .errors import StorageError
from .local_store import LocalJobStore
from .query import ListQuery
from .remote_store import RemoteJobStore
from .schemas import JOB_STATUSES, JobApplication, SortBy
from .session import SessionEvent, SessionReconciler, SessionStatus
from .state import JobsStore
from .storage import LocalStorage

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "jobsync_session"

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="JobSync: track job applications locally or in your account")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    list_parser = subparsers.add_parser("list", help="List job applications")
    list_parser.add_argument("--query", help="Match company or position")
    list_parser.add_argument("--status", choices=["all", *JOB_STATUSES], default="all")
    list_parser.add_argument("--from", dest="from_date", help="Earliest date (YYYY-MM-DD)")
    list_parser.add_argument("--to", dest="to_date", help="Latest date, inclusive (YYYY-MM-DD)")
    list_parser.add_argument("--sort", choices=[sort.value for sort in SortBy], default=SortBy.DATE_DESC.value)
    list_parser.add_argument("--page", type=int, default=1, help="Page number, starting at 1")

    show_parser = subparsers.add_parser("show", help="Show one application with its notes")
    show_parser.add_argument("id", type=int)

    add_parser = subparsers.add_parser("add", help="Record a new application")
    add_parser.add_argument("--company", required=True)
    add_parser.add_argument("--position", required=True)
    add_parser.add_argument("--status", default="applied", choices=JOB_STATUSES)
    add_parser.add_argument("--description")
    add_parser.add_argument("--url", dest="job_url")
    add_parser.add_argument("--apply-date")

    update_parser = subparsers.add_parser("update", help="Change fields of an application")
    update_parser.add_argument("id", type=int)
    update_parser.add_argument("--company")
    update_parser.add_argument("--position")
    update_parser.add_argument("--status", choices=JOB_STATUSES)
    update_parser.add_argument("--description", help="Pass an empty string to clear")
    update_parser.add_argument("--url", dest="job_url", help="Pass an empty string to clear")
    update_parser.add_argument("--apply-date", help="Pass an empty string to clear")

    delete_parser = subparsers.add_parser("delete", help="Delete an application and its notes")
    delete_parser.add_argument("id", type=int)

    note_parser = subparsers.add_parser("note", help="Add a note to an application")
    note_parser.add_argument("id", type=int)
    note_parser.add_argument("content")

    subparsers.add_parser("dashboard", help="Show totals by status and recent applications")

    login_parser = subparsers.add_parser("login", help="Use your account and upload guest data")
    login_parser.add_argument("--user-id", required=True)
    login_parser.add_argument("--email", required=True)
    login_parser.add_argument("--token", help="Bearer token for the backend")

    subparsers.add_parser("logout", help="Return to guest mode")
    return parser


def open_local_storage(settings: Settings) -> Optional[LocalStorage]:
    try:
        return LocalStorage(make_engine(settings.storage_url))
    except StorageError as exc:
        logger.warning("Local storage unavailable: %s", exc)
        return None


def load_session(storage: Optional[LocalStorage]) -> SessionEvent:
    raw = None
    if storage is not None:
        try:
            raw = storage.get_item(SESSION_STORAGE_KEY)
        except StorageError as exc:
            logger.warning("Could not read saved session: %s", exc)
    if not raw:
        return SessionEvent(SessionStatus.UNAUTHENTICATED)
    try:
        data = json.loads(raw)
        user = SessionUser(id=data["id"], email=data["email"], name=data.get("name"))
    except (ValueError, KeyError, TypeError):
        logger.warning("Ignoring corrupt saved session")
        return SessionEvent(SessionStatus.UNAUTHENTICATED)
    return SessionEvent(SessionStatus.AUTHENTICATED, user=user, access_token=data.get("token"))


def save_session(storage: Optional[LocalStorage], event: SessionEvent) -> bool:
    """Remember (or forget) the signed-in user; False when it could not be stored."""
    if storage is None:
        return False
    try:
        if event.user is None:
            storage.remove_item(SESSION_STORAGE_KEY)
        else:
            payload = {"id": event.user.id, "email": event.user.email, "name": event.user.name, "token": event.access_token}
            storage.set_item(SESSION_STORAGE_KEY, json.dumps(payload))
    except StorageError as exc:
        logger.warning("Could not save session: %s", exc)
        return False
    return True


def render_jobs(jobs: list[JobApplication], title: str) -> None:
    table = Table(title=title)
    for column in ("ID", "Company", "Position", "Status", "Date", "Notes"):
        table.add_column(column)
    for job in jobs:
        notes = job.notes_count if job.notes_count is not None else len(job.notes)
        table.add_row(
            str(job.id),
            job.company,
            job.position,
            job.status,
            job.effective_date.date().isoformat(),
            str(notes),
        )
    console.print(table)


def render_job(job: JobApplication) -> None:
    console.print(f"[bold]{job.position}[/bold] at [bold]{job.company}[/bold] (#{job.id})")
    console.print(f"Status: {job.status}")
    if job.apply_date:
        console.print(f"Applied: {job.apply_date.date().isoformat()}")
    if job.job_url:
        console.print(f"URL: {job.job_url}")
    if job.description:
        console.print(job.description)
    for note in job.notes:
        console.print(f"  - [{note.created_at:%Y-%m-%d %H:%M}] {note.content}")


def _report(error: Optional[str]) -> int:
    if error:
        console.print(f"[red]{error}[/red]")
        return 1
    return 0


def _update_fields(args: argparse.Namespace) -> dict[str, Optional[str]]:
    fields = {}
    for name in ("company", "position", "status", "description", "job_url", "apply_date"):
        value = getattr(args, name)
        if value is not None:
            fields[name] = value
    return fields


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    storage = open_local_storage(settings)
    local = LocalJobStore(storage, recent_limit=settings.recent_limit)
    async with RemoteJobStore(settings.api_url, auth_token=settings.auth_token, timeout=settings.request_timeout) as remote:
        store = JobsStore(local, remote, default_query=ListQuery(limit=settings.default_limit))
        reconciler = SessionReconciler(store)

        if args.command == "login":
            user = SessionUser(id=args.user_id, email=args.email)
            event = SessionEvent(SessionStatus.AUTHENTICATED, user=user, access_token=args.token)
            await reconciler.on_session_change(event)
            if reconciler.migration_error:
                console.print(f"[red]Sign-in sync failed, still in guest mode: {reconciler.migration_error}[/red]")
                return 1
            if not save_session(storage, event):
                console.print("[yellow]Session could not be saved; later commands will run as guest[/yellow]")
            migration = reconciler.last_migration
            if migration:
                console.print(
                    f"Imported {migration.imported_jobs} jobs ({migration.skipped_jobs} skipped, "
                    f"{migration.imported_notes} notes)"
                )
            console.print(f"Signed in as {user.email}")
            return 0

        if args.command == "logout":
            if storage is not None and not save_session(storage, SessionEvent(SessionStatus.UNAUTHENTICATED)):
                console.print("[yellow]Saved session could not be removed[/yellow]")
            await reconciler.on_session_change(SessionEvent(SessionStatus.UNAUTHENTICATED))
            console.print("Signed out; using local storage")
            return 0

        await reconciler.on_session_change(load_session(storage))
        mode = "guest" if store.is_guest_mode else "account"

        if args.command == "list":
            query = ListQuery(
                limit=settings.page_size,
                offset=(max(args.page, 1) - 1) * settings.page_size,
                query=args.query,
                status=args.status,
                from_date=args.from_date,
                to_date=args.to_date,
                sort_by=args.sort,
            )
            page = await store.fetch_jobs(query)
            if page is None:
                return _report(store.state.error)
            start = page.offset + 1 if page.total else 0
            render_jobs(page.items, f"{start}-{page.offset + len(page.items)} of {page.total} ({mode})")
            return 0

        if args.command == "show":
            job = await store.fetch_job(args.id)
            if job is None:
                return _report(store.state.error_current)
            render_job(job)
            return 0

        if args.command == "add":
            job = await store.create_job(
                {
                    "company": args.company,
                    "position": args.position,
                    "status": args.status,
                    "description": args.description,
                    "job_url": args.job_url,
                    "apply_date": args.apply_date,
                }
            )
            if job is None:
                return _report(store.state.error)
            console.print(f"Created #{job.id} {job.company} ({mode})")
            return 0

        if args.command == "update":
            job = await store.update_job(args.id, _update_fields(args))
            if job is None:
                return _report(store.state.error)
            render_job(job)
            return 0

        if args.command == "delete":
            if not await store.delete_job(args.id):
                return _report(store.state.error)
            console.print(f"Deleted #{args.id}")
            return 0

        if args.command == "note":
            note = await store.add_note(args.id, args.content)
            if note is None:
                return _report(store.state.error_current)
            console.print(f"Added note #{note.id} to #{args.id}")
            return 0

        if args.command == "dashboard":
            dashboard = await store.fetch_dashboard()
            if dashboard is None:
                return _report(store.state.error_dashboard)
            console.print(f"Total applications: {dashboard.total} ({mode})")
            for status, count in sorted(dashboard.by_status.items()):
                console.print(f"  {status}: {count}")
            render_jobs(dashboard.recent, "Recent")
            return 0

    return 2


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0
    settings = get_settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    return asyncio.run(run_command(args, settings))


if __name__ == "__main__":
    sys.exit(main())
