"""Keeps the storage mode in step with the authentication session.

On sign-in the guest's local jobs are uploaded once, the account data is
fetched back, and only when both fetches succeed is local storage cleared.
Any failure on the way falls back to guest mode with local data untouched,
so the next sign-in event can retry.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .context import SessionUser
from .errors import JobSyncError, error_message
from .schemas import MigrationResult
from .state import JobsStore

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class SessionEvent:
    """What the authentication provider currently reports."""

    status: SessionStatus
    user: Optional[SessionUser] = None
    access_token: Optional[str] = None


class Phase(str, Enum):
    GUEST = "guest"
    SIGNING_IN = "signing_in"
    MIGRATING = "migrating"
    SYNCING = "syncing"
    AUTHENTICATED = "authenticated"
    MIGRATION_FAILED = "migration_failed"
    SIGNED_OUT = "signed_out"


class SessionReconciler:
    """Drives the guest-to-account migration for a :class:`JobsStore`."""

    def __init__(self, store: JobsStore):
        self.store = store
        self.phase = Phase.GUEST
        self.transitions: list[Phase] = [Phase.GUEST]
        self.synced_user_id: Optional[str] = None
        self.last_migration: Optional[MigrationResult] = None
        self.migration_error: Optional[str] = None
        # Bumped by every session change; a sign-in that sees a newer value was superseded.
        self._generation = 0

    def _enter(self, phase: Phase) -> None:
        logger.debug("Session phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase
        self.transitions.append(phase)

    def _superseded(self, generation: int, user: SessionUser) -> bool:
        if generation == self._generation:
            return False
        logger.info("Sign-in for %s superseded by a newer session change", user.email)
        return True

    async def on_session_change(self, event: SessionEvent) -> Phase:
        if event.status is SessionStatus.LOADING:
            return self.phase
        user = event.user
        if event.status is SessionStatus.AUTHENTICATED and user and user.id and user.email:
            await self.handle_signed_in(user, access_token=event.access_token)
        else:
            await self.handle_signed_out()
        return self.phase

    async def handle_signed_in(self, user: SessionUser, *, access_token: Optional[str] = None) -> bool:
        """Run the migration protocol once per user; True when the account is live."""
        if self.synced_user_id == user.id:
            return self.phase is Phase.AUTHENTICATED
        # Set before any await so re-entrant events for this user are no-ops.
        self.synced_user_id = user.id
        self.migration_error = None
        self._generation += 1
        generation = self._generation
        self._enter(Phase.SIGNING_IN)

        store = self.store
        store.context.user = user
        if access_token:
            store.remote.set_auth_token(access_token)

        local_jobs = store.local.load()
        store.set_use_local_storage(False)

        migrated = False
        if local_jobs:
            self._enter(Phase.MIGRATING)
            try:
                self.last_migration = await store.migrate_local_jobs(local_jobs)
            except JobSyncError as exc:
                if self._superseded(generation, user):
                    return False
                await self._fall_back(error_message(exc))
                return False
            if self._superseded(generation, user):
                return False
            migrated = True

        self._enter(Phase.SYNCING)
        page, dashboard = await asyncio.gather(store.fetch_jobs(), store.fetch_dashboard())
        # A sign-out during the fetches made local storage the system of record again.
        if self._superseded(generation, user):
            return False
        if page is None or dashboard is None:
            await self._fall_back(store.state.error or store.state.error_dashboard or "Could not load account data")
            return False

        if migrated:
            store.local.clear()
        self._enter(Phase.AUTHENTICATED)
        logger.info("Signed in as %s (%s local jobs migrated)", user.email, len(local_jobs) if migrated else 0)
        return True

    async def _fall_back(self, message: str) -> None:
        logger.warning("Sign-in sync failed, staying in guest mode: %s", message)
        self._enter(Phase.MIGRATION_FAILED)
        self.migration_error = message
        self.synced_user_id = None
        store = self.store
        store.context.user = None
        store.remote.set_auth_token(None)
        store.set_use_local_storage(True)
        await asyncio.gather(store.fetch_jobs(), store.fetch_dashboard())
        self._enter(Phase.GUEST)

    async def handle_signed_out(self) -> None:
        self._generation += 1
        self._enter(Phase.SIGNED_OUT)
        self.synced_user_id = None
        store = self.store
        store.context.user = None
        store.remote.set_auth_token(None)
        store.set_use_local_storage(True)
        store.reset()
        await asyncio.gather(store.fetch_jobs(), store.fetch_dashboard())
        self._enter(Phase.GUEST)
