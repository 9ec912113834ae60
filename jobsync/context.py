"""Per-session context shared by the state container and the reconciler."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


@dataclass
class SessionContext:
    """Which store is the system of record for this session.

    ``use_local_storage`` starts True (guest) and only becomes False after a
    sign-in has been verified against the backend.
    """

    use_local_storage: bool = True
    user: Optional[SessionUser] = None

    @property
    def is_guest(self) -> bool:
        return self.use_local_storage
