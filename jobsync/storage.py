"""String key-value storage, the local counterpart of a browser's localStorage.

Every failure of the underlying database surfaces as :class:`StorageError`;
callers decide whether to swallow it.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .database import init_db
from .errors import StorageError
from .models import StorageItem
from .schemas import utcnow

logger = logging.getLogger(__name__)


class LocalStorage:
    """Persistent string store keyed by name."""

    def __init__(self, engine: Engine):
        self._engine = engine
        try:
            init_db(engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not open local storage: {exc}") from exc

    def get_item(self, key: str) -> Optional[str]:
        try:
            with Session(self._engine) as session:
                item = session.get(StorageItem, key)
                return item.value if item else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read {key!r}: {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        try:
            with Session(self._engine) as session:
                item = session.get(StorageItem, key)
                if item:
                    item.value = value
                    item.updated_at = utcnow()
                else:
                    item = StorageItem(key=key, value=value)
                session.add(item)
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not write {key!r}: {exc}") from exc
        logger.debug("Stored %s (%s bytes)", key, len(value))

    def remove_item(self, key: str) -> None:
        try:
            with Session(self._engine) as session:
                item = session.get(StorageItem, key)
                if item:
                    session.delete(item)
                    session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not remove {key!r}: {exc}") from exc
