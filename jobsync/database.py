"""Database engine and helpers for the local key-value store."""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine


def make_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


def init_db(engine: Engine) -> Engine:
    """Create tables if they do not exist."""
    from . import models  # noqa: F401  registers the tables

    SQLModel.metadata.create_all(engine)
    return engine
