"""Database models."""

from datetime import datetime

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from .schemas import utcnow


class StorageItem(SQLModel, table=True):
    """One key of the local key-value store."""

    __tablename__ = "storage_item"

    key: str = Field(primary_key=True)
    value: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow)
