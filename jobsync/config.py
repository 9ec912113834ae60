"""Application configuration helpers."""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration loaded from environment variables."""

    api_url: str = "http://127.0.0.1:3000/api"
    storage_url: str = Field(default_factory=lambda: f"sqlite:///{Path('data/jobsync.db').resolve()}")
    data_dir: Path = Field(default_factory=lambda: Path("data").resolve())
    request_timeout: float = 15.0
    auth_token: Optional[str] = None
    default_limit: int = Field(default=50, gt=0)
    page_size: int = Field(default=12, gt=0)
    recent_limit: int = Field(default=10, gt=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="JOBSYNC_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = str(value).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Invalid log level: {value}")
        return level

    def ensure_directories(self) -> None:
        """Create on-disk folders for runtime data."""
        self.data_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    """Return a settings instance and ensure directories exist."""
    settings = Settings()
    settings.ensure_directories()
    return settings
