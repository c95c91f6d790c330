from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings for database configuration.

    Reads from environment variables (or .env via pydantic-settings):
      - DATABASE_URL (full URL, wins when set)
      - POSTGRES_USER
      - POSTGRES_PASSWORD
      - POSTGRES_DB
      - POSTGRES_HOST
      - POSTGRES_PORT
    """

    DATABASE_URL: Optional[str] = Field(
        default=None, description="If provided, full SQLAlchemy/PostgreSQL connection URL."
    )
    POSTGRES_USER: Optional[str] = Field(default=None, description="DB username")
    POSTGRES_PASSWORD: Optional[str] = Field(default=None, description="DB password")
    POSTGRES_DB: Optional[str] = Field(default=None, description="Database name")
    POSTGRES_PORT: Optional[int] = Field(
        default=5432, description="Database port (default 5432)"
    )
    POSTGRES_HOST: Optional[str] = Field(
        default="localhost", description="Database host (default localhost)"
    )

    # SQLAlchemy engine options
    SQL_ECHO: bool = Field(
        default=False, description="Echo SQL statements for debugging (default False)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """
        Compute the base (sync-neutral) database URL. Will prefer DATABASE_URL
        if present, otherwise construct from individual POSTGRES_* variables.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB]):
            raise ValueError(
                "Database configuration missing. Ensure DATABASE_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD, and POSTGRES_DB are set in the environment."
            )
        host = self.POSTGRES_HOST or "localhost"
        port = self.POSTGRES_PORT or 5432
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{host}:{port}/{self.POSTGRES_DB}"

    @property
    def async_database_url(self) -> str:
        """
        Convert a PostgreSQL URL to the asyncpg driver. Other URLs (e.g.
        sqlite+aiosqlite for local runs) are passed through untouched.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg://") or not url.startswith("postgresql"):
            return url
        return re.sub(r"^postgresql(\+\w+)?://", "postgresql+asyncpg://", url)

    @property
    def sync_database_url(self) -> str:
        """
        Provide a sync URL variant for Alembic offline mode.
        """
        url = self.database_url
        url = re.sub(r"^postgresql\+\w+://", "postgresql://", url)
        return re.sub(r"^sqlite\+\w+://", "sqlite://", url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return a settings object for reuse across modules."""
    # Settings is cheap to construct; for simplicity, we return a new instance.
    return Settings()
