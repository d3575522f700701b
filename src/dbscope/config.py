"""Database configuration for dbscope.

Settings are read from ``DBSCOPE_*`` environment variables. The defaults
target a local SQLite file so that a bare ``Database.from_config()`` works
out of the box; PostgreSQL URLs are routed through the psycopg driver.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

from .utils.postgres_dsn import normalize_database_url


class DatabaseConfig(BaseSettings):
    """Pydantic settings container for the engine and its connection pool."""

    model_config = SettingsConfigDict(env_prefix="DBSCOPE_")

    database_url: str = Field(
        default="sqlite:///dbscope.db",
        min_length=1,
        description="SQLAlchemy URL or libpq DSN of the database",
    )
    pool_size: int = Field(
        default=5,
        ge=1,
        description="Number of connections kept open in the pool.",
    )
    max_overflow: int = Field(
        default=10,
        ge=0,
        description="Connections allowed beyond pool_size under load.",
    )
    pool_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="How long acquiring a connection may block before failing.",
    )
    pool_recycle_seconds: int = Field(
        default=-1,
        ge=-1,
        description="Recycle pooled connections older than this (-1 disables).",
    )
    pool_pre_ping: bool = Field(
        default=False,
        description="Test connections for liveness on checkout.",
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement through SQLAlchemy.",
    )

    def sqlalchemy_url(self) -> str:
        """Return :attr:`database_url` normalised for ``create_engine``."""

        return normalize_database_url(self.database_url)

    def uses_queue_pool(self) -> bool:
        """In-memory SQLite cannot share a queue pool; everything else does."""

        url = make_url(self.sqlalchemy_url())
        if url.get_backend_name() != "sqlite":
            return True
        return url.database not in (None, "", ":memory:")

    def engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for :func:`sqlalchemy.create_engine`."""

        kwargs: dict[str, Any] = {
            "echo": self.echo,
            "pool_pre_ping": self.pool_pre_ping,
        }
        if self.uses_queue_pool():
            kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout_seconds,
                pool_recycle=self.pool_recycle_seconds,
            )
        return kwargs


__all__ = ["DatabaseConfig"]
