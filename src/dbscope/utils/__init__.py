"""Utility helpers."""

from .postgres_dsn import is_libpq_dsn, normalize_database_url

__all__ = ["is_libpq_dsn", "normalize_database_url"]
