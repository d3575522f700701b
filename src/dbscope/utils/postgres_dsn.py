"""Helpers for dealing with database URL and PostgreSQL DSN formats."""

from __future__ import annotations

from typing import Any

from sqlalchemy.engine import URL, make_url

try:  # pragma: no cover - optional dependency during import
    from psycopg import conninfo as _psycopg_conninfo
except ImportError as exc:  # pragma: no cover - optional dependency
    _psycopg_conninfo = None  # type: ignore[assignment]
    _PSYCOPG_IMPORT_ERROR: ImportError | None = exc
else:  # pragma: no cover - import succeeds under normal conditions
    _PSYCOPG_IMPORT_ERROR = None


_POSTGRES_DRIVERNAMES = ("postgres", "postgresql")
_LIBPQ_KEYS = ("host", "port", "dbname", "user", "password")


def _require_conninfo() -> Any:
    if _psycopg_conninfo is None:
        raise ModuleNotFoundError(
            "psycopg is required for libpq DSN normalization"
        ) from _PSYCOPG_IMPORT_ERROR
    return _psycopg_conninfo


def _coerce_port(value: str | int | None) -> int | None:
    if value in (None, ""):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid PostgreSQL port value: {value!r}") from exc


def _normalize_drivername(drivername: str) -> str:
    if drivername in _POSTGRES_DRIVERNAMES:
        return "postgresql+psycopg"
    return drivername


def _url_from_libpq(raw: str) -> URL:
    mapping = _require_conninfo().conninfo_to_dict(raw)
    query = {k: str(v) for k, v in mapping.items() if k not in _LIBPQ_KEYS and v}
    return URL.create(
        drivername="postgresql+psycopg",
        username=mapping.get("user") or None,
        password=mapping.get("password") or None,
        host=mapping.get("host") or None,
        port=_coerce_port(mapping.get("port")),
        database=mapping.get("dbname") or None,
        query=query,
    )


def is_libpq_dsn(raw: str) -> bool:
    """Return ``True`` for ``key=value`` libpq connection strings."""

    return "://" not in raw and "=" in raw


def normalize_database_url(raw_url: str) -> str:
    """Return a SQLAlchemy URL string, routing PostgreSQL through psycopg.

    Accepts regular SQLAlchemy URLs (``sqlite:///app.db``,
    ``postgresql://user@host/db``, ``postgres://...``) as well as libpq
    ``key=value`` DSNs. Non-PostgreSQL URLs are returned unchanged apart from
    whitespace trimming.
    """

    raw = raw_url.strip()
    if not raw:
        raise ValueError("database URL must be a non-empty string")

    if is_libpq_dsn(raw):
        url = _url_from_libpq(raw)
    else:
        url = make_url(raw)
        url = url.set(drivername=_normalize_drivername(url.drivername))
    return url.render_as_string(hide_password=False)


__all__ = ["is_libpq_dsn", "normalize_database_url"]
