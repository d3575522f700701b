from __future__ import annotations

import pytest

from dbscope.utils.postgres_dsn import is_libpq_dsn, normalize_database_url


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgresql://user:pw@localhost:5432/app", "postgresql+psycopg://user:pw@localhost:5432/app"),
        ("postgres://user@localhost/app", "postgresql+psycopg://user@localhost/app"),
        ("postgresql+psycopg2://user@localhost/app", "postgresql+psycopg2://user@localhost/app"),
        ("  sqlite:///app.db  ", "sqlite:///app.db"),
    ],
)
def test_normalize_database_url(raw: str, expected: str) -> None:
    assert normalize_database_url(raw) == expected


def test_normalize_rejects_empty() -> None:
    with pytest.raises(ValueError):
        normalize_database_url("   ")


def test_is_libpq_dsn() -> None:
    assert is_libpq_dsn("host=localhost dbname=app")
    assert not is_libpq_dsn("sqlite:///app.db")


def test_normalize_libpq_dsn() -> None:
    pytest.importorskip("psycopg")

    url = normalize_database_url("host=db port=5433 dbname=app user=svc password=pw sslmode=require")

    assert url == "postgresql+psycopg://svc:pw@db:5433/app?sslmode=require"


def test_normalize_libpq_dsn_rejects_bad_port() -> None:
    pytest.importorskip("psycopg")

    with pytest.raises(ValueError):
        normalize_database_url("host=db port=abc dbname=app")
