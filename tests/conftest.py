from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from dbscope import Database

from tests.unit.entities import Person, Tag  # noqa: F401  - registers the tables


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'dbscope.db'}"


@pytest.fixture
def database(database_url: str) -> Iterator[Database]:
    db = Database.from_url(database_url, pool_timeout_seconds=5.0)
    db.create_all()
    yield db
    db.close()
