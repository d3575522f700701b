from __future__ import annotations

import pytest
from sqlalchemy import exc as sa_exc

from dbscope.exceptions import (
    DatabaseOperationError,
    IntegrityConstraintViolation,
    NotFoundError,
    ensure_found,
    handle_sqlalchemy_errors,
    translate_sqlalchemy_error,
)

pytestmark = pytest.mark.unit


def _dbapi_error(cls: type[sa_exc.DBAPIError]) -> sa_exc.DBAPIError:
    return cls("INSERT INTO person ...", {}, Exception("driver said no"))


def test_integrity_error_translated() -> None:
    original = _dbapi_error(sa_exc.IntegrityError)

    with pytest.raises(IntegrityConstraintViolation, match="Person: integrity constraint violated") as excinfo:
        with handle_sqlalchemy_errors(entity="Person"):
            raise original

    assert excinfo.value.__cause__ is original


def test_operational_error_translated() -> None:
    with pytest.raises(DatabaseOperationError, match="database operation failed"):
        with handle_sqlalchemy_errors():
            raise _dbapi_error(sa_exc.OperationalError)


def test_other_errors_pass_through() -> None:
    with pytest.raises(KeyError):
        with handle_sqlalchemy_errors(entity="Person"):
            raise KeyError("not a database error")


def test_ensure_found() -> None:
    record = object()

    assert ensure_found(record, entity="person", identifier=1) is record
    with pytest.raises(NotFoundError, match="person '7' not found"):
        ensure_found(None, entity="person", identifier=7)


def test_translate_without_entity_keeps_plain_message() -> None:
    translated = translate_sqlalchemy_error(_dbapi_error(sa_exc.IntegrityError))

    assert isinstance(translated, IntegrityConstraintViolation)
    assert str(translated) == "integrity constraint violated"


def test_ensure_found_returns_record_unchanged() -> None:
    records = {"id": 3}

    assert ensure_found(records.get("id"), entity="person", identifier=3) == 3
