"""Error hierarchy and helpers for the scope and entity layers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, TypeVar

from sqlalchemy import exc as sa_exc

RecordT = TypeVar("RecordT")

__all__ = [
    "DbScopeError",
    "PoolTimeoutError",
    "NoActiveScopeError",
    "ScopeOwnershipError",
    "RepositoryError",
    "NotFoundError",
    "MultipleResultsError",
    "EntityStateError",
    "IntegrityConstraintViolation",
    "DatabaseOperationError",
    "ensure_found",
    "handle_sqlalchemy_errors",
    "translate_sqlalchemy_error",
]


class DbScopeError(Exception):
    """Base class for dbscope specific errors."""


class PoolTimeoutError(DbScopeError):
    """Raised when no pooled connection became available in time."""


class NoActiveScopeError(DbScopeError):
    """Raised when a context is used outside of an open scope."""


class ScopeOwnershipError(DbScopeError):
    """Raised when a thread enters a scope opened by another thread."""


class RepositoryError(DbScopeError):
    """Base class for entity persistence failures."""


class NotFoundError(RepositoryError):
    """Raised when a record could not be located."""


class MultipleResultsError(RepositoryError):
    """Raised when a single-row lookup matched more than one row."""


class EntityStateError(RepositoryError):
    """Raised when an entity is in the wrong lifecycle state for an operation."""


class IntegrityConstraintViolation(RepositoryError):
    """Raised when a database constraint is violated."""


class DatabaseOperationError(RepositoryError):
    """Raised for unexpected database errors."""



def _prefixed(entity: str | None, message: str) -> str:
    return f"{entity}: {message}" if entity else message


def ensure_found(record: RecordT | None, *, entity: str, identifier: object) -> RecordT:
    """Return ``record`` or raise :class:`NotFoundError` when it is missing."""

    if record is None:
        raise NotFoundError(f"{entity} '{identifier}' not found")
    return record


def translate_sqlalchemy_error(exc: sa_exc.DBAPIError, *, entity: str | None = None) -> RepositoryError:
    """Map a driver-level error onto the dbscope repository errors."""

    if isinstance(exc, sa_exc.IntegrityError):
        return IntegrityConstraintViolation(_prefixed(entity, "integrity constraint violated"))
    return DatabaseOperationError(_prefixed(entity, "database operation failed"))


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Re-raise driver errors from the block as repository errors."""

    try:
        yield
    except sa_exc.DBAPIError as exc:
        raise translate_sqlalchemy_error(exc, entity=entity) from exc
