"""dbscope: active-record entities over SQLAlchemy with reentrant transaction scopes."""

from .config import DatabaseConfig
from .database import Database
from .entity import Entity
from .exceptions import (
    DatabaseOperationError,
    DbScopeError,
    EntityStateError,
    IntegrityConstraintViolation,
    MultipleResultsError,
    NoActiveScopeError,
    NotFoundError,
    PoolTimeoutError,
    RepositoryError,
    ScopeOwnershipError,
)
from .logging import configure_logging
from .pool import ConnectionPool
from .scope import DbContext, TransactionOutcome

__all__ = [
    "ConnectionPool",
    "Database",
    "DatabaseConfig",
    "DatabaseOperationError",
    "DbContext",
    "DbScopeError",
    "Entity",
    "EntityStateError",
    "IntegrityConstraintViolation",
    "MultipleResultsError",
    "NoActiveScopeError",
    "NotFoundError",
    "PoolTimeoutError",
    "RepositoryError",
    "ScopeOwnershipError",
    "TransactionOutcome",
    "configure_logging",
]
