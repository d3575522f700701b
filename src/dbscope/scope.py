"""Reentrant transaction scope bound to an explicit context handle.

A :class:`DbContext` owns at most one pooled connection, one root transaction
and one ORM session. Entering its scope while no scope is open acquires all
three; entering it again from inside the body only bumps the depth counter.
The outermost exit is the only place that commits or rolls back::

    ctx = database.new_context()
    with ctx.scope():
        Person(name="foo", age=25).save(ctx)
        with ctx.scope():              # joins the same transaction
            Person.find_all(ctx)
    # committed here; an exception at any depth rolls everything back

Contexts are not shared between threads. A context that is open on one
thread rejects entry from another with :class:`ScopeOwnershipError`.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Connection, Result, Transaction
from sqlalchemy.orm import Session
from sqlalchemy.sql import Executable

from .exceptions import NoActiveScopeError, ScopeOwnershipError
from .pool import ConnectionPool

T = TypeVar("T")

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Connection], Session]


class TransactionOutcome(str, enum.Enum):
    """How the last outermost scope of a context ended."""

    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def bind_session(connection: Connection) -> Session:
    """Create an ORM session that rides on the scope's own transaction.

    ``rollback_only`` keeps the session from committing or closing the root
    transaction; the scope decides its fate.
    """

    return Session(
        bind=connection,
        expire_on_commit=False,
        join_transaction_mode="rollback_only",
    )


class DbContext:
    """Scope state for one thread of work: connection, transaction, depth."""

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        session_factory: SessionFactory = bind_session,
    ) -> None:
        self._pool = pool
        self._session_factory = session_factory
        self._lock = threading.Lock()
        self._depth = 0
        self._owner: int | None = None
        self._connection: Connection | None = None
        self._transaction: Transaction | None = None
        self._session: Session | None = None
        self.outcome: TransactionOutcome | None = None

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def is_open(self) -> bool:
        return self._depth > 0

    @property
    def connection(self) -> Connection:
        """The connection bound to the open scope."""

        if self._connection is None:
            raise NoActiveScopeError("no database scope is open on this context")
        return self._connection

    @property
    def session(self) -> Session:
        """The ORM session bound to the open scope."""

        if self._session is None:
            raise NoActiveScopeError("no database scope is open on this context")
        return self._session

    def execute(
        self,
        statement: str | Executable,
        params: Mapping[str, Any] | None = None,
    ) -> Result[Any]:
        """Run raw SQL or a Core statement on the scope's connection."""

        if isinstance(statement, str):
            statement = sa.text(statement)
        self.session.flush()
        return self.connection.execute(statement, params)

    @contextmanager
    def scope(self) -> Iterator[DbContext]:
        """Open the outermost scope or join the one already open."""

        if self._claim():
            try:
                self._open()
            except BaseException:
                self._unclaim()
                raise
        else:
            logger.debug("Joined db scope at depth %d", self._depth)
        try:
            yield self
        except BaseException as exc:
            if self._depth == 1:
                try:
                    self._rollback_and_release(exc)
                finally:
                    self._unclaim()
            else:
                self._leave()
            raise
        if self._depth == 1:
            try:
                self._commit_and_release()
            finally:
                self._unclaim()
        else:
            self._leave()

    def run_in_scope(self, body: Callable[[DbContext], T]) -> T:
        """Call ``body(self)`` inside a scope and return its result."""

        with self.scope():
            return body(self)

    def _claim(self) -> bool:
        """Enter one level deeper; return True when this entry opens the scope."""

        current = threading.get_ident()
        with self._lock:
            if self._depth > 0 and self._owner != current:
                raise ScopeOwnershipError(
                    f"scope is open on thread {self._owner}; contexts cannot be shared"
                )
            self._owner = current
            self._depth += 1
            return self._depth == 1

    def _leave(self) -> None:
        with self._lock:
            self._depth -= 1

    def _unclaim(self) -> None:
        with self._lock:
            self._depth = 0
            self._owner = None

    def _open(self) -> None:
        connection = self._pool.acquire()
        try:
            transaction = connection.begin()
            session = self._session_factory(connection)
        except BaseException:
            self._pool.release(connection)
            raise
        self._connection = connection
        self._transaction = transaction
        self._session = session
        self.outcome = None
        logger.debug("Opened db scope")

    def _commit_and_release(self) -> None:
        assert self._session is not None and self._transaction is not None
        try:
            self._session.flush()
            self._session.close()
            self._transaction.commit()
        except BaseException as exc:
            logger.warning("Commit failed, rolling back: %r", exc)
            self._rollback_and_release(exc)
            raise
        self._release(TransactionOutcome.COMMITTED)
        logger.debug("Committed db scope")

    def _rollback_and_release(self, error: BaseException) -> None:
        assert self._session is not None and self._transaction is not None
        try:
            self._session.close()
            # a failed flush or commit may already have ended the transaction;
            # releasing the connection resets whatever is left
            if self._transaction.is_active:
                self._transaction.rollback()
        except Exception as rollback_exc:
            logger.error("Rollback failed after %r: %r", error, rollback_exc)
            error.add_note(f"rollback failed: {rollback_exc!r}")
        else:
            logger.debug("Rolled back db scope after %s", type(error).__name__)
        finally:
            self._release(TransactionOutcome.ROLLED_BACK)

    def _release(self, outcome: TransactionOutcome) -> None:
        connection = self._connection
        self._connection = None
        self._transaction = None
        self._session = None
        self.outcome = outcome
        if connection is not None:
            self._pool.release(connection)


__all__ = ["DbContext", "SessionFactory", "TransactionOutcome", "bind_session"]
