"""Recording doubles for the pool, connection, transaction and session.

Every call is appended to a shared ``log`` list so tests can assert the exact
order of begin/flush/commit/rollback/release operations, and any step can be
told to fail.
"""

from __future__ import annotations

import time
from typing import List


class FakeTransaction:
    def __init__(
        self,
        log: List[str],
        *,
        fail_commit: BaseException | None = None,
        fail_rollback: BaseException | None = None,
    ) -> None:
        self._log = log
        self._fail_commit = fail_commit
        self._fail_rollback = fail_rollback
        self.is_active = True

    def commit(self) -> None:
        self._log.append("commit")
        if self._fail_commit is not None:
            raise self._fail_commit
        self.is_active = False

    def rollback(self) -> None:
        self._log.append("rollback")
        self.is_active = False
        if self._fail_rollback is not None:
            raise self._fail_rollback


class FakeConnection:
    def __init__(
        self,
        log: List[str],
        transaction: FakeTransaction,
        *,
        fail_begin: BaseException | None = None,
    ) -> None:
        self._log = log
        self._transaction = transaction
        self._fail_begin = fail_begin
        self.closed = False

    def begin(self) -> FakeTransaction:
        self._log.append("begin")
        if self._fail_begin is not None:
            raise self._fail_begin
        return self._transaction

    def close(self) -> None:
        self._log.append("close")
        self.closed = True


class FakeSession:
    def __init__(self, log: List[str], *, fail_flush: BaseException | None = None) -> None:
        self._log = log
        self._fail_flush = fail_flush

    def flush(self) -> None:
        self._log.append("flush")
        if self._fail_flush is not None:
            raise self._fail_flush

    def close(self) -> None:
        self._log.append("session.close")


class FakePool:
    """Pool handing out a fresh :class:`FakeConnection` per acquisition."""

    def __init__(
        self,
        log: List[str],
        *,
        fail_acquire: BaseException | None = None,
        fail_begin: BaseException | None = None,
        fail_commit: BaseException | None = None,
        fail_rollback: BaseException | None = None,
        acquire_delay: float = 0.0,
    ) -> None:
        self._log = log
        self._acquire_delay = acquire_delay
        self._fail_acquire = fail_acquire
        self._fail_begin = fail_begin
        self._fail_commit = fail_commit
        self._fail_rollback = fail_rollback
        self.connections: List[FakeConnection] = []
        self.released: List[FakeConnection] = []

    def acquire(self) -> FakeConnection:
        self._log.append("acquire")
        if self._acquire_delay:
            time.sleep(self._acquire_delay)
        if self._fail_acquire is not None:
            raise self._fail_acquire
        transaction = FakeTransaction(
            self._log,
            fail_commit=self._fail_commit,
            fail_rollback=self._fail_rollback,
        )
        connection = FakeConnection(self._log, transaction, fail_begin=self._fail_begin)
        self.connections.append(connection)
        return connection

    def release(self, connection: FakeConnection) -> None:
        self._log.append("release")
        self.released.append(connection)
        connection.close()

    def checked_out(self) -> int:
        return len(self.connections) - len(self.released)
