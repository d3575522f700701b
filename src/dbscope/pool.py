"""Process-wide connection pool backed by a SQLAlchemy engine."""

from __future__ import annotations

import logging

from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import QueuePool

from .exceptions import DatabaseOperationError, PoolTimeoutError

logger = logging.getLogger(__name__)


class ConnectionPool:
    """Hand out and take back engine connections.

    The engine's pool does the actual bookkeeping and is safe to share between
    threads; this wrapper only gives acquisition failures dbscope's own types.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @property
    def engine(self) -> Engine:
        return self._engine

    def acquire(self) -> Connection:
        """Check a connection out, blocking up to the configured pool timeout."""

        try:
            connection = self._engine.connect()
        except sa_exc.TimeoutError as exc:
            raise PoolTimeoutError(
                f"no connection available from pool ({self.status()})"
            ) from exc
        except sa_exc.DBAPIError as exc:
            raise DatabaseOperationError("failed to open database connection") from exc
        logger.debug("Acquired connection; %s", self.status())
        return connection

    def release(self, connection: Connection) -> None:
        """Return ``connection`` to the pool; closed connections are ignored."""

        if connection.closed:
            return
        connection.close()
        logger.debug("Released connection; %s", self.status())

    def checked_out(self) -> int:
        pool = self._engine.pool
        if isinstance(pool, QueuePool):
            return pool.checkedout()
        return 0

    def status(self) -> str:
        return self._engine.pool.status()

    def dispose(self) -> None:
        self._engine.dispose()


__all__ = ["ConnectionPool"]
