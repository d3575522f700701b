"""Database facade: engine, pool and the ``db`` entry point."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Any, TypeVar

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from .config import DatabaseConfig
from .entity import Entity
from .pool import ConnectionPool
from .scope import DbContext, SessionFactory, bind_session

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Database:
    """Owns the engine and its pool and opens transaction scopes on them.

    ``db(body)`` starts a new outermost scope; ``db(body, context=ctx)``
    joins the scope already open on ``ctx`` (or opens it when closed). Either
    way ``body`` receives the context to pass on to entity operations.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        session_factory: SessionFactory = bind_session,
    ) -> None:
        self.engine = engine
        self.pool = ConnectionPool(engine)
        self._session_factory = session_factory

    @classmethod
    def from_config(cls, config: DatabaseConfig | None = None) -> Database:
        config = config or DatabaseConfig()
        engine = sa.create_engine(config.sqlalchemy_url(), **config.engine_kwargs())
        logger.info(
            "Created engine for %s",
            engine.url.render_as_string(hide_password=True),
        )
        return cls(engine)

    @classmethod
    def from_url(cls, database_url: str, **overrides: Any) -> Database:
        return cls.from_config(DatabaseConfig(database_url=database_url, **overrides))

    def new_context(self) -> DbContext:
        return DbContext(self.pool, session_factory=self._session_factory)

    def scope(self, context: DbContext | None = None) -> AbstractContextManager[DbContext]:
        """Context-manager form of :meth:`db`."""

        return self._context(context).scope()

    def db(self, body: Callable[[DbContext], T], context: DbContext | None = None) -> T:
        """Run ``body`` in a transaction scope and return its result."""

        return self._context(context).run_in_scope(body)

    def _context(self, context: DbContext | None) -> DbContext:
        if context is None:
            return self.new_context()
        if context.pool is not self.pool:
            raise ValueError("context belongs to a different Database")
        return context

    def create_all(self) -> None:
        """Create tables for every mapped :class:`Entity` subclass."""

        Entity.metadata.create_all(self.engine)

    def drop_all(self) -> None:
        Entity.metadata.drop_all(self.engine)

    def close(self) -> None:
        self.pool.dispose()
        logger.info("Disposed engine for %s", self.engine.url.render_as_string(hide_password=True))

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()


__all__ = ["Database"]
