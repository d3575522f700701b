"""Active-record style base class for mapped entities.

Entities are ordinary SQLAlchemy declarative classes. Every persistence
operation takes the :class:`~dbscope.scope.DbContext` whose scope it runs in
and issues its SQL through that scope's session, so the statements share the
scope's connection and transaction::

    class Person(Entity):
        __tablename__ = "person"

        id: Mapped[int] = mapped_column(primary_key=True)
        name: Mapped[str] = mapped_column(String(255))
        age: Mapped[int]

    database.db(lambda ctx: Person(name="foo", age=25).save(ctx))
    people = database.db(Person.find_all)
"""

from __future__ import annotations

from typing import Any, Self

import sqlalchemy as sa
from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase, Mapper

from .exceptions import (
    EntityStateError,
    MultipleResultsError,
    NotFoundError,
    ensure_found,
    handle_sqlalchemy_errors,
)
from .scope import DbContext

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Entity(DeclarativeBase):
    """Declarative base with save/delete/find operations.

    Subclasses must declare a single-column primary key. An entity whose
    primary key is ``None`` has not been persisted yet.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    # -- identity -----------------------------------------------------------

    @classmethod
    def _mapper(cls) -> Mapper[Any]:
        return sa.inspect(cls)

    @classmethod
    def _pk_column(cls) -> sa.Column[Any]:
        primary_key = cls._mapper().primary_key
        if len(primary_key) != 1:
            raise TypeError(f"{cls.__name__} must have exactly one primary key column")
        return primary_key[0]

    @classmethod
    def _pk_attribute(cls) -> str:
        return cls._mapper().get_property_by_column(cls._pk_column()).key

    @property
    def identity(self) -> Any:
        """Primary key value, ``None`` for entities not saved yet."""

        return getattr(self, self._pk_attribute())

    def to_dict(self) -> dict[str, Any]:
        return {attr.key: getattr(self, attr.key) for attr in self._mapper().column_attrs}

    def __repr__(self) -> str:
        fields = ", ".join(f"{key}={value!r}" for key, value in self.to_dict().items())
        return f"{type(self).__name__}({fields})"

    # -- instance operations ------------------------------------------------

    def save(self, ctx: DbContext) -> Self:
        """Insert the entity when it has no id yet, otherwise update its row.

        Returns the instance attached to the scope's session: ``self`` for
        inserts and entities already loaded in this scope, the merged copy
        for entities carried over from an earlier scope.
        """

        if self.identity is None:
            return self.create(ctx)

        session = ctx.session
        entity = type(self).__name__
        state = sa.inspect(self)
        with handle_sqlalchemy_errors(entity=entity):
            if state.session is session:
                session.flush()
                return self
            ensure_found(
                session.get(type(self), self.identity),
                entity=entity,
                identifier=self.identity,
            )
            merged = session.merge(self)
            session.flush()
        return merged

    def create(self, ctx: DbContext) -> Self:
        """Always insert, also for entities carrying a preassigned id."""

        session = ctx.session
        with handle_sqlalchemy_errors(entity=type(self).__name__):
            session.add(self)
            session.flush()
        return self

    def delete(self, ctx: DbContext) -> None:
        if self.identity is None:
            raise EntityStateError(f"{type(self).__name__} has not been saved yet")
        type(self).delete_by_id(ctx, self.identity)

    def reload(self, ctx: DbContext) -> Self:
        """Overwrite all column values with what the database currently holds."""

        if self.identity is None:
            raise EntityStateError(f"{type(self).__name__} has not been saved yet")
        session = ctx.session
        entity = type(self).__name__
        with handle_sqlalchemy_errors(entity=entity):
            if sa.inspect(self).session is session:
                session.refresh(self)
                return self
            # a copy already in the identity map would otherwise be returned as is
            fresh = ensure_found(
                session.get(type(self), self.identity, populate_existing=True),
                entity=entity,
                identifier=self.identity,
            )
        for key, value in fresh.to_dict().items():
            setattr(self, key, value)
        return self

    # -- class operations ---------------------------------------------------

    @classmethod
    def _conditions(
        cls, clauses: tuple[Any, ...], criteria: dict[str, Any]
    ) -> list[sa.ColumnElement[bool]]:
        columns = {attr.key for attr in cls._mapper().column_attrs}
        conditions: list[sa.ColumnElement[bool]] = list(clauses)
        for key, value in criteria.items():
            if key not in columns:
                raise ValueError(f"{cls.__name__} has no column '{key}'")
            conditions.append(getattr(cls, key) == value)
        return conditions

    @classmethod
    def find_all(cls, ctx: DbContext) -> list[Self]:
        stmt = sa.select(cls).order_by(cls._pk_column())
        with handle_sqlalchemy_errors(entity=cls.__name__):
            return list(ctx.session.scalars(stmt))

    @classmethod
    def find_by_id(cls, ctx: DbContext, identity: Any) -> Self | None:
        with handle_sqlalchemy_errors(entity=cls.__name__):
            return ctx.session.get(cls, identity)

    @classmethod
    def get_by_id(cls, ctx: DbContext, identity: Any) -> Self:
        return ensure_found(cls.find_by_id(ctx, identity), entity=cls.__name__, identifier=identity)

    @classmethod
    def find_by(cls, ctx: DbContext, *clauses: Any, **criteria: Any) -> list[Self]:
        """Return rows matching all ``clauses`` and ``column=value`` criteria."""

        stmt = (
            sa.select(cls)
            .where(*cls._conditions(clauses, criteria))
            .order_by(cls._pk_column())
        )
        with handle_sqlalchemy_errors(entity=cls.__name__):
            return list(ctx.session.scalars(stmt))

    @classmethod
    def get_by(cls, ctx: DbContext, *clauses: Any, **criteria: Any) -> Self:
        """Like :meth:`find_by` but requires exactly one match."""

        stmt = (
            sa.select(cls)
            .where(*cls._conditions(clauses, criteria))
            .order_by(cls._pk_column())
            .limit(2)
        )
        with handle_sqlalchemy_errors(entity=cls.__name__):
            rows = list(ctx.session.scalars(stmt))
        if not rows:
            raise NotFoundError(f"{cls.__name__} matching {criteria or clauses} not found")
        if len(rows) > 1:
            raise MultipleResultsError(
                f"{cls.__name__} matching {criteria or clauses} is not unique"
            )
        return rows[0]

    @classmethod
    def count(cls, ctx: DbContext, *clauses: Any, **criteria: Any) -> int:
        stmt = (
            sa.select(sa.func.count())
            .select_from(cls)
            .where(*cls._conditions(clauses, criteria))
        )
        with handle_sqlalchemy_errors(entity=cls.__name__):
            return ctx.session.execute(stmt).scalar_one()

    @classmethod
    def exists_any(cls, ctx: DbContext, *clauses: Any, **criteria: Any) -> bool:
        return cls.count(ctx, *clauses, **criteria) > 0

    @classmethod
    def exists_by_id(cls, ctx: DbContext, identity: Any) -> bool:
        return cls.count(ctx, cls._pk_column() == identity) > 0

    @classmethod
    def delete_all(cls, ctx: DbContext) -> int:
        return cls.delete_by(ctx)

    @classmethod
    def delete_by_id(cls, ctx: DbContext, identity: Any) -> int:
        return cls.delete_by(ctx, cls._pk_column() == identity)

    @classmethod
    def delete_by(cls, ctx: DbContext, *clauses: Any, **criteria: Any) -> int:
        """Delete matching rows and return how many were removed.

        Rows go through the session so that instances already loaded in the
        scope are marked deleted too.
        """

        session = ctx.session
        stmt = sa.select(cls).where(*cls._conditions(clauses, criteria))
        with handle_sqlalchemy_errors(entity=cls.__name__):
            doomed = list(session.scalars(stmt))
            for entity in doomed:
                session.delete(entity)
            session.flush()
        return len(doomed)


__all__ = ["Entity", "NAMING_CONVENTION"]
