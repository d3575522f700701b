"""Entities shared by the test suite."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from dbscope import Entity


class Person(Entity):
    __tablename__ = "person"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    age: Mapped[int] = mapped_column(nullable=False)


class Tag(Entity):
    """Entity with a natural (caller-assigned) primary key."""

    __tablename__ = "tag"

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    label: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
