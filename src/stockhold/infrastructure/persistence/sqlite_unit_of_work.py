"""SQLite UnitOfWork: one ``BEGIN IMMEDIATE`` transaction on the shared file."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from stockhold.domain.repository.unit_of_work import UnitOfWork
from stockhold.infrastructure.persistence.sqlite_database import SqliteDatabase


class SqliteUnitOfWork(UnitOfWork):

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._db.transaction():
            yield
