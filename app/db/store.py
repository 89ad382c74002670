"""Generic data-store boundary used by the admin services.

Services never talk to SQLAlchemy or the hosted REST backend directly. They
build a `Query` and hand it to a `DataStore`, which performs one remote call per
operation. Joins across tables are assembled by the caller.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from sqlalchemy import Table, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db import session as db_session
from app.db.base import Base

logger = logging.getLogger(__name__)

Row = dict[str, Any]
UNIQUE_VIOLATION_SQLSTATE: str = "23505"


class DataStoreError(Exception):
    """Raised when a data-store call fails."""

    def __init__(self, message: str, *, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class UniqueViolationError(DataStoreError):
    """Raised when an insert collides with a unique key."""


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Tell unique-key collisions apart from NOT NULL or foreign-key failures."""
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate is not None:
        return sqlstate == UNIQUE_VIOLATION_SQLSTATE
    return str(exc.orig).startswith("UNIQUE constraint failed")


@dataclass(frozen=True)
class Query:
    """Immutable select description: table, columns, equality filters and ordering."""

    table: str
    columns: tuple[str, ...]
    filters: tuple[tuple[str, Any], ...] = field(default_factory=tuple)
    order_by: tuple[str, bool] | None = None

    def filter(self, column: str, value: Any) -> Query:
        return replace(self, filters=self.filters + ((column, value),))

    def order(self, column: str, *, descending: bool = False) -> Query:
        return replace(self, order_by=(column, descending))


class DataStore(ABC):
    """Async query interface over a remote table store."""

    @abstractmethod
    async def select(self, query: Query) -> list[Row]:
        """Return rows matching `query` in the requested order."""

    @abstractmethod
    async def insert(self, table: str, records: Iterable[Row]) -> list[Row]:
        """Insert records and return the stored rows."""

    @abstractmethod
    async def update(self, table: str, patch: Row, filters: Row) -> list[Row]:
        """Apply `patch` to rows equal to every `filters` entry."""

    @abstractmethod
    async def upsert(
        self,
        table: str,
        record: Row,
        *,
        on_conflict: str,
        update_columns: Iterable[str] | None = None,
    ) -> Row:
        """Insert `record`, or update the row sharing its `on_conflict` value."""


class SqlStore(DataStore):
    """DataStore backed by SQLAlchemy Core on the application metadata.

    Each call opens its own session and runs in a worker thread, so concurrent
    selects never share a connection.
    """

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        self._session_factory = session_factory or (lambda: db_session.SessionLocal())

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise DataStoreError(f"Unknown table: {name}", table=name)
        return table

    @staticmethod
    def _column(table: Table, name: str):
        try:
            return table.c[name]
        except KeyError as exc:
            raise DataStoreError(f"Unknown column: {table.name}.{name}", table=table.name) from exc

    def _run(self, table: str, work: Callable[[Session], list[Row]]) -> list[Row]:
        with self._session_factory() as db:
            try:
                rows = work(db)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                if _is_unique_violation(exc):
                    raise UniqueViolationError(str(exc.orig), table=table) from exc
                raise DataStoreError(str(exc.orig), table=table) from exc
            except SQLAlchemyError as exc:
                db.rollback()
                raise DataStoreError(str(exc), table=table) from exc
        return rows

    def _select_sync(self, query: Query) -> list[Row]:
        table = self._table(query.table)
        columns = [self._column(table, name) for name in query.columns]
        stmt = select(*columns)
        for column_name, value in query.filters:
            stmt = stmt.where(self._column(table, column_name) == value)
        if query.order_by is not None:
            column_name, descending = query.order_by
            column = self._column(table, column_name)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        return self._run(query.table, lambda db: [dict(row) for row in db.execute(stmt).mappings().all()])

    def _insert_sync(self, table_name: str, records: list[Row]) -> list[Row]:
        table = self._table(table_name)

        def work(db: Session) -> list[Row]:
            stored: list[Row] = []
            for record in records:
                result = db.execute(insert(table).values(**record).returning(*table.c))
                stored.append(dict(result.mappings().one()))
            return stored

        return self._run(table_name, work)

    def _update_sync(self, table_name: str, patch: Row, filters: Row) -> list[Row]:
        table = self._table(table_name)
        stmt = update(table).values(**patch)
        for column_name, value in filters.items():
            stmt = stmt.where(self._column(table, column_name) == value)
        stmt = stmt.returning(*table.c)
        return self._run(table_name, lambda db: [dict(row) for row in db.execute(stmt).mappings().all()])

    def _upsert_sync(self, table_name: str, record: Row, on_conflict: str, update_columns: list[str]) -> Row:
        table = self._table(table_name)

        def work(db: Session) -> list[Row]:
            dialect = db.get_bind().dialect.name
            if dialect == "postgresql":
                from sqlalchemy.dialects.postgresql import insert as dialect_insert
            elif dialect == "sqlite":
                from sqlalchemy.dialects.sqlite import insert as dialect_insert
            else:
                raise DataStoreError(f"Upsert is not supported on {dialect}", table=table_name)
            stmt = dialect_insert(table).values(**record)
            stmt = stmt.on_conflict_do_update(
                index_elements=[self._column(table, on_conflict)],
                set_={name: stmt.excluded[name] for name in update_columns},
            ).returning(*table.c)
            return [dict(db.execute(stmt).mappings().one())]

        return self._run(table_name, work)[0]

    async def select(self, query: Query) -> list[Row]:
        return await asyncio.to_thread(self._select_sync, query)

    async def insert(self, table: str, records: Iterable[Row]) -> list[Row]:
        return await asyncio.to_thread(self._insert_sync, table, list(records))

    async def update(self, table: str, patch: Row, filters: Row) -> list[Row]:
        return await asyncio.to_thread(self._update_sync, table, patch, filters)

    async def upsert(
        self,
        table: str,
        record: Row,
        *,
        on_conflict: str,
        update_columns: Iterable[str] | None = None,
    ) -> Row:
        columns = list(update_columns) if update_columns is not None else [name for name in record if name != on_conflict]
        return await asyncio.to_thread(self._upsert_sync, table, record, on_conflict, columns)


def get_store() -> DataStore:
    """Build the configured data store (`sql` or `rest`)."""
    backend = settings.data_backend.strip().lower()
    if backend == "rest":
        from app.db.rest_store import RestStore

        return RestStore(
            base_url=settings.rest_url,
            api_key=settings.rest_api_key,
            timeout=settings.rest_timeout_seconds,
        )
    if backend != "sql":
        logger.warning("Unknown DATA_BACKEND %r; falling back to sql.", settings.data_backend)
    return SqlStore()
