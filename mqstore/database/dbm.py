"""
Connection manager for the persistence layer.

Owns the bounded SQLAlchemy async engine pool. Every store acquires its
connection through ``read``/``write``/``stream`` here, so this is also the
one place where driver failures become ``BackingStoreError``.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, AsyncIterator, Iterator, Mapping, Sequence

from sqlalchemy import event, text
from sqlalchemy.engine import Result, RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.sql.elements import ClauseElement, TextClause

from mqstore.config.db_url import dialect_of, sanitize_url_for_log
from mqstore.config.settings import Settings
from mqstore.errors import BackingStoreError

logger = logging.getLogger(__name__)

Params = Mapping[str, Any] | Sequence[Mapping[str, Any]] | None

SQLITE_BUSY_TIMEOUT_MS = 5_000


@contextmanager
def backing_store_errors() -> Iterator[None]:
    """Re-raise driver and SQLAlchemy failures as ``BackingStoreError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        raise BackingStoreError(str(exc), orig=exc) from exc
    except OSError as exc:
        # connection refused / DNS failures surface from the driver unwrapped
        raise BackingStoreError(str(exc), orig=exc) from exc


def _check_statement(query: Any) -> None:
    if isinstance(query, str):
        raise TypeError("Raw SQL strings are disallowed. Use sqlalchemy.text().")
    if not isinstance(query, (TextClause, ClauseElement)):
        raise TypeError("Query must be a SQLAlchemy TextClause or ClauseElement.")


def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
    # Per-connection pragmas; WAL lets readers stream while a writer commits.
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    finally:
        cursor.close()


class DBM:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.url = settings.database.resolved_url()
        self.dialect = dialect_of(self.url)
        self._engine: AsyncEngine | None = None

    @property
    def started(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("DBM.start() has not been called")
        return self._engine

    def _engine_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "echo": self.settings.database.echo,
            "future": True,
        }
        if self.dialect == "sqlite":
            return kwargs
        pool = self.settings.pool
        kwargs.update(
            pool_size=pool.size,
            max_overflow=pool.max_overflow,
            pool_timeout=pool.timeout,
            pool_recycle=pool.recycle,
            pool_pre_ping=True,
        )
        return kwargs

    async def start(self) -> None:
        """Create the pool and check that the database answers."""
        if self._engine is not None:
            return
        engine = create_async_engine(self.url, **self._engine_kwargs())
        if self.dialect == "sqlite":
            event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)
        self._engine = engine
        logger.info(
            {
                "mqstore_db": {
                    "event": "pool_started",
                    "url": sanitize_url_for_log(self.url),
                    "pool_size": None if self.dialect == "sqlite" else self.settings.pool.size,
                }
            }
        )
        try:
            await self.ping()
        except BackingStoreError:
            await self.dispose()
            raise

    async def ping(self) -> None:
        with backing_store_errors():
            async with self.engine.connect() as conn:
                await conn.execute(text("select 1"))
        logger.debug({"mqstore_db": {"event": "ping_ok"}})

    async def read(self, query: Any, params: Params = None) -> list[RowMapping]:
        """Execute a read-only statement and return all rows."""
        _check_statement(query)
        with backing_store_errors():
            async with self.engine.connect() as conn:
                result: Result = await conn.execute(query, params or {})
                return list(result.mappings().all())

    async def write(self, query: Any, params: Params = None) -> int:
        """Execute a write statement inside a transaction and return row count."""
        _check_statement(query)
        with backing_store_errors():
            async with self.engine.begin() as conn:
                if params:
                    result: Result = await conn.execute(query, params)
                else:
                    result = await conn.execute(query)
                return result.rowcount or 0

    async def stream(self, query: Any, params: Params = None) -> AsyncIterator[RowMapping]:
        """Yield rows from a server-side cursor.

        The pooled connection is held until the consumer finishes iterating or
        closes the iterator.
        """
        _check_statement(query)
        with backing_store_errors():
            async with self.engine.connect() as conn:
                result = await conn.stream(query, params or {})
                async for row in result.mappings():
                    yield row

    async def dispose(self) -> None:
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        with backing_store_errors():
            await engine.dispose()
        logger.info({"mqstore_db": {"event": "pool_disposed"}})


__all__ = ["DBM", "backing_store_errors"]
