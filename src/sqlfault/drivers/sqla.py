"""
Capability adapters over SQLAlchemy connections.

``ConnectionDriver`` (sync ``Connection``) and ``AsyncConnectionDriver``
(``AsyncConnection``) expose the methods sqlfault.operations / sqlfault.aio
expect, passing statements straight to the DB-API driver through
``exec_driver_sql``. Placeholders therefore follow the dialect's paramstyle
("?" for SQLite, "%s" for psycopg, ...) and parameters are positional.

    with engine.connect() as conn:
        db = ConnectionDriver(conn)
        row = query_row(db, "SELECT name FROM users WHERE id = ?", user_id)
        (name,) = row.scan()

Notes:
  - DB-API has no portable "prepare" call. Statements returned by prepare()
    re-submit their query text and rely on the driver's statement cache
    (sqlite3 and asyncpg both keep one per connection).
  - Context-aware methods refuse to start when the context is already done.
    The async adapter also bounds the call by ``ctx.remaining()``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncConnection

from ..core.context import QueryContext
from ..exceptions.base import ContextError, DeadlineExceededError, StatementClosedError

NO_ROWS_MESSAGE = "No row was found when one was required"


def _bind(params: Sequence[Any]) -> tuple[Any, ...] | None:
    return tuple(params) if params else None


# =================================================================================================================
# Single-row handles
# =================================================================================================================

class ResultRow:
    """
    Deferred single-row result.

    Holds either the failure raised while executing, or the cursor result.
    The first ``scan()`` fetches the first row (closing the cursor) and
    caches it; an empty result becomes ``NoResultFound``. Later calls return
    the cached row or raise the cached failure.
    """

    __slots__ = ("_result", "_error", "_error_tb", "_row", "_settled")

    def __init__(self, result: CursorResult | None = None, error: BaseException | None = None):
        self._result = result
        self._error = error
        self._error_tb = error.__traceback__ if error is not None else None
        self._row: tuple[Any, ...] | None = None
        self._settled = False

    def err(self) -> BaseException | None:
        return self._error

    def _settle(self) -> None:
        self._settled = True
        if self._error is not None or self._result is None:
            return
        try:
            row = self._result.first()
        except Exception as exc:
            self._error = exc
            self._error_tb = exc.__traceback__
            return
        if row is None:
            self._error = NoResultFound(NO_ROWS_MESSAGE)
        else:
            self._row = tuple(row)

    def scan(self) -> tuple[Any, ...]:
        if not self._settled:
            self._settle()
        if self._error is not None:
            # restart from the captured traceback so repeated scans do not stack frames
            raise self._error.with_traceback(self._error_tb)
        return self._row


class AsyncResultRow(ResultRow):
    """ResultRow for AsyncConnection results, which arrive fully buffered."""

    __slots__ = ()

    async def scan(self) -> tuple[Any, ...]:  # type: ignore[override]
        return ResultRow.scan(self)


# =================================================================================================================
# Sync adapter
# =================================================================================================================

class ConnectionDriver:
    def __init__(self, conn: Connection):
        self._conn = conn

    @property
    def connection(self) -> Connection:
        return self._conn

    def execute(self, query: str, *params: Any) -> CursorResult:
        return self._conn.exec_driver_sql(query, _bind(params))

    def execute_context(self, ctx: QueryContext, query: str, *params: Any) -> CursorResult:
        ctx.raise_if_done()
        return self.execute(query, *params)

    def query(self, query: str, *params: Any) -> CursorResult:
        return self._conn.exec_driver_sql(query, _bind(params))

    def query_context(self, ctx: QueryContext, query: str, *params: Any) -> CursorResult:
        ctx.raise_if_done()
        return self.query(query, *params)

    def query_row(self, query: str, *params: Any) -> ResultRow:
        # Failures are reported through the handle, not raised
        try:
            result = self._conn.exec_driver_sql(query, _bind(params))
        except Exception as exc:
            return ResultRow(error=exc)
        return ResultRow(result)

    def query_row_context(self, ctx: QueryContext, query: str, *params: Any) -> ResultRow:
        err = ctx.err()
        if err is not None:
            return ResultRow(error=err)
        return self.query_row(query, *params)

    def prepare(self, query: str) -> "DriverStatement":
        return DriverStatement(self, query)

    def prepare_context(self, ctx: QueryContext, query: str) -> "DriverStatement":
        ctx.raise_if_done()
        return self.prepare(query)


class DriverStatement:
    """Statement bound to a ConnectionDriver. Using or closing it after close() raises StatementClosedError."""

    def __init__(self, driver: ConnectionDriver, query: str):
        self._driver = driver
        self._query = query
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StatementClosedError()

    def execute(self, *params: Any) -> CursorResult:
        self._check_open()
        return self._driver.execute(self._query, *params)

    def execute_context(self, ctx: QueryContext, *params: Any) -> CursorResult:
        self._check_open()
        return self._driver.execute_context(ctx, self._query, *params)

    def query(self, *params: Any) -> CursorResult:
        self._check_open()
        return self._driver.query(self._query, *params)

    def query_context(self, ctx: QueryContext, *params: Any) -> CursorResult:
        self._check_open()
        return self._driver.query_context(ctx, self._query, *params)

    def query_row(self, *params: Any) -> ResultRow:
        if self._closed:
            return ResultRow(error=StatementClosedError())
        return self._driver.query_row(self._query, *params)

    def query_row_context(self, ctx: QueryContext, *params: Any) -> ResultRow:
        if self._closed:
            return ResultRow(error=StatementClosedError())
        return self._driver.query_row_context(ctx, self._query, *params)

    def close(self) -> None:
        self._check_open()
        self._closed = True


# =================================================================================================================
# Async adapter
# =================================================================================================================

async def _bounded(ctx: QueryContext, fn, *args: Any) -> Any:
    """Run ``fn(*args)`` unless ``ctx`` is done, giving up when its deadline passes."""
    ctx.raise_if_done()
    remaining = ctx.remaining()
    if remaining is None:
        return await fn(*args)
    try:
        return await asyncio.wait_for(fn(*args), timeout=remaining)
    except asyncio.TimeoutError as exc:
        raise DeadlineExceededError() from exc


class AsyncConnectionDriver:
    def __init__(self, conn: AsyncConnection):
        self._conn = conn

    @property
    def connection(self) -> AsyncConnection:
        return self._conn

    async def execute(self, query: str, *params: Any) -> CursorResult:
        return await self._conn.exec_driver_sql(query, _bind(params))

    async def execute_context(self, ctx: QueryContext, query: str, *params: Any) -> CursorResult:
        return await _bounded(ctx, self.execute, query, *params)

    async def query(self, query: str, *params: Any) -> CursorResult:
        return await self._conn.exec_driver_sql(query, _bind(params))

    async def query_context(self, ctx: QueryContext, query: str, *params: Any) -> CursorResult:
        return await _bounded(ctx, self.query, query, *params)

    async def query_row(self, query: str, *params: Any) -> AsyncResultRow:
        try:
            result = await self._conn.exec_driver_sql(query, _bind(params))
        except Exception as exc:
            return AsyncResultRow(error=exc)
        return AsyncResultRow(result)

    async def query_row_context(self, ctx: QueryContext, query: str, *params: Any) -> AsyncResultRow:
        try:
            return await _bounded(ctx, self.query_row, query, *params)
        except ContextError as exc:
            return AsyncResultRow(error=exc)

    async def prepare(self, query: str) -> "AsyncDriverStatement":
        return AsyncDriverStatement(self, query)

    async def prepare_context(self, ctx: QueryContext, query: str) -> "AsyncDriverStatement":
        ctx.raise_if_done()
        return await self.prepare(query)


class AsyncDriverStatement:
    def __init__(self, driver: AsyncConnectionDriver, query: str):
        self._driver = driver
        self._query = query
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StatementClosedError()

    async def execute(self, *params: Any) -> CursorResult:
        self._check_open()
        return await self._driver.execute(self._query, *params)

    async def execute_context(self, ctx: QueryContext, *params: Any) -> CursorResult:
        self._check_open()
        return await self._driver.execute_context(ctx, self._query, *params)

    async def query(self, *params: Any) -> CursorResult:
        self._check_open()
        return await self._driver.query(self._query, *params)

    async def query_context(self, ctx: QueryContext, *params: Any) -> CursorResult:
        self._check_open()
        return await self._driver.query_context(ctx, self._query, *params)

    async def query_row(self, *params: Any) -> AsyncResultRow:
        if self._closed:
            return AsyncResultRow(error=StatementClosedError())
        return await self._driver.query_row(self._query, *params)

    async def query_row_context(self, ctx: QueryContext, *params: Any) -> AsyncResultRow:
        if self._closed:
            return AsyncResultRow(error=StatementClosedError())
        return await self._driver.query_row_context(ctx, self._query, *params)

    async def close(self) -> None:
        self._check_open()
        self._closed = True


__all__ = [
    "NO_ROWS_MESSAGE",
    "ResultRow",
    "AsyncResultRow",
    "ConnectionDriver",
    "DriverStatement",
    "AsyncConnectionDriver",
    "AsyncDriverStatement",
]
