"""
Instrumented operations for awaitable delegates (asyncio drivers).

Same contract as sqlfault.operations: results pass through untouched,
failures are re-raised annotated. ``asyncio.CancelledError`` is a
BaseException and is never annotated, so task cancellation behaves exactly
as it would without this layer.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, Sequence

from .core.context import QueryContext
from .operations import annotate_failure


class AsyncRowHandle(Protocol):
    """Async counterpart of operations.RowHandle: ``scan()`` is awaitable and idempotent."""

    def err(self) -> BaseException | None: ...

    async def scan(self) -> Sequence[Any]: ...


class AsyncExecutor(Protocol):
    async def execute(self, query: str, *params: Any) -> Any: ...


class AsyncContextExecutor(Protocol):
    async def execute_context(self, ctx: QueryContext, query: str, *params: Any) -> Any: ...


class AsyncQuerier(Protocol):
    async def query(self, query: str, *params: Any) -> Any: ...


class AsyncContextQuerier(Protocol):
    async def query_context(self, ctx: QueryContext, query: str, *params: Any) -> Any: ...


class AsyncRowQuerier(Protocol):
    async def query_row(self, query: str, *params: Any) -> AsyncRowHandle: ...


class AsyncContextRowQuerier(Protocol):
    async def query_row_context(self, ctx: QueryContext, query: str, *params: Any) -> AsyncRowHandle: ...


class AsyncStatement(Protocol):
    async def execute(self, *params: Any) -> Any: ...

    async def execute_context(self, ctx: QueryContext, *params: Any) -> Any: ...

    async def query(self, *params: Any) -> Any: ...

    async def query_context(self, ctx: QueryContext, *params: Any) -> Any: ...

    async def query_row(self, *params: Any) -> AsyncRowHandle: ...

    async def query_row_context(self, ctx: QueryContext, *params: Any) -> AsyncRowHandle: ...

    async def close(self) -> None: ...


class AsyncPreparer(Protocol):
    async def prepare(self, query: str) -> AsyncStatement: ...


class AsyncContextPreparer(Protocol):
    async def prepare_context(self, ctx: QueryContext, query: str) -> AsyncStatement: ...


# -----------------------
# Helpers
# -----------------------

async def settle_row(row: AsyncRowHandle) -> BaseException | None:
    """Async counterpart of operations.settle_row."""
    err = row.err()
    if err is not None:
        return err
    try:
        await row.scan()
    except Exception as exc:
        return exc
    return None


async def _call(
    operation: str,
    query: str,
    params: Sequence[Any],
    ctx: QueryContext | None,
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
) -> Any:
    try:
        return await fn(*args)
    except Exception as exc:
        raise annotate_failure(exc, operation, query, params, ctx)


async def _row(
    operation: str,
    query: str,
    params: Sequence[Any],
    ctx: QueryContext | None,
    fn: Callable[..., Awaitable[AsyncRowHandle]],
    *args: Any,
) -> AsyncRowHandle:
    row = await _call(operation, query, params, ctx, fn, *args)
    err = await settle_row(row)
    if err is not None:
        raise annotate_failure(err, operation, query, params, ctx)
    return row


# -----------------------
# Instrumented operations
# -----------------------

async def execute(db: AsyncExecutor, query: str, *params: Any) -> Any:
    return await _call("execute", query, params, None, db.execute, query, *params)


async def execute_context(ctx: QueryContext, db: AsyncContextExecutor, query: str, *params: Any) -> Any:
    return await _call("execute_context", query, params, ctx, db.execute_context, ctx, query, *params)


async def query(db: AsyncQuerier, query: str, *params: Any) -> Any:
    return await _call("query", query, params, None, db.query, query, *params)


async def query_context(ctx: QueryContext, db: AsyncContextQuerier, query: str, *params: Any) -> Any:
    return await _call("query_context", query, params, ctx, db.query_context, ctx, query, *params)


async def query_row(db: AsyncRowQuerier, query: str, *params: Any) -> AsyncRowHandle:
    """Returns an already settled handle; deferred failures are raised here, annotated."""
    return await _row("query_row", query, params, None, db.query_row, query, *params)


async def query_row_context(ctx: QueryContext, db: AsyncContextRowQuerier, query: str, *params: Any) -> AsyncRowHandle:
    return await _row("query_row_context", query, params, ctx, db.query_row_context, ctx, query, *params)


async def prepare(db: AsyncPreparer, query: str) -> "AsyncPreparedStatement":
    stmt = await _call("prepare", query, (), None, db.prepare, query)
    return AsyncPreparedStatement(stmt, query)


async def prepare_context(ctx: QueryContext, db: AsyncContextPreparer, query: str) -> "AsyncPreparedStatement":
    stmt = await _call("prepare_context", query, (), ctx, db.prepare_context, ctx, query)
    return AsyncPreparedStatement(stmt, query)


class AsyncPreparedStatement:
    """Async counterpart of operations.PreparedStatement; use with ``async with``."""

    __slots__ = ("_stmt", "_query")

    def __init__(self, stmt: AsyncStatement, query: str):
        self._stmt = stmt
        self._query = query

    @property
    def query_text(self) -> str:
        return self._query

    async def execute(self, *params: Any) -> Any:
        return await _call("stmt.execute", self._query, params, None, self._stmt.execute, *params)

    async def execute_context(self, ctx: QueryContext, *params: Any) -> Any:
        return await _call("stmt.execute_context", self._query, params, ctx, self._stmt.execute_context, ctx, *params)

    async def query(self, *params: Any) -> Any:
        return await _call("stmt.query", self._query, params, None, self._stmt.query, *params)

    async def query_context(self, ctx: QueryContext, *params: Any) -> Any:
        return await _call("stmt.query_context", self._query, params, ctx, self._stmt.query_context, ctx, *params)

    async def query_row(self, *params: Any) -> AsyncRowHandle:
        return await _row("stmt.query_row", self._query, params, None, self._stmt.query_row, *params)

    async def query_row_context(self, ctx: QueryContext, *params: Any) -> AsyncRowHandle:
        return await _row("stmt.query_row_context", self._query, params, ctx, self._stmt.query_row_context, ctx, *params)

    async def close(self) -> None:
        await _call("stmt.close", self._query, (), None, self._stmt.close)

    async def __aenter__(self) -> "AsyncPreparedStatement":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"AsyncPreparedStatement(query={self._query!r})"


__all__ = [
    "AsyncRowHandle",
    "AsyncExecutor",
    "AsyncContextExecutor",
    "AsyncQuerier",
    "AsyncContextQuerier",
    "AsyncRowQuerier",
    "AsyncContextRowQuerier",
    "AsyncStatement",
    "AsyncPreparer",
    "AsyncContextPreparer",
    "settle_row",
    "execute",
    "execute_context",
    "query",
    "query_context",
    "query_row",
    "query_row_context",
    "prepare",
    "prepare_context",
    "AsyncPreparedStatement",
]
