"""
Instrumented data-access operations.

Each function delegates to a driver capability and returns its result
untouched. If the delegate raises, the exception is re-raised annotated with
the query text and parameters (and, for the ``*_context`` variants, a
snapshot of the QueryContext metadata):

    try:
        execute(conn, "INSERT INTO t VALUES (?)", 42)
    except Exception as exc:
        get(exc)                          # ("INSERT INTO t VALUES (?)", (42,), True)
        has_cause(exc, IntegrityError)    # True

Delegates are anything that satisfies the small protocols below; see
sqlfault.drivers.sqla for adapters over SQLAlchemy connections.
Only ``Exception`` subclasses are annotated. KeyboardInterrupt and friends
propagate as they are.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence, runtime_checkable

from .core.context import QueryContext
from .exceptions.annotate import Annotator, decorate, with_context, with_sql

logger = logging.getLogger(__name__)


# =================================================================================================================
# Capabilities consumed
# =================================================================================================================

@runtime_checkable
class RowHandle(Protocol):
    """
    Handle to a result expected to hold at most one row.

    ``err()`` reports a failure already known to the handle. Some failures
    ("no rows") only surface once the row is consumed, so ``scan()`` must
    raise them. ``scan()`` must be idempotent: repeated calls return the same
    values or raise the same failure.
    """

    def err(self) -> BaseException | None: ...

    def scan(self) -> Sequence[Any]: ...


class Executor(Protocol):
    def execute(self, query: str, *params: Any) -> Any: ...


class ContextExecutor(Protocol):
    def execute_context(self, ctx: QueryContext, query: str, *params: Any) -> Any: ...


class Querier(Protocol):
    def query(self, query: str, *params: Any) -> Any: ...


class ContextQuerier(Protocol):
    def query_context(self, ctx: QueryContext, query: str, *params: Any) -> Any: ...


class RowQuerier(Protocol):
    def query_row(self, query: str, *params: Any) -> RowHandle: ...


class ContextRowQuerier(Protocol):
    def query_row_context(self, ctx: QueryContext, query: str, *params: Any) -> RowHandle: ...


class Statement(Protocol):
    """A compiled statement owned by a PreparedStatement."""

    def execute(self, *params: Any) -> Any: ...

    def execute_context(self, ctx: QueryContext, *params: Any) -> Any: ...

    def query(self, *params: Any) -> Any: ...

    def query_context(self, ctx: QueryContext, *params: Any) -> Any: ...

    def query_row(self, *params: Any) -> RowHandle: ...

    def query_row_context(self, ctx: QueryContext, *params: Any) -> RowHandle: ...

    def close(self) -> None: ...


class Preparer(Protocol):
    def prepare(self, query: str) -> Statement: ...


class ContextPreparer(Protocol):
    def prepare_context(self, ctx: QueryContext, query: str) -> Statement: ...


# =================================================================================================================
# Helpers
# =================================================================================================================

def annotators_for(query: str, params: Sequence[Any], ctx: QueryContext | None = None) -> tuple[Annotator, ...]:
    """Annotators for a failed call: context snapshot innermost, query outermost."""
    if ctx is None:
        return (with_sql(query, *params),)
    return (with_context(ctx), with_sql(query, *params))


def annotate_failure(
    exc: BaseException,
    operation: str,
    query: str,
    params: Sequence[Any] = (),
    ctx: QueryContext | None = None,
) -> BaseException:
    """Build the annotated error for ``exc`` and record it at DEBUG."""
    logger.debug(
        "sqlfault.annotated",
        extra={
            "operation": operation,
            "sql": query,
            "param_count": len(params),
            "error_type": type(exc).__name__,
        },
    )
    return decorate(exc, *annotators_for(query, params, ctx))


def settle_row(row: RowHandle) -> BaseException | None:
    """
    Return the failure carried by ``row``, forcing deferred ones out.

    A clean ``err()`` is not enough: "no rows" is usually only reported on
    consumption, so ``scan()`` is attempted once and whatever it raises is
    the row's failure.
    """
    err = row.err()
    if err is not None:
        return err
    try:
        row.scan()
    except Exception as exc:
        return exc
    return None


def _call(operation: str, query: str, params: Sequence[Any], ctx: QueryContext | None, fn, *args: Any):
    try:
        return fn(*args)
    except Exception as exc:
        raise annotate_failure(exc, operation, query, params, ctx)


def _row(operation: str, query: str, params: Sequence[Any], ctx: QueryContext | None, fn, *args: Any) -> RowHandle:
    row = _call(operation, query, params, ctx, fn, *args)
    err = settle_row(row)
    if err is not None:
        raise annotate_failure(err, operation, query, params, ctx)
    return row


# =================================================================================================================
# Instrumented operations
# =================================================================================================================

def execute(db: Executor, query: str, *params: Any) -> Any:
    """Run a statement that returns no rows."""
    return _call("execute", query, params, None, db.execute, query, *params)


def execute_context(ctx: QueryContext, db: ContextExecutor, query: str, *params: Any) -> Any:
    return _call("execute_context", query, params, ctx, db.execute_context, ctx, query, *params)


def query(db: Querier, query: str, *params: Any) -> Any:
    """Run a statement that returns rows; the delegate's row sequence is returned as is."""
    return _call("query", query, params, None, db.query, query, *params)


def query_context(ctx: QueryContext, db: ContextQuerier, query: str, *params: Any) -> Any:
    return _call("query_context", query, params, ctx, db.query_context, ctx, query, *params)


def query_row(db: RowQuerier, query: str, *params: Any) -> RowHandle:
    """
    Run a statement expected to return at most one row.

    The returned handle has already been settled: any failure, including one
    the delegate defers until consumption, is raised here, annotated.
    """
    return _row("query_row", query, params, None, db.query_row, query, *params)


def query_row_context(ctx: QueryContext, db: ContextRowQuerier, query: str, *params: Any) -> RowHandle:
    return _row("query_row_context", query, params, ctx, db.query_row_context, ctx, query, *params)


def prepare(db: Preparer, query: str) -> "PreparedStatement":
    """
    Compile ``query`` for repeated use. The caller owns the returned
    statement and must close it (directly or with ``with``).
    """
    stmt = _call("prepare", query, (), None, db.prepare, query)
    return PreparedStatement(stmt, query)


def prepare_context(ctx: QueryContext, db: ContextPreparer, query: str) -> "PreparedStatement":
    """``ctx`` governs the preparation only, not later executions of the statement."""
    stmt = _call("prepare_context", query, (), ctx, db.prepare_context, ctx, query)
    return PreparedStatement(stmt, query)


# =================================================================================================================
# Prepared statements
# =================================================================================================================

class PreparedStatement:
    """
    A compiled statement plus the query text it was prepared from.

    Every operation annotates failures with that query text and the
    parameters of the call. ``close()`` releases the compiled statement; a
    release failure is annotated with the query text and no parameters, the
    same way ``prepare`` annotates. Closing twice or using the statement
    after ``close()`` is left to the driver to reject.
    """

    __slots__ = ("_stmt", "_query")

    def __init__(self, stmt: Statement, query: str):
        self._stmt = stmt
        self._query = query

    @property
    def query_text(self) -> str:
        return self._query

    def execute(self, *params: Any) -> Any:
        return _call("stmt.execute", self._query, params, None, self._stmt.execute, *params)

    def execute_context(self, ctx: QueryContext, *params: Any) -> Any:
        return _call("stmt.execute_context", self._query, params, ctx, self._stmt.execute_context, ctx, *params)

    def query(self, *params: Any) -> Any:
        return _call("stmt.query", self._query, params, None, self._stmt.query, *params)

    def query_context(self, ctx: QueryContext, *params: Any) -> Any:
        return _call("stmt.query_context", self._query, params, ctx, self._stmt.query_context, ctx, *params)

    def query_row(self, *params: Any) -> RowHandle:
        return _row("stmt.query_row", self._query, params, None, self._stmt.query_row, *params)

    def query_row_context(self, ctx: QueryContext, *params: Any) -> RowHandle:
        return _row("stmt.query_row_context", self._query, params, ctx, self._stmt.query_row_context, ctx, *params)

    def close(self) -> None:
        _call("stmt.close", self._query, (), None, self._stmt.close)

    def __enter__(self) -> "PreparedStatement":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PreparedStatement(query={self._query!r})"


__all__ = [
    "RowHandle",
    "Executor",
    "ContextExecutor",
    "Querier",
    "ContextQuerier",
    "RowQuerier",
    "ContextRowQuerier",
    "Statement",
    "Preparer",
    "ContextPreparer",
    "annotators_for",
    "annotate_failure",
    "settle_row",
    "execute",
    "execute_context",
    "query",
    "query_context",
    "query_row",
    "query_row_context",
    "prepare",
    "prepare_context",
    "PreparedStatement",
]
