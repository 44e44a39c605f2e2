"""
sqlfault: attach the failing query and its parameters to data-access errors.

    from sqlfault import execute, get, has_cause

    try:
        execute(db, "INSERT INTO t VALUES (?)", 42)
    except Exception as exc:
        query, params, found = get(exc)
"""

from .exceptions import (
    SQLFaultError,
    SQLAnnotatedError,
    ContextAnnotatedError,
    ContextError,
    ContextCancelledError,
    DeadlineExceededError,
    StatementClosedError,
    SQLLookup,
    wrap,
    with_sql,
    with_context,
    decorate,
    iter_chain,
    find_cause,
    has_cause,
    get,
    get_context,
)
from .core.context import QueryContext
from .params import ParamKind, kind_of, describe_param, describe_params
from .operations import (
    execute,
    execute_context,
    query,
    query_context,
    query_row,
    query_row_context,
    prepare,
    prepare_context,
    PreparedStatement,
)

__all__ = [
    "SQLFaultError",
    "SQLAnnotatedError",
    "ContextAnnotatedError",
    "ContextError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "StatementClosedError",
    "SQLLookup",
    "wrap",
    "with_sql",
    "with_context",
    "decorate",
    "iter_chain",
    "find_cause",
    "has_cause",
    "get",
    "get_context",
    "QueryContext",
    "ParamKind",
    "kind_of",
    "describe_param",
    "describe_params",
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
