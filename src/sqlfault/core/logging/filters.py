# src/sqlfault/core/logging/filters.py
"""
Logging filters

- RequestIdFilter: guarantees every LogRecord has a ``request_id`` attribute,
  read from a contextvar that RequestIDMiddleware (or a job runner) sets.
- SQLAnnotationFilter: when a record carries an exception annotated by
  sqlfault, copies the query, its parameters and the context snapshot onto
  the record so formatters can emit them as fields.

The request id lives in a ``contextvars.ContextVar`` so it follows asyncio
tasks across awaits. QueryContext.snapshot() reads the same variable, which
is how a failed query ends up tagged with the request that issued it.

Wiring (builder.py):
     "filters": {
         "request_id": {"()": RequestIdFilter},
         "sql_annotation": {"()": SQLAnnotationFilter},
     },
     "handlers": {
         "console": {"class": "logging.StreamHandler", "filters": ["request_id", "sql_annotation"], ...}
     }
"""

import logging
from logging import LogRecord
import contextvars

from ...exceptions.annotate import get, get_context
from ...params import describe_params

_request_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


def set_request_id(request_id: str | None):
    """
    Set the request id in the current context.

    Returns:
        token: contextvars.Token to pass to reset_request_id(token)
    """
    return _request_id_ctx.set(request_id)


def reset_request_id(token):
    _request_id_ctx.reset(token)


def get_request_id() -> str | None:
    return _request_id_ctx.get()


class RequestIdFilter(logging.Filter):
    """
    Set ``record.request_id`` to, in order of preference:
      * a value passed explicitly via ``extra={"request_id": ...}``
      * the contextvar value
      * the sentinel "-" so ``%(request_id)s`` never raises KeyError
    """

    def filter(self, record: LogRecord) -> bool:
        record.request_id = (
            getattr(record, "request_id", None) or get_request_id() or "-"
        )
        return True


class SQLAnnotationFilter(logging.Filter):
    """
    Lift sqlfault annotations from ``record.exc_info`` onto the record.

    Adds (only when an annotation is found and the attribute is not already set):
      - sql: the failing statement text
      - sql_params: its parameters rendered with describe_params()
      - sql_context: the merged context snapshot, when one was attached
    Records without exc_info pass through unchanged.
    """

    def filter(self, record: LogRecord) -> bool:
        exc = record.exc_info[1] if record.exc_info else None
        if exc is None or hasattr(record, "sql"):
            return True

        query, parameters, found = get(exc)
        if not found:
            return True

        record.sql = query
        record.sql_params = describe_params(parameters)
        context = get_context(exc)
        if context:
            record.sql_context = context
        return True


__all__ = [
    "set_request_id",
    "reset_request_id",
    "get_request_id",
    "RequestIdFilter",
    "SQLAnnotationFilter",
]
