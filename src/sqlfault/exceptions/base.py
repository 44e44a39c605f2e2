"""
Exception types raised and returned by sqlfault.

Two kinds live here:

- annotation layers (``SQLAnnotatedError``, ``ContextAnnotatedError``) that
  sit on top of a driver's own exception and point back to it through
  ``__cause__``;
- the few errors this package produces itself (context cancellation and
  deadline expiry, closed statements).

A driver's exception is never changed or reclassified. Callers that matched
on it before annotation keep doing so via ``has_cause`` / ``find_cause``
(see annotate.py).
"""

from types import MappingProxyType
from typing import Any, Mapping, Sequence

from ..params import describe_params


class SQLFaultError(Exception):
    """Base exception for everything defined by sqlfault."""


# ------------------------
# Annotation layers
# ------------------------

class _AnnotationLayer(SQLFaultError):
    """
    Common behaviour of annotation layers.

    The wrapped exception is stored as ``cause`` and installed as
    ``__cause__`` so tracebacks print it and chain walks reach it.
    ``__suppress_context__`` keeps the implicit context out of the way: the
    explicit cause is the only link.
    """

    def __init__(self, cause: BaseException, *args: Any):
        if cause is None:
            raise TypeError(f"{type(self).__name__} requires a cause")
        super().__init__(cause, *args)
        self.__cause__ = cause
        self.__suppress_context__ = True

    @property
    def cause(self) -> BaseException:
        return self.args[0]


class SQLAnnotatedError(_AnnotationLayer):
    """
    A driver failure tagged with the query text and bound parameters.

    - cause: the exception raised by the data-access delegate
    - query: literal statement text submitted to the operation
    - parameters: positional values bound to the statement (tuple, may be empty)
    """

    def __init__(self, cause: BaseException, query: str, parameters: Sequence[Any] = ()):
        super().__init__(cause, query, tuple(parameters))

    @property
    def query(self) -> str:
        return self.args[1]

    @property
    def parameters(self) -> tuple[Any, ...]:
        return self.args[2]

    def __str__(self) -> str:
        parts = [f"sql: {self.query}"]
        if self.parameters:
            parts.append(f"params: {len(self.parameters)}")
        return f"{self.cause} ({'; '.join(parts)})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.cause!r}, query={self.query!r}, parameters={self.parameters!r})"

    def to_payload(self) -> dict:
        """
        Return a JSON-serializable dict describing the failure, for error
        reports and structured logs:
            {
                "detail": "UNIQUE constraint failed: t.id",
                "error_type": "IntegrityError",
                "query": "INSERT INTO t VALUES (?)",
                "parameters": [42],
            }
        Parameters are rendered with describe_params(); nothing is redacted.
        """
        return {
            "detail": str(self.cause),
            "error_type": type(self.cause).__name__,
            "query": self.query,
            "parameters": describe_params(self.parameters),
        }


class ContextAnnotatedError(_AnnotationLayer):
    """A failure tagged with a snapshot of request-scoped metadata."""

    def __init__(self, cause: BaseException, metadata: Mapping[str, Any]):
        super().__init__(cause, MappingProxyType(dict(metadata)))

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self.args[1]

    def __str__(self) -> str:
        return str(self.cause)

    def __reduce__(self):
        # mappingproxy does not pickle; rebuild from a plain dict
        return (type(self), (self.cause, dict(self.metadata)))


# ------------------------
# Errors raised by sqlfault itself
# ------------------------

class ContextError(SQLFaultError):
    """A QueryContext is finished and no further work should be started."""


class ContextCancelledError(ContextError):
    def __init__(self, message: str = "context cancelled"):
        super().__init__(message)


class DeadlineExceededError(ContextError):
    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class StatementClosedError(SQLFaultError):
    def __init__(self, message: str = "statement is closed"):
        super().__init__(message)


__all__ = [
    "SQLFaultError",
    "SQLAnnotatedError",
    "ContextAnnotatedError",
    "ContextError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "StatementClosedError",
]
