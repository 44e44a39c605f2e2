"""
Attach and extract query annotations on exceptions.

Annotation builds a small chain on top of the driver's exception:

    SQLAnnotatedError(query, parameters)        <- what callers catch
      __cause__ -> ContextAnnotatedError(meta)  <- only for context-aware calls
        __cause__ -> sqlite3.IntegrityError     <- the driver's original exception

Nothing in the chain is modified after construction. ``get`` and
``get_context`` read annotations back, ``find_cause`` / ``has_cause`` let
callers keep matching on the driver's exception type.

Annotators are plain callables ``(error) -> error`` so they can be prepared
before a failure happens and applied at the single point where it does:

    err = decorate(exc, with_context(ctx), with_sql(query, *params))
"""

from typing import Any, Callable, Iterator, NamedTuple, Optional, TypeVar

from pydantic import ValidationError

from ..config.settings import DEFAULT_MAX_CHAIN_DEPTH, get_settings
from .base import SQLAnnotatedError, ContextAnnotatedError

E = TypeVar("E", bound=BaseException)

Annotator = Callable[[Optional[BaseException]], Optional[BaseException]]


class SQLLookup(NamedTuple):
    """Result of ``get``. Compares equal to a plain ``(query, parameters, found)`` tuple."""

    query: str
    parameters: Optional[tuple[Any, ...]]
    found: bool


_NOT_FOUND = SQLLookup("", None, False)


# -----------------------
# Attach
# -----------------------

def wrap(cause: Optional[BaseException], query: str, *parameters: Any) -> Optional[SQLAnnotatedError]:
    """
    Tag ``cause`` with the query text and its bound parameters.

    Returns None when there is nothing to tag, so call sites can pass the
    outcome of an operation through unconditionally.
    """
    if cause is None:
        return None
    return SQLAnnotatedError(cause, query, parameters)


def with_sql(query: str, *parameters: Any) -> Annotator:
    """Return a deferred ``wrap`` bound to ``query`` and ``parameters``."""

    def annotate(err: Optional[BaseException]) -> Optional[BaseException]:
        return wrap(err, query, *parameters)

    return annotate


def with_context(ctx) -> Annotator:
    """
    Return an annotator that tags errors with ``ctx.snapshot()``.

    The snapshot is taken now, not when the annotator runs, so later changes
    to the context cannot leak into an already captured failure. An empty
    snapshot adds no layer.
    """
    snapshot = dict(ctx.snapshot()) if ctx is not None else {}

    def annotate(err: Optional[BaseException]) -> Optional[BaseException]:
        if err is None or not snapshot:
            return err
        return ContextAnnotatedError(err, snapshot)

    return annotate


def decorate(err: Optional[BaseException], *annotators: Annotator) -> Optional[BaseException]:
    """
    Apply ``annotators`` to ``err`` in order; the first one becomes the
    innermost layer. None passes through untouched.
    """
    if err is None:
        return None
    for annotate in annotators:
        err = annotate(err)
    return err


# -----------------------
# Walk
# -----------------------

def _default_depth() -> int:
    # Lookups run inside except blocks and logging filters; a bad, unrelated
    # SQLFAULT_* value must not turn them into a second failure.
    try:
        return get_settings().MAX_CHAIN_DEPTH
    except ValidationError:
        return DEFAULT_MAX_CHAIN_DEPTH


def iter_chain(err: Optional[BaseException], max_depth: int | None = None) -> Iterator[BaseException]:
    """
    Yield ``err`` and the exceptions it was caused by, outermost first.

    Above the annotation, follows ``__cause__`` and falls back to
    ``__context__`` unless the context was suppressed, so layers a caller
    raised on top are walked. Below an annotation layer only ``__cause__`` is
    followed: the implicit context of a driver exception is whatever was
    being handled when it was raised (an earlier failed query, say), not part
    of this failure. Stops after ``max_depth`` links
    (``Settings.MAX_CHAIN_DEPTH`` by default) or on a cycle.
    """
    if max_depth is None:
        max_depth = _default_depth()

    seen: set[int] = set()
    explicit_only = False
    current = err
    while current is not None and len(seen) < max_depth:
        if id(current) in seen:
            return
        seen.add(id(current))
        yield current

        if isinstance(current, (SQLAnnotatedError, ContextAnnotatedError)):
            explicit_only = True

        if current.__cause__ is not None:
            current = current.__cause__
        elif not explicit_only and not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def find_cause(err: Optional[BaseException], *types: type[E], max_depth: int | None = None) -> Optional[E]:
    """Return the first exception in ``err``'s chain that is an instance of ``types``."""
    for link in iter_chain(err, max_depth):
        if isinstance(link, types):
            return link
    return None


def has_cause(err: Optional[BaseException], *types: type[BaseException], max_depth: int | None = None) -> bool:
    return find_cause(err, *types, max_depth=max_depth) is not None


# -----------------------
# Extract
# -----------------------

def get(err: Optional[BaseException], max_depth: int | None = None) -> SQLLookup:
    """
    Return the query and parameters of the first SQLAnnotatedError found in
    ``err``'s chain, or ``("", None, False)`` when there is none.
    """
    tagged = find_cause(err, SQLAnnotatedError, max_depth=max_depth)
    if tagged is None:
        return _NOT_FOUND
    return SQLLookup(tagged.query, tagged.parameters, True)


def get_context(err: Optional[BaseException], max_depth: int | None = None) -> dict[str, Any]:
    """
    Merge the metadata of every ContextAnnotatedError in ``err``'s chain.
    Outer layers win when two layers carry the same key.
    """
    merged: dict[str, Any] = {}
    for link in iter_chain(err, max_depth):
        if isinstance(link, ContextAnnotatedError):
            for key, value in link.metadata.items():
                merged.setdefault(key, value)
    return merged


__all__ = [
    "Annotator",
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
]
