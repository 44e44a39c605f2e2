# sqlfault/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py        # Annotation layers and the errors sqlfault raises itself
# │   └── annotate.py    # wrap / with_sql / get and the chain walk behind them

from .base import (
    SQLFaultError,
    SQLAnnotatedError,
    ContextAnnotatedError,
    ContextError,
    ContextCancelledError,
    DeadlineExceededError,
    StatementClosedError,
)
from .annotate import (
    Annotator,
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

__all__ = [
    "SQLFaultError",
    "SQLAnnotatedError",
    "ContextAnnotatedError",
    "ContextError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "StatementClosedError",
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
