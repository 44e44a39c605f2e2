from .sqla import (
    ResultRow,
    AsyncResultRow,
    ConnectionDriver,
    DriverStatement,
    AsyncConnectionDriver,
    AsyncDriverStatement,
)

__all__ = [
    "ResultRow",
    "AsyncResultRow",
    "ConnectionDriver",
    "DriverStatement",
    "AsyncConnectionDriver",
    "AsyncDriverStatement",
]
