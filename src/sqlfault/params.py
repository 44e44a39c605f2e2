"""
Bound parameter values.

Parameters travel through the annotation layer verbatim. This module gives
them an explicit tagged shape (``ParamKind``) so error payloads and log
records can render them without guessing at arbitrary Python objects.
"""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, TypeAlias

# The value types a relational driver is expected to bind. Anything else is
# still carried, it is just classified as OTHER.
Param: TypeAlias = None | bool | int | float | Decimal | str | bytes | datetime | date | time

# Binary values longer than this are cut in rendered output.
MAX_RENDERED_BYTES = 64


class ParamKind(str, Enum):
    NULL = "null"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    TEXT = "text"
    BINARY = "binary"
    TIMESTAMP = "timestamp"
    DATE = "date"
    TIME = "time"
    OTHER = "other"


def kind_of(value: Any) -> ParamKind:
    """Classify a bound value."""
    if value is None:
        return ParamKind.NULL
    # bool is a subclass of int, datetime a subclass of date: order matters.
    if isinstance(value, bool):
        return ParamKind.BOOLEAN
    if isinstance(value, int):
        return ParamKind.INTEGER
    if isinstance(value, float):
        return ParamKind.FLOAT
    if isinstance(value, Decimal):
        return ParamKind.DECIMAL
    if isinstance(value, str):
        return ParamKind.TEXT
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ParamKind.BINARY
    if isinstance(value, datetime):
        return ParamKind.TIMESTAMP
    if isinstance(value, date):
        return ParamKind.DATE
    if isinstance(value, time):
        return ParamKind.TIME
    return ParamKind.OTHER


def describe_param(value: Any) -> Any:
    """
    Return a JSON-serializable rendering of a bound value.

    - null, boolean, integer, text: unchanged
    - float: unchanged unless non-finite (rendered as its repr)
    - decimal: str()
    - binary: "0x" + hex, truncated to MAX_RENDERED_BYTES with a trailing "..."
    - timestamp, date, time: ISO-8601
    - anything else: repr()
    """
    kind = kind_of(value)

    if kind in (ParamKind.NULL, ParamKind.BOOLEAN, ParamKind.INTEGER, ParamKind.TEXT):
        return value
    if kind is ParamKind.FLOAT:
        # JSON has no NaN / Infinity
        return value if value == value and value not in (float("inf"), float("-inf")) else repr(value)
    if kind is ParamKind.DECIMAL:
        return str(value)
    if kind is ParamKind.BINARY:
        raw = bytes(value)
        rendered = "0x" + raw[:MAX_RENDERED_BYTES].hex()
        return rendered + "..." if len(raw) > MAX_RENDERED_BYTES else rendered
    if kind in (ParamKind.TIMESTAMP, ParamKind.DATE, ParamKind.TIME):
        return value.isoformat()
    return repr(value)


def describe_params(values: Iterable[Any] | None) -> list[Any]:
    if not values:
        return []
    return [describe_param(v) for v in values]


__all__ = [
    "Param",
    "ParamKind",
    "MAX_RENDERED_BYTES",
    "kind_of",
    "describe_param",
    "describe_params",
]
