import json
from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from sqlfault.params import MAX_RENDERED_BYTES, ParamKind, describe_param, describe_params, kind_of


@pytest.mark.parametrize(
    "value, kind",
    [
        (None, ParamKind.NULL),
        (True, ParamKind.BOOLEAN),
        (0, ParamKind.INTEGER),
        (1.5, ParamKind.FLOAT),
        (Decimal("1.10"), ParamKind.DECIMAL),
        ("text", ParamKind.TEXT),
        (b"\x00", ParamKind.BINARY),
        (bytearray(b"ab"), ParamKind.BINARY),
        (datetime(2024, 1, 2, 3, 4, 5), ParamKind.TIMESTAMP),
        (date(2024, 1, 2), ParamKind.DATE),
        (time(3, 4), ParamKind.TIME),
        (object(), ParamKind.OTHER),
    ],
)
def test_kind_of(value, kind):
    assert kind_of(value) is kind


def test_describe_param_temporal_values_are_iso():
    ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert describe_param(ts) == "2024-01-02T03:04:05+00:00"
    assert describe_param(date(2024, 1, 2)) == "2024-01-02"


def test_describe_param_truncates_long_binary():
    rendered = describe_param(b"\xff" * (MAX_RENDERED_BYTES + 10))
    assert rendered.startswith("0x")
    assert rendered.endswith("...")
    assert len(rendered) == 2 + 2 * MAX_RENDERED_BYTES + 3


def test_describe_param_non_finite_float():
    assert describe_param(float("nan")) == "nan"
    assert describe_param(float("inf")) == "inf"


def test_describe_params_is_json_serializable():
    values = (None, 1, 2.5, Decimal("3.3"), "x", b"\x01", True, datetime(2024, 1, 1), object())
    rendered = describe_params(values)
    json.dumps(rendered)
    assert rendered[:8] == [None, 1, 2.5, "3.3", "x", "0x01", True, "2024-01-01T00:00:00"]


def test_describe_params_empty():
    assert describe_params(()) == []
    assert describe_params(None) == []
