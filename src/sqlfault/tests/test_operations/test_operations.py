import logging

import pytest

from sqlfault import operations as ops
from sqlfault.core.context import QueryContext
from sqlfault.exceptions import ContextAnnotatedError, SQLAnnotatedError, get, get_context, has_cause

from ..test_fixtures.driver_fixtures import ConstraintViolation, FakeDriver, FakeRow, NoRows


class TestExecute:

    def test_success_passes_result_through(self, fake_driver):
        sentinel = object()
        fake_driver.result = sentinel

        assert ops.execute(fake_driver, "INSERT INTO t VALUES (?)", 42) is sentinel
        assert fake_driver.calls == [("execute", "INSERT INTO t VALUES (?)", 42)]

    def test_failure_is_annotated(self, fake_driver):
        violation = ConstraintViolation("UNIQUE constraint failed: t.id")
        fake_driver.failures["execute"] = violation

        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.execute(fake_driver, "INSERT INTO t VALUES (?)", 42)

        err = exc_info.value
        assert get(err) == ("INSERT INTO t VALUES (?)", (42,), True)
        assert has_cause(err, ConstraintViolation)
        assert err.cause is violation

    def test_failure_is_annotated_once(self, fake_driver):
        fake_driver.failures["execute"] = ConstraintViolation("dup")
        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.execute(fake_driver, "INSERT INTO t VALUES (?)", 1)
        assert not isinstance(exc_info.value.cause, SQLAnnotatedError)

    def test_base_exceptions_are_not_annotated(self, fake_driver):
        fake_driver.failures["execute"] = KeyboardInterrupt()
        with pytest.raises(KeyboardInterrupt):
            ops.execute(fake_driver, "SELECT 1")

    def test_failure_logged_at_debug(self, fake_driver, caplog):
        fake_driver.failures["execute"] = ConstraintViolation("dup")
        with caplog.at_level(logging.DEBUG, logger="sqlfault"):
            with pytest.raises(SQLAnnotatedError):
                ops.execute(fake_driver, "INSERT INTO t VALUES (?, ?)", 1, 2)

        records = [r for r in caplog.records if r.getMessage() == "sqlfault.annotated"]
        assert len(records) == 1
        assert records[0].operation == "execute"
        assert records[0].sql == "INSERT INTO t VALUES (?, ?)"
        assert records[0].param_count == 2
        assert records[0].error_type == "ConstraintViolation"

    def test_execute_context(self, fake_driver):
        ctx = QueryContext.background().with_metadata(job="import")
        assert ops.execute_context(ctx, fake_driver, "DELETE FROM t") == "ok"
        assert fake_driver.calls == [("execute_context", ctx, "DELETE FROM t")]

    def test_execute_context_failure_carries_snapshot(self, fake_driver):
        ctx = QueryContext.background().with_metadata(job="import")
        fake_driver.failures["execute_context"] = ConstraintViolation("dup")

        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.execute_context(ctx, fake_driver, "DELETE FROM t WHERE id = ?", 3)

        assert get(exc_info.value) == ("DELETE FROM t WHERE id = ?", (3,), True)
        assert get_context(exc_info.value) == {"job": "import"}


class TestQuery:

    def test_success(self, fake_driver):
        rows = [(1,), (2,)]
        fake_driver.result = rows
        assert ops.query(fake_driver, "SELECT id FROM t") is rows

    def test_failure(self, fake_driver):
        fake_driver.failures["query"] = RuntimeError("no such table: t")
        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.query(fake_driver, "SELECT * FROM t WHERE a = ? AND b = ?", "x", None)
        assert get(exc_info.value) == ("SELECT * FROM t WHERE a = ? AND b = ?", ("x", None), True)
        assert has_cause(exc_info.value, RuntimeError)

    def test_query_context_forwards_context(self, fake_driver):
        ctx = QueryContext.background().with_timeout(30)
        ops.query_context(ctx, fake_driver, "SELECT 1")
        assert fake_driver.calls[0][1] is ctx

    def test_query_context_failure(self, fake_driver, request_id):
        ctx = QueryContext.background().with_metadata(user="u1")
        fake_driver.failures["query_context"] = RuntimeError("interrupted")

        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.query_context(ctx, fake_driver, "SELECT * FROM t")

        err = exc_info.value
        assert isinstance(err.cause, ContextAnnotatedError)
        assert get_context(err) == {"user": "u1", "request_id": request_id}
        assert get(err) == ("SELECT * FROM t", (), True)

    def test_query_context_background_adds_no_context_layer(self, fake_driver):
        fake_driver.failures["query_context"] = RuntimeError("interrupted")
        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.query_context(QueryContext.background(), fake_driver, "SELECT 1")
        assert isinstance(exc_info.value.cause, RuntimeError)


class TestQueryRow:

    def test_success_returns_settled_row(self):
        row = FakeRow(("one",))
        driver = FakeDriver(row=row)

        result = ops.query_row(driver, "SELECT name FROM t WHERE id = ?", 1)

        assert result is row
        assert result.scan() == ("one",)

    def test_immediate_error(self):
        failure = RuntimeError("syntax error")
        driver = FakeDriver(row=FakeRow(error=failure))

        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.query_row(driver, "SELEC name FROM t WHERE id = ?", 1)

        assert exc_info.value.cause is failure
        assert get(exc_info.value) == ("SELEC name FROM t WHERE id = ?", (1,), True)

    def test_deferred_error_is_forced_and_annotated(self):
        no_rows = NoRows("no rows in result set")
        row = FakeRow(deferred=no_rows)
        driver = FakeDriver(row=row)

        # The caller never scans: the error must already be annotated.
        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.query_row(driver, "SELECT name FROM t WHERE id = ?", 99)

        assert row.scans == 1
        assert exc_info.value.cause is no_rows
        assert get(exc_info.value) == ("SELECT name FROM t WHERE id = ?", (99,), True)
        assert has_cause(exc_info.value, NoRows)

    def test_query_row_context_deferred_error(self):
        ctx = QueryContext.background().with_metadata(tenant="acme")
        driver = FakeDriver(row=FakeRow(deferred=NoRows("no rows")))

        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.query_row_context(ctx, driver, "SELECT 1 WHERE 0")

        assert get_context(exc_info.value) == {"tenant": "acme"}
        assert has_cause(exc_info.value, NoRows)
        assert driver.calls[0] == ("query_row_context", ctx, "SELECT 1 WHERE 0")

    def test_delegate_raising_directly_is_annotated(self, fake_driver):
        fake_driver.failures["query_row"] = RuntimeError("connection lost")
        with pytest.raises(SQLAnnotatedError) as exc_info:
            ops.query_row(fake_driver, "SELECT 1")
        assert has_cause(exc_info.value, RuntimeError)


class TestSettleRow:

    def test_clean_row(self):
        assert ops.settle_row(FakeRow((1,))) is None

    def test_prefers_known_error(self):
        known = RuntimeError("known")
        row = FakeRow(error=known, deferred=NoRows("later"))
        assert ops.settle_row(row) is known
        assert row.scans == 0


def test_annotators_for_order():
    ctx = QueryContext.background().with_metadata(a=1)
    annotators = ops.annotators_for("SELECT 1", (), ctx)
    assert len(annotators) == 2
    assert len(ops.annotators_for("SELECT 1", ())) == 1


def test_fake_driver_satisfies_row_protocol():
    assert isinstance(FakeRow(), ops.RowHandle)
