import asyncio

import pytest

from sqlfault import aio
from sqlfault.core.context import QueryContext
from sqlfault.exceptions import ContextAnnotatedError, SQLAnnotatedError, get, get_context, has_cause

from ..test_fixtures.driver_fixtures import AsyncFakeDriver, AsyncFakeRow, ConstraintViolation, NoRows


async def test_execute_passes_result_through(async_fake_driver):
    assert await aio.execute(async_fake_driver, "DELETE FROM t") == "ok"
    assert async_fake_driver.calls == [("execute", "DELETE FROM t")]


async def test_execute_failure_annotated(async_fake_driver):
    async_fake_driver.failures["execute"] = ConstraintViolation("dup")

    with pytest.raises(SQLAnnotatedError) as exc_info:
        await aio.execute(async_fake_driver, "INSERT INTO t VALUES (?)", 42)

    assert get(exc_info.value) == ("INSERT INTO t VALUES (?)", (42,), True)
    assert has_cause(exc_info.value, ConstraintViolation)


async def test_query_context_failure_carries_snapshot(async_fake_driver, request_id):
    ctx = QueryContext.background().with_metadata(user="u1")
    async_fake_driver.failures["query_context"] = RuntimeError("interrupted")

    with pytest.raises(SQLAnnotatedError) as exc_info:
        await aio.query_context(ctx, async_fake_driver, "SELECT * FROM t WHERE id = ?", 1)

    assert isinstance(exc_info.value.cause, ContextAnnotatedError)
    assert get_context(exc_info.value) == {"user": "u1", "request_id": request_id}


async def test_cancelled_error_is_not_annotated(async_fake_driver):
    async_fake_driver.failures["query"] = asyncio.CancelledError()
    with pytest.raises(asyncio.CancelledError):
        await aio.query(async_fake_driver, "SELECT 1")


async def test_query_row_deferred_error_forced():
    row = AsyncFakeRow(deferred=NoRows("no rows"))
    driver = AsyncFakeDriver(row=row)

    with pytest.raises(SQLAnnotatedError) as exc_info:
        await aio.query_row(driver, "SELECT name FROM t WHERE id = ?", 99)

    assert row.scans == 1
    assert get(exc_info.value) == ("SELECT name FROM t WHERE id = ?", (99,), True)


async def test_query_row_context_success():
    driver = AsyncFakeDriver(row=AsyncFakeRow(("one",)))
    row = await aio.query_row_context(QueryContext.background(), driver, "SELECT name FROM t WHERE id = ?", 1)
    assert await row.scan() == ("one",)


async def test_prepared_statement_lifecycle(async_fake_driver):
    async with await aio.prepare(async_fake_driver, "INSERT INTO t VALUES (?)") as stmt:
        async_fake_driver.failures["execute"] = ConstraintViolation("dup")
        with pytest.raises(SQLAnnotatedError) as exc_info:
            await stmt.execute(1)

    assert get(exc_info.value) == ("INSERT INTO t VALUES (?)", (1,), True)
    assert async_fake_driver.statements[0].close_calls == 1


async def test_prepared_close_failure_annotated(async_fake_driver):
    stmt = await aio.prepare_context(QueryContext.background(), async_fake_driver, "SELECT ?")
    async_fake_driver.statements[0].close_error = RuntimeError("busy")

    with pytest.raises(SQLAnnotatedError) as exc_info:
        await stmt.close()

    assert get(exc_info.value) == ("SELECT ?", (), True)
