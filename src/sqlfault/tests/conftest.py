"""
Core pytest configuration for the sqlfault test suite.

Provides logging setup for the whole session, settings isolation, and the
SQLite engines used by the driver tests. Fake delegates live in
tests/test_fixtures/driver_fixtures.py and are re-exported below.
"""

from __future__ import annotations

import logging
from types import SimpleNamespace
from typing import AsyncGenerator, Generator

# Silence noisy third-party loggers before they are imported.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "asyncio",
    "aiosqlite",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from sqlfault.config.settings import get_settings
from sqlfault.core.logging.builder import setup_logging
from sqlfault.core.logging.filters import set_request_id, reset_request_id

from .test_fixtures.driver_fixtures import (  # noqa: F401 - fixtures
    fake_driver,
    async_fake_driver,
)

SCHEMA = (
    "CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT NOT NULL)",
    "INSERT INTO t (id, name) VALUES (1, 'one')",
    "INSERT INTO t (id, name) VALUES (2, 'two')",
)


def make_log_settings(**overrides) -> SimpleNamespace:
    """Duck-typed settings for the logging builder."""
    values = dict(
        ENV="testing",
        LOG_LEVEL="DEBUG",
        LOG_FORMAT="json",
        LOG_TO_STDOUT=True,
        LOG_DIR=None,
        LOG_MAX_BYTES=1_000_000,
        LOG_BACKUP_COUNT=1,
        ENABLE_SQL_LOGGING=False,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install the library logging configuration once for the session. pytest's
    capture handler is re-added around every test phase, so caplog keeps working.
    """
    setup_logging(make_log_settings())
    yield


@pytest.fixture
def restore_logging():
    """Reinstall the session logging configuration after a test replaces it."""
    yield
    setup_logging(make_log_settings())


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch) -> Generator[None, None, None]:
    """Every test reads settings from a clean environment."""
    for key in ("SQLFAULT_MAX_CHAIN_DEPTH", "SQLFAULT_LOG_LEVEL", "SQLFAULT_LOG_FORMAT", "SQLFAULT_ENV"):
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def request_id():
    """Set a request id for the duration of a test."""
    token = set_request_id("req-test-1")
    yield "req-test-1"
    reset_request_id(token)


# ------------------------------------------------------------------------------------------------
# SQLite
# ------------------------------------------------------------------------------------------------

@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    engine = create_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def connection(engine: Engine) -> Generator[Connection, None, None]:
    with engine.connect() as conn:
        for statement in SCHEMA:
            conn.exec_driver_sql(statement)
        yield conn


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine("sqlite+aiosqlite://")
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_connection(async_engine: AsyncEngine) -> AsyncGenerator[AsyncConnection, None]:
    async with async_engine.connect() as conn:
        for statement in SCHEMA:
            await conn.exec_driver_sql(statement)
        yield conn
