"""Shared pytest fixtures for brickORM unit and integration tests."""
from __future__ import annotations

import pytest

from brickorm.compile.postgres import PostgresDialect
from brickorm.compile.sqlite import SQLiteDialect
from brickorm.compile.sqlserver import SqlServerDialect
from brickorm.connection.manager import ConnectionManager
from tests.fixtures.fakes import FakeConnection, RecordingExecutor


@pytest.fixture()
def sqlserver() -> SqlServerDialect:
    return SqlServerDialect()


@pytest.fixture()
def postgres() -> PostgresDialect:
    return PostgresDialect()


@pytest.fixture()
def sqlite() -> SQLiteDialect:
    return SQLiteDialect()


@pytest.fixture()
def connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture()
def executor(connection: FakeConnection) -> RecordingExecutor:
    return RecordingExecutor(connection)


@pytest.fixture()
def manager(connection: FakeConnection, executor: RecordingExecutor) -> ConnectionManager:
    """Manager over a closed fake connection, rendering SQL Server syntax."""
    return ConnectionManager(connection, SqlServerDialect(), executor)
