"""Pytest configuration and shared fixtures for the data access layer.

This module provides:
- A spy engine connection counting statements, begins, commits and rollbacks
- DuckDB connection and facade fixtures for integration testing
- Pytest configuration and markers
"""

import asyncio
import os
import shutil
import tempfile
from collections import deque
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Sequence

import pytest
import pytest_asyncio

from dalkit.infrastructure.data_access.connection import DatabaseConnection, TransactionHandle
from dalkit.infrastructure.data_access.context import OperationContext
from dalkit.infrastructure.data_access.database import Database
from dalkit.infrastructure.data_access.query_executor import QueryExecutor, ResultSet
from dalkit.infrastructure.duckdb.config import DuckDBConfig
from dalkit.infrastructure.duckdb.connection import DuckDBConnection


@dataclass
class Statement:
    """One statement received by the spy engine."""

    kind: str
    sql: str
    parameters: list[Any] = field(default_factory=list)
    transactional: bool = False


class SpyConnection(DatabaseConnection):
    """In-memory engine double recording every interaction.

    Responses are consumed in order, one per statement: a list of row
    dicts (queries), an int (commands), a ``ResultSet`` or an exception
    to raise. With no queued response a statement returns no rows.
    """

    def __init__(self):
        self.statements: list[Statement] = []
        self.responses: deque = deque()
        self.begin_count = 0
        self.commit_count = 0
        self.rollback_count = 0
        self.begin_error: BaseException | None = None
        self.commit_error: BaseException | None = None
        self.rollback_error: BaseException | None = None
        self.delay = 0.0
        self.connected = True

    def respond(self, *responses: Any) -> "SpyConnection":
        self.responses.extend(responses)
        return self

    @property
    def engine_calls(self) -> int:
        return len(self.statements) + self.begin_count + self.commit_count + self.rollback_count

    async def dispatch(self, kind: str, sql: str, parameters: Sequence[Any] | None,
                       transactional: bool) -> Any:
        self.statements.append(Statement(kind, sql, list(parameters or ()), transactional))
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.popleft() if self.responses else None
        if isinstance(response, BaseException):
            raise response
        return response

    async def connect(self) -> None:
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False

    async def is_connected(self) -> bool:
        return self.connected

    async def ping(self) -> bool:
        return self.connected

    async def get_connection_info(self) -> dict[str, Any]:
        return {"status": "connected" if self.connected else "disconnected", "engine": "spy"}

    def executor(self) -> QueryExecutor:
        return SpyExecutor(self)

    async def begin(self) -> TransactionHandle:
        self.begin_count += 1
        if self.begin_error is not None:
            raise self.begin_error
        return SpyTransaction(self)


class SpyExecutor(QueryExecutor):
    def __init__(self, spy: SpyConnection, transactional: bool = False):
        self.spy = spy
        self.transactional = transactional

    async def execute_query(self, sql: str, parameters: Sequence[Any] | None = None) -> ResultSet:
        response = await self.spy.dispatch("query", sql, parameters, self.transactional)
        if isinstance(response, ResultSet):
            return response
        rows = [dict(row) for row in (response or [])]
        return ResultSet(
            rows=rows,
            row_count=len(rows),
            column_names=list(rows[0]) if rows else [],
        )

    async def execute_command(self, sql: str, parameters: Sequence[Any] | None = None) -> int:
        response = await self.spy.dispatch("command", sql, parameters, self.transactional)
        return int(response or 0)


class SpyTransaction(TransactionHandle):
    def __init__(self, spy: SpyConnection):
        super().__init__()
        self.spy = spy
        self._executor = SpyExecutor(spy, transactional=True)

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    async def _commit(self) -> None:
        self.spy.commit_count += 1
        if self.spy.commit_error is not None:
            raise self.spy.commit_error

    async def _rollback(self) -> None:
        self.spy.rollback_count += 1
        if self.spy.rollback_error is not None:
            raise self.spy.rollback_error


@pytest.fixture
def ctx() -> OperationContext:
    """Provide a request context without deadline."""
    return OperationContext(request_id="test-request")


@pytest.fixture
def spy_connection() -> SpyConnection:
    return SpyConnection()


@pytest.fixture
def database(spy_connection: SpyConnection) -> Database:
    """Create a facade bound to the spy engine."""
    return Database(spy_connection)


@pytest.fixture
def temp_database() -> str:
    """Create a temporary database path.

    Yields:
        str: Path to temporary database file
    """
    temp_dir = tempfile.mkdtemp()
    db_path = os.path.join(temp_dir, "test.db")

    yield db_path

    if os.path.exists(temp_dir):
        shutil.rmtree(temp_dir)


@pytest_asyncio.fixture
async def duckdb_connection() -> AsyncGenerator[DuckDBConnection, None]:
    """Create a connected in-memory DuckDB connection.

    Yields:
        DuckDBConnection: Connected database connection
    """
    connection = DuckDBConnection(":memory:", config=DuckDBConfig(memory_limit="256MB", threads=1))
    await connection.connect()

    yield connection

    await connection.disconnect()


@pytest.fixture
def duckdb_database(duckdb_connection: DuckDBConnection) -> Database:
    return Database(duckdb_connection)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "duckdb: mark test as DuckDB-specific"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "/integration/" in item.nodeid:
            item.add_marker(pytest.mark.integration)
        elif "/unit/" in item.nodeid:
            item.add_marker(pytest.mark.unit)

        if "/duckdb/" in item.nodeid:
            item.add_marker(pytest.mark.duckdb)

        if not any(marker.name in ["integration", "unit"] for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
