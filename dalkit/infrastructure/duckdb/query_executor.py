"""DuckDB query execution implementation."""

import asyncio
import contextlib
import logging
import re
import threading
import time
from enum import Enum
from typing import TYPE_CHECKING, Any, Sequence

import duckdb

from dalkit.infrastructure.data_access.error_mapper import (
    CHECK_VIOLATION,
    FOREIGN_KEY_VIOLATION,
    NOT_NULL_VIOLATION,
    QUERY_CANCELED,
    UNIQUE_VIOLATION,
)
from dalkit.infrastructure.data_access.exceptions import (
    ConnectionError,
    ParameterError,
    QueryError,
)
from dalkit.infrastructure.data_access.query_executor import QueryExecutor, ResultSet

if TYPE_CHECKING:
    from .connection import DuckDBConnection

logger = logging.getLogger(__name__)

INTEGRITY_VIOLATION = "23000"
UNDEFINED_TABLE = "42P01"
SYNTAX_ERROR = "42601"

# DuckDB reports the affected row count of DML as a single "Count" column.
# Statements led by WITH are not recognised and report their row count.
_COUNT_COLUMN = "Count"
_DML_STATEMENT = re.compile(r"^\s*(INSERT|UPDATE|DELETE|COPY)\b", re.IGNORECASE)


def derive_sqlstate(error: Exception) -> str | None:
    """Derive a SQLSTATE code from a DuckDB exception.

    DuckDB exposes the error class through the exception type and the
    constraint kind only through the message text.
    """
    code = getattr(error, "sqlstate", None)
    if isinstance(code, str) and len(code) == 5:
        return code

    message = str(error).lower()
    if isinstance(error, duckdb.IntegrityError):
        if "foreign key" in message:
            return FOREIGN_KEY_VIOLATION
        if "duplicate" in message or "unique" in message or "primary key" in message:
            return UNIQUE_VIOLATION
        if "check" in message:
            return CHECK_VIOLATION
        if "not null" in message:
            return NOT_NULL_VIOLATION
        return INTEGRITY_VIOLATION
    if isinstance(error, duckdb.CatalogException):
        return UNDEFINED_TABLE
    if isinstance(error, duckdb.ParserException):
        return SYNTAX_ERROR
    if isinstance(error, duckdb.InterruptException):
        return QUERY_CANCELED
    return None


class DuckDBQueryExecutor(QueryExecutor):
    """DuckDB implementation of query execution.

    Without a cursor every statement runs on a fresh cursor of the shared
    connection and auto-commits. With a cursor (a transaction's) statements
    are serialized on it through ``lock``.

    Statements run in a worker thread; cancelling the awaiting task
    interrupts the running statement.
    """

    def __init__(
        self,
        connection: "DuckDBConnection",
        cursor: duckdb.DuckDBPyConnection | None = None,
        lock: "threading.Lock | None" = None,
    ):
        """Initialize query executor.

        Args:
            connection: DuckDB connection to execute statements on
            cursor: Dedicated cursor (transaction scope), or None for auto-commit
            lock: Lock serializing use of ``cursor``
        """
        self.connection = connection
        self._cursor = cursor
        self._lock = lock or threading.Lock()

    async def execute_query(
        self,
        sql: str,
        parameters: Sequence[Any] | None = None
    ) -> ResultSet:
        """Execute a statement that returns rows."""
        start_time = time.perf_counter()
        column_names, rows = await self._execute(sql, parameters)

        dict_rows = [dict(zip(column_names, row)) for row in rows]
        execution_time = (time.perf_counter() - start_time) * 1000

        logger.debug(f"Query executed successfully: {len(dict_rows)} rows in {execution_time:.2f}ms")
        return ResultSet(
            rows=dict_rows,
            row_count=len(dict_rows),
            column_names=column_names,
            execution_time_ms=execution_time,
            affected_rows=_affected_rows(sql, column_names, rows),
        )

    async def execute_command(
        self,
        sql: str,
        parameters: Sequence[Any] | None = None
    ) -> int:
        """Execute a non-query command (INSERT, UPDATE, DELETE, DDL)."""
        start_time = time.perf_counter()
        column_names, rows = await self._execute(sql, parameters)

        affected_rows = _affected_rows(sql, column_names, rows)
        if affected_rows is None:
            affected_rows = len(rows)

        execution_time = (time.perf_counter() - start_time) * 1000
        logger.debug(f"Command executed: {affected_rows} rows affected in {execution_time:.2f}ms")
        return affected_rows

    async def _execute(self, sql: str, parameters: Sequence[Any] | None) -> tuple[list[str], list[tuple]]:
        safe_params = self._prepare_parameters(parameters)

        if self._cursor is not None:
            cursor, owned, guard = self._cursor, False, self._lock
        else:
            raw_conn = self.connection.raw_connection
            if raw_conn is None:
                raise ConnectionError("Database connection is not active")
            cursor, owned, guard = raw_conn.cursor(), True, contextlib.nullcontext()

        try:
            return await asyncio.to_thread(self._run, cursor, owned, guard, sql, safe_params)
        except asyncio.CancelledError:
            # The worker thread keeps running until the engine notices
            with contextlib.suppress(duckdb.Error):
                cursor.interrupt()
            logger.debug("Statement interrupted by cancellation")
            raise

    @staticmethod
    def _run(cursor, owned: bool, guard, sql: str, parameters: list[Any]) -> tuple[list[str], list[tuple]]:
        try:
            with guard:
                if parameters:
                    cursor.execute(sql, parameters)
                else:
                    cursor.execute(sql)
                description = cursor.description
                rows = cursor.fetchall() if description else []
        except duckdb.Error as e:
            logger.debug(f"Statement failed: {type(e).__name__}: {e}")
            raise QueryError(f"Failed to execute statement: {e}", sqlstate=derive_sqlstate(e)) from e
        finally:
            if owned:
                cursor.close()
        column_names = [desc[0] for desc in description] if description else []
        return column_names, rows

    def _prepare_parameters(self, parameters: Sequence[Any] | None) -> list[Any]:
        """Validate and prepare positional parameters for execution."""
        if parameters is None:
            return []
        if isinstance(parameters, (str, bytes)) or not isinstance(parameters, Sequence):
            raise ParameterError(f"Parameters must be a sequence, got: {type(parameters)}")
        return [self._convert_parameter_value(value) for value in parameters]

    def _convert_parameter_value(self, value: Any) -> Any:
        """Convert a parameter value to a DuckDB-compatible type."""
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, tuple):
            return [self._convert_parameter_value(item) for item in value]
        return value


def _affected_rows(sql: str, column_names: list[str], rows: list[tuple]) -> int | None:
    if column_names == [_COUNT_COLUMN] and len(rows) == 1 and _DML_STATEMENT.match(sql):
        return int(rows[0][0])
    return None
