"""Query execution and result handling abstractions."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Sequence

from .exceptions import NotFoundError


@dataclass(frozen=True)
class ResultSet:
    """Represents the rows returned by one engine statement.

    Provides a consistent interface for statement results regardless
    of the underlying database implementation.
    """

    rows: list[dict[str, Any]]
    row_count: int
    column_names: list[str]
    execution_time_ms: float | None = None
    affected_rows: int | None = None

    def first(self) -> dict[str, Any] | None:
        """Get the first row of results.

        Returns:
            First row as dictionary, or None if no results
        """
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        """Get a single scalar value from the first row, first column.

        Returns:
            Scalar value, or None if no results
        """
        if not self.rows or not self.column_names:
            return None
        return self.rows[0][self.column_names[0]]

    def is_empty(self) -> bool:
        return self.row_count == 0


class QueryExecutor(ABC):
    """Abstract interface for executing parameterized statements.

    Parameters are positional and bound to ``?`` placeholders. Implementations
    raise :class:`~dalkit.infrastructure.data_access.exceptions.EngineError`
    subclasses carrying the engine's SQLSTATE when it is known.
    """

    @abstractmethod
    async def execute_query(
        self,
        sql: str,
        parameters: Sequence[Any] | None = None
    ) -> ResultSet:
        """Execute a statement that returns rows (SELECT, ... RETURNING).

        Args:
            sql: SQL statement
            parameters: Positional parameters for the statement

        Returns:
            ResultSet containing rows and metadata

        Raises:
            QueryError: If statement execution fails
            ParameterError: If parameters are invalid
        """
        pass

    @abstractmethod
    async def execute_command(
        self,
        sql: str,
        parameters: Sequence[Any] | None = None
    ) -> int:
        """Execute a non-query command (INSERT, UPDATE, DELETE, DDL).

        Returns:
            Number of affected rows

        Raises:
            QueryError: If command execution fails
            ParameterError: If parameters are invalid
        """
        pass

    async def fetch_first(
        self,
        sql: str,
        parameters: Sequence[Any] | None = None
    ) -> dict[str, Any]:
        """Execute a query and return its first row.

        Raises:
            NotFoundError: If the query returned no rows
        """
        result = await self.execute_query(sql, parameters)
        row = result.first()
        if row is None:
            raise NotFoundError("record not found")
        return row
