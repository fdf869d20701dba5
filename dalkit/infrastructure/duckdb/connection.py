"""DuckDB database connection and transaction implementations."""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any

import duckdb
from duckdb import DuckDBPyConnection

from dalkit.infrastructure.data_access.connection import (
    DatabaseConnection,
    TransactionHandle,
)
from dalkit.infrastructure.data_access.exceptions import (
    ConnectionError,
    TransactionError,
)
from .config import DuckDBConfig
from .query_executor import DuckDBQueryExecutor, derive_sqlstate

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"


class DuckDBConnection(DatabaseConnection):
    """DuckDB implementation of database connection management."""

    def __init__(self, database_path: str = MEMORY_DATABASE, config: DuckDBConfig | None = None):
        """Initialize DuckDB connection.

        Args:
            database_path: Path to DuckDB database file, or ``:memory:``
            config: DuckDB configuration settings (uses environment defaults if None)
        """
        self.database_path = database_path
        self.config = config or DuckDBConfig.from_environment()
        self._connection: DuckDBPyConnection | None = None
        self._is_connected = False

    async def connect(self) -> None:
        """Establish connection to the DuckDB database."""
        try:
            if self.database_path != MEMORY_DATABASE:
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = duckdb.connect(
                database=self.database_path,
                read_only=self.config.read_only
            )

            await self._configure_connection()

            self._is_connected = True
            logger.info(f"Connected to DuckDB database: {self.database_path}")

        except Exception as e:
            self._is_connected = False
            raise ConnectionError(f"Failed to connect to DuckDB: {str(e)}") from e

    async def disconnect(self) -> None:
        """Close the DuckDB connection and clean up resources."""
        if self._connection:
            try:
                self._connection.close()
                logger.info("Disconnected from DuckDB database")
            except duckdb.Error as e:
                logger.warning(f"Error during disconnect: {str(e)}")
            finally:
                self._connection = None
                self._is_connected = False

    async def is_connected(self) -> bool:
        return self._is_connected and self._connection is not None

    async def ping(self) -> bool:
        """Ping the database to verify connectivity."""
        if not await self.is_connected():
            return False

        try:
            result = await self.executor().execute_query("SELECT 1 AS ok")
            return result.scalar() == 1
        except Exception as e:
            logger.warning(f"Database ping failed: {str(e)}")
            return False

    async def get_connection_info(self) -> dict[str, Any]:
        """Get information about the current connection."""
        if not await self.is_connected():
            return {"status": "disconnected"}

        try:
            version = (await self.executor().execute_query("SELECT version() AS version")).scalar()

            db_path = Path(self.database_path)
            in_memory = self.database_path == MEMORY_DATABASE
            db_size = db_path.stat().st_size if not in_memory and db_path.exists() else 0

            return {
                "status": "connected",
                "database_path": self.database_path,
                "read_only": self.config.read_only,
                "duckdb_version": version or "unknown",
                "database_size_bytes": db_size,
                "connection_type": "memory" if in_memory else "file",
                "configuration": str(self.config)
            }
        except Exception as e:
            logger.error(f"Failed to get connection info: {str(e)}")
            return {"status": "error", "error": str(e)}

    def executor(self) -> DuckDBQueryExecutor:
        self._require_connection()
        return DuckDBQueryExecutor(self)

    async def begin(self) -> "DuckDBTransaction":
        """Begin a transaction on a dedicated cursor of this connection."""
        cursor = self._require_connection().cursor()
        try:
            await asyncio.to_thread(cursor.execute, "BEGIN TRANSACTION")
        except duckdb.Error as e:
            cursor.close()
            raise TransactionError(
                f"Failed to begin transaction: {str(e)}", sqlstate=derive_sqlstate(e)
            ) from e
        except BaseException:
            cursor.close()
            raise

        logger.debug("Transaction started")
        return DuckDBTransaction(self, cursor)

    def _require_connection(self) -> DuckDBPyConnection:
        if not self._is_connected or self._connection is None:
            raise ConnectionError("Database connection is not active")
        return self._connection

    async def _configure_connection(self) -> None:
        """Configure DuckDB connection settings using configuration object."""
        if not self._connection:
            return

        for setting in self.config.get_connection_settings():
            try:
                self._connection.execute(setting)
            except duckdb.Error as setting_error:
                # Individual settings may be unsupported by the installed DuckDB version
                logger.warning(f"Configuration setting failed: {setting} - {str(setting_error)}")

        logger.debug(f"DuckDB connection configured: {self.config}")

    @property
    def raw_connection(self) -> DuckDBPyConnection | None:
        """Get the raw DuckDB connection for advanced usage."""
        return self._connection


class DuckDBTransaction(TransactionHandle):
    """A transaction owning one DuckDB cursor until it commits or rolls back."""

    def __init__(self, connection: DuckDBConnection, cursor: DuckDBPyConnection):
        super().__init__()
        self.connection = connection
        self._cursor = cursor
        self._lock = threading.Lock()
        self._executor = DuckDBQueryExecutor(connection, cursor=cursor, lock=self._lock)

    @property
    def executor(self) -> DuckDBQueryExecutor:
        return self._executor

    async def _commit(self) -> None:
        await self._finish("COMMIT")
        logger.debug("Transaction committed")

    async def _rollback(self) -> None:
        await self._finish("ROLLBACK")
        logger.debug("Transaction rolled back")

    async def _finish(self, statement: str) -> None:
        try:
            await self._executor.execute_command(statement)
        finally:
            await asyncio.to_thread(self._close)

    def _close(self) -> None:
        with self._lock:
            try:
                self._cursor.close()
            except duckdb.Error as e:
                logger.warning(f"Failed to close transaction cursor: {str(e)}")
