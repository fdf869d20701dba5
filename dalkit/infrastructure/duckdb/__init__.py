"""DuckDB concrete implementations for the data access layer."""

from .config import DuckDBConfig
from .connection import DuckDBConnection, DuckDBTransaction
from .query_executor import DuckDBQueryExecutor, derive_sqlstate

__all__ = [
    "DuckDBConfig",
    "DuckDBConnection",
    "DuckDBTransaction",
    "DuckDBQueryExecutor",
    "derive_sqlstate",
]
