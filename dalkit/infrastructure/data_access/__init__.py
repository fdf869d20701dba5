"""Data Access Layer for generic record operations.

This module provides the record operations facade, the transaction
coordinator and the abstract engine interfaces they run on, enabling
dependency injection of concrete engines.
"""

from .conditions import Condition, Equality, Expr, Raw, Template
from .connection import DatabaseConnection, TransactionHandle, TransactionState
from .context import OperationContext
from .database import Database
from .exceptions import (
    BaseTableRequiredError,
    ConditionRequiredError,
    ConnectionError,
    ConstraintViolationError,
    ContextRequiredError,
    DataAccessError,
    DatabaseError,
    DestinationMustBeReferenceError,
    DestinationRequiredError,
    DuplicateRecordError,
    EngineError,
    InvalidQueryError,
    InvalidReferenceError,
    JoinsRequiredError,
    ModelRequiredError,
    NotFoundError,
    ParameterError,
    PreconditionError,
    QueryError,
    QueryRequiredError,
    QueryTimeoutError,
    RecordDefinitionError,
    TransactionAbortedError,
    TransactionClosedError,
    TransactionError,
    TransactionFunctionRequiredError,
    UpdatesRequiredError,
)
from .options import (
    JoinClause,
    JoinConfig,
    Pagination,
    PaginationOptions,
    QueryOptions,
    QueryResult,
    build_pagination,
)
from .query_executor import QueryExecutor, ResultSet

__all__ = [
    # Facade
    "Database",
    "OperationContext",

    # Query options
    "Condition",
    "Equality",
    "Template",
    "Raw",
    "Expr",
    "JoinClause",
    "JoinConfig",
    "PaginationOptions",
    "QueryOptions",
    "QueryResult",
    "Pagination",
    "build_pagination",

    # Core database abstractions
    "DatabaseConnection",
    "TransactionHandle",
    "TransactionState",
    "QueryExecutor",
    "ResultSet",

    # Public errors
    "DataAccessError",
    "PreconditionError",
    "ContextRequiredError",
    "DestinationRequiredError",
    "DestinationMustBeReferenceError",
    "ModelRequiredError",
    "UpdatesRequiredError",
    "ConditionRequiredError",
    "QueryRequiredError",
    "BaseTableRequiredError",
    "JoinsRequiredError",
    "TransactionFunctionRequiredError",
    "InvalidQueryError",
    "TransactionClosedError",
    "RecordDefinitionError",
    "DatabaseError",
    "DuplicateRecordError",
    "ConstraintViolationError",
    "InvalidReferenceError",
    "QueryTimeoutError",
    "TransactionAbortedError",

    # Engine errors
    "EngineError",
    "ConnectionError",
    "TransactionError",
    "QueryError",
    "ParameterError",
    "NotFoundError",
]
