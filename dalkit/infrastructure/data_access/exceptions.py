"""Data access layer specific exceptions.

Two families live here:

* the public taxonomy (``PreconditionError`` and ``DatabaseError`` subclasses)
  that callers of :class:`~dalkit.infrastructure.data_access.database.Database`
  receive, and
* ``EngineError`` subclasses raised by engine adapters. Engine errors never
  cross the facade; the error mapper translates them first.
"""

from dalkit.domain.exceptions import DomainError, DomainValidationError, RecordDefinitionError


class DataAccessError(DomainError):
    """Base exception for data access layer errors."""

    code = "data_access_error"
    default_message = "data access failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# Preconditions, raised before the engine is touched


class PreconditionError(DataAccessError, DomainValidationError):
    """A caller-side precondition of a data access operation is not met."""

    code = "precondition_failed"
    default_message = "operation precondition failed"


class ContextRequiredError(PreconditionError):
    code = "context_required"
    default_message = "context is required"


class DestinationRequiredError(PreconditionError):
    code = "destination_required"
    default_message = "destination is required"


class DestinationMustBeReferenceError(PreconditionError):
    code = "destination_must_be_reference"
    default_message = "destination must be a mutable reference"


class ModelRequiredError(PreconditionError):
    code = "model_required"
    default_message = "model is required"


class UpdatesRequiredError(PreconditionError):
    code = "updates_required"
    default_message = "updates are required"


class ConditionRequiredError(PreconditionError):
    code = "condition_required"
    default_message = "condition is required"


class QueryRequiredError(PreconditionError):
    code = "query_required"
    default_message = "query is required"


class BaseTableRequiredError(PreconditionError):
    code = "base_table_required"
    default_message = "base table is required"


class JoinsRequiredError(PreconditionError):
    code = "joins_required"
    default_message = "at least one join is required"


class TransactionFunctionRequiredError(PreconditionError):
    code = "transaction_function_required"
    default_message = "transaction function is required"


class InvalidQueryError(PreconditionError):
    """A query fragment (identifier, join type, argument shape) is malformed."""

    code = "invalid_query"
    default_message = "query is invalid"


class TransactionClosedError(PreconditionError):
    """A transaction-bound facade was used after its transaction finished."""

    code = "transaction_closed"
    default_message = "transaction is no longer active"


# Classified engine failures


class DatabaseError(DataAccessError):
    """Catch-all for engine failures; never carries engine text."""

    code = "database_error"
    default_message = "an unexpected database error occurred"


class DuplicateRecordError(DatabaseError):
    code = "duplicate_record"
    default_message = "a record with the same values already exists"


class ConstraintViolationError(DatabaseError):
    code = "constraint_violation"
    default_message = "the provided data violates database constraints"


class InvalidReferenceError(DatabaseError):
    code = "invalid_reference"
    default_message = "invalid reference in the provided data"


class QueryTimeoutError(DatabaseError):
    code = "query_timeout"
    default_message = "the database operation timed out"


class TransactionAbortedError(DatabaseError):
    code = "transaction_aborted"
    default_message = "transaction was aborted"


# Engine adapter errors (internal)


class EngineError(DataAccessError):
    """Raw failure reported by a database engine adapter.

    ``sqlstate`` carries the engine's structured error code when one is known.
    """

    code = "engine_error"
    default_message = "database engine error"

    def __init__(self, message: str | None = None, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


class ConnectionError(EngineError):
    """Exception raised when database connection fails."""

    pass


class TransactionError(EngineError):
    """Exception raised when transaction operations fail."""

    pass


class QueryError(EngineError):
    """Exception raised when query execution fails."""

    pass


class ParameterError(EngineError):
    """Exception raised when query parameters are invalid."""

    pass


class NotFoundError(EngineError):
    """Exception raised when a query expected a row and found none."""

    pass
