"""Database connection and transaction handle abstractions."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any

from .exceptions import TransactionError
from .query_executor import QueryExecutor


class DatabaseConnection(ABC):
    """Abstract interface for database connection management.

    Provides connection lifecycle, health checking, an auto-commit executor
    for ambient operations, and transaction creation.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the database.

        Raises:
            ConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the database connection and clean up resources.

        Should be idempotent - safe to call multiple times.
        """
        pass

    @abstractmethod
    async def is_connected(self) -> bool:
        """Check if database connection is active."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Ping the database to verify connectivity."""
        pass

    @abstractmethod
    async def get_connection_info(self) -> dict[str, Any]:
        """Get information about the current connection.

        Returns:
            Dict containing connection metadata like database version,
            database path, etc.
        """
        pass

    @abstractmethod
    def executor(self) -> QueryExecutor:
        """Get an auto-commit executor for statements outside a transaction.

        Raises:
            ConnectionError: If the connection is not active
        """
        pass

    @abstractmethod
    async def begin(self) -> "TransactionHandle":
        """Begin a new transaction with exclusive use of its own executor.

        Raises:
            TransactionError: If the transaction cannot be started
            ConnectionError: If the connection is not active
        """
        pass


class TransactionState(Enum):
    """Lifecycle states of a transaction handle."""

    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


class TransactionHandle(ABC):
    """An engine transaction that ends exactly once.

    Subclasses implement ``_commit``/``_rollback``; this base class enforces
    the single terminal transition and the rollback-only flag.
    """

    def __init__(self) -> None:
        self._state = TransactionState.ACTIVE
        self._rollback_only = False

    @property
    @abstractmethod
    def executor(self) -> QueryExecutor:
        """Executor bound to this transaction."""
        pass

    @abstractmethod
    async def _commit(self) -> None:
        pass

    @abstractmethod
    async def _rollback(self) -> None:
        pass

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is TransactionState.ACTIVE

    @property
    def rollback_only(self) -> bool:
        return self._rollback_only

    def mark_rollback_only(self) -> None:
        """Flag the transaction so that it can no longer be committed."""
        self._rollback_only = True

    async def commit(self) -> None:
        """Commit the transaction.

        Raises:
            TransactionError: If the transaction already ended or the commit fails
        """
        self._ensure_active("commit")
        try:
            await self._commit()
        except BaseException:
            self._state = TransactionState.FAILED
            raise
        self._state = TransactionState.COMMITTED

    async def rollback(self) -> None:
        """Roll the transaction back.

        Raises:
            TransactionError: If the transaction already ended or the rollback fails
        """
        self._ensure_active("rollback")
        try:
            await self._rollback()
        except BaseException:
            self._state = TransactionState.FAILED
            raise
        self._state = TransactionState.ROLLED_BACK

    def _ensure_active(self, operation: str) -> None:
        if not self.is_active:
            raise TransactionError(
                f"Cannot {operation}: transaction already {self._state.value}"
            )
