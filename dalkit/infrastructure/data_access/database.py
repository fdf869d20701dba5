"""
Record operations facade and transaction coordinator.

Every operation runs the same pipeline: validate parameters, build the
statement from its options, execute it on the bound executor, and classify
any engine failure into the public error taxonomy.

    db = Database(connection)
    users = RecordList(User)
    await db.find_many(ctx, users, {"active": True},
                       options=QueryOptions(order_by="name", preloads=("orders",)))

    async def transfer(tx: Database) -> None:
        await tx.update(ctx, source, {"balance": Expr("balance - ?", 10)})
        await tx.update(ctx, target, {"balance": Expr("balance + ?", 10)})

    await db.with_transaction(ctx, transfer)
"""

import asyncio
import time
from collections.abc import MutableMapping, MutableSequence
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, TypeVar

from dalkit.domain.records import (
    RecordList,
    column_names,
    column_values,
    instantiate,
    is_record,
    populate,
    primary_key,
    primary_key_values,
    record_type,
    table_name,
)
from dalkit.infrastructure.structured_logger import StructuredLogger

from .conditions import Condition, Equality, Expr, to_condition
from .connection import DatabaseConnection, TransactionHandle
from .context import OperationContext
from .error_mapper import handle_database_error
from .exceptions import (
    ConditionRequiredError,
    DatabaseError,
    DestinationMustBeReferenceError,
    ModelRequiredError,
    TransactionAbortedError,
    TransactionClosedError,
)
from .options import (
    JoinConfig,
    Pagination,
    PaginationOptions,
    QueryOptions,
    QueryResult,
    build_pagination,
)
from .preloader import preload, validate_preloads
from .query_builder import (
    SelectQuery,
    apply_query_options,
    build_count,
    build_insert,
    build_join_query,
    build_update,
    normalize_pagination,
    quote_identifier,
)
from .query_executor import QueryExecutor
from .validation import (
    validate_conditions,
    validate_context,
    validate_destination,
    validate_join_config,
    validate_model,
    validate_query,
    validate_transaction_function,
    validate_updates,
)

# Operation steps for logging
CREATE_STEP = "creating record"
UPDATE_STEP = "updating record"
FIND_ONE_STEP = "finding single record"
FIND_MANY_STEP = "finding multiple records"
COUNT_STEP = "counting records"
JOIN_QUERY_STEP = "executing join query"
RAW_QUERY_STEP = "executing raw query"
TRANSACTION_STEP = "transaction"

DEFAULT_SLOW_QUERY_THRESHOLD_MS = 200.0

CREATED_AT = "created_at"
UPDATED_AT = "updated_at"

T = TypeVar("T")
UnitOfWork = Callable[["Database"], Awaitable[T]]


class Database:
    """Generic create/read/update/count/join/raw-SQL operations over records.

    A ``Database`` is bound either to the ambient connection (each statement
    auto-commits) or to one transaction handed out by :meth:`with_transaction`.
    It holds no per-call state and can be shared by concurrent tasks.
    """

    def __init__(
        self,
        connection: DatabaseConnection,
        logger: StructuredLogger | None = None,
        slow_query_threshold_ms: float = DEFAULT_SLOW_QUERY_THRESHOLD_MS,
        transaction: TransactionHandle | None = None,
    ):
        """
        Initialize the facade.

        Args:
            connection: Engine connection used for ambient operations and to begin transactions
            logger: Structured logger for diagnostics (defaults to the ``dalkit.database`` logger)
            slow_query_threshold_ms: Operations slower than this are logged as warnings
            transaction: Transaction to bind to; set by :meth:`with_transaction`
        """
        self.connection = connection
        self.logger = logger or StructuredLogger()
        self.slow_query_threshold_ms = slow_query_threshold_ms
        self._transaction = transaction

    @property
    def transaction(self) -> TransactionHandle | None:
        return self._transaction

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    # Record operations

    async def create(self, ctx: OperationContext | None, destination: Any) -> None:
        """
        Insert a record, writing generated values (ids, defaults) back into it.

        A list of records is inserted atomically, one statement per record.

        Raises:
            PreconditionError: If a parameter is missing or malformed
            DatabaseError: If the engine rejects the insert
        """
        validate_context(ctx)
        validate_destination(destination)

        if isinstance(destination, MutableSequence):
            records = list(destination)
            for record in records:
                record_type(record)
            if not records:
                return
            if self.in_transaction:
                rows = [await self._insert(ctx, record) for record in records]
            else:
                async def insert_all(tx: Database) -> list[dict[str, Any]]:
                    return [await tx._insert(ctx, record) for record in records]

                rows = await self.with_transaction(ctx, insert_all)
            # Records only see generated values once every insert succeeded
            for record, row in zip(records, rows):
                populate(record, row)
            return

        record_type(destination)
        populate(destination, await self._insert(ctx, destination))

    async def update(
        self,
        ctx: OperationContext | None,
        model: Any,
        updates: dict[str, Any] | None,
        conditions: Any = None,
        *args: Any,
    ) -> int:
        """
        Update the rows identified by the model's primary key and/or conditions.

        Args:
            ctx: Call context
            model: Record instance, record class or table name
            updates: Column -> new value (values may be ``Expr``)
            conditions: Mapping, record template, string predicate or None
            *args: Placeholder values for a string predicate

        Returns:
            Number of rows updated (0 when nothing matched)

        Raises:
            ConditionRequiredError: If neither a primary key nor a condition narrows the update
        """
        validate_context(ctx)
        validate_model(model)
        validate_updates(updates)

        table = table_name(model)
        condition = to_condition(conditions, args)

        filters: list[Condition] = []
        if is_record(model):
            identity = primary_key_values(model)
            if identity:
                filters.append(Equality(identity))
        if condition is not None:
            filters.append(condition)
        if not any(f.to_sql(quote_identifier)[0] for f in filters):
            raise ConditionRequiredError(
                "update requires a condition or a model with a primary key"
            )

        values = dict(updates)
        if not isinstance(model, str) and UPDATED_AT in column_names(model) and UPDATED_AT not in values:
            values[UPDATED_AT] = _now()

        sql, parameters = build_update(table, values, filters)

        async def operation(executor: QueryExecutor) -> int:
            return await executor.execute_command(sql, parameters)

        rows_affected = await self._run(ctx, UPDATE_STEP, "Failed to update record", operation)

        if rows_affected and is_record(model):
            known = set(column_names(model))
            for column, value in values.items():
                if column in known and not isinstance(value, Expr):
                    setattr(model, column, value)

        return rows_affected

    async def find_one(
        self,
        ctx: OperationContext | None,
        destination: Any,
        conditions: Any,
        *args: Any,
        preloads: Iterable[str] | None = None,
    ) -> bool:
        """
        Load the first record (by primary key) matching ``conditions`` into ``destination``.

        Returns:
            True if a record was found, False otherwise (absence is not an error)
        """
        validate_context(ctx)
        validate_destination(destination)
        validate_conditions(conditions)
        if not is_record(destination):
            raise DestinationMustBeReferenceError("destination must be a record instance")

        model = type(destination)
        preload_paths = list(preloads or ())
        validate_preloads(model, preload_paths)

        query = SelectQuery(table_name(model)).where(to_condition(conditions, args))
        query.preload(preload_paths)
        query.order(_primary_key_order(model))
        query.limit = 1
        sql, parameters = query.build()

        async def operation(executor: QueryExecutor) -> bool:
            row = await executor.fetch_first(sql, parameters)
            populate(destination, row)
            await preload(executor, [destination], model, query.preloads)
            return True

        found = await self._run(ctx, FIND_ONE_STEP, "Failed to find record", operation)
        return bool(found)

    async def find_many(
        self,
        ctx: OperationContext | None,
        destination: Any,
        conditions: Any = None,
        *args: Any,
        options: QueryOptions | None = None,
    ) -> None:
        """
        Replace the contents of a ``RecordList`` with the matching records.

        An empty result leaves an empty list; it is not an error.
        """
        validate_context(ctx)
        validate_destination(destination)
        model = _list_model(destination)

        if options is not None:
            validate_preloads(model, options.preloads)

        query = SelectQuery(table_name(model)).where(to_condition(conditions, args))
        apply_query_options(query, options)
        sql, parameters = query.build()

        async def operation(executor: QueryExecutor) -> None:
            result = await executor.execute_query(sql, parameters)
            records = [instantiate(model, row) for row in result.rows]
            await preload(executor, records, model, query.preloads)
            destination[:] = records

        await self._run(ctx, FIND_MANY_STEP, "Failed to find records", operation)

    async def count(
        self,
        ctx: OperationContext | None,
        model: Any,
        conditions: Any = None,
        *args: Any,
    ) -> int:
        """Count the rows of ``model``'s table matching ``conditions``."""
        validate_context(ctx)
        validate_model(model)

        sql, parameters = build_count(table_name(model), to_condition(conditions, args))

        async def operation(executor: QueryExecutor) -> int:
            result = await executor.execute_query(sql, parameters)
            return int(result.scalar() or 0)

        total = await self._run(ctx, COUNT_STEP, "Failed to count records", operation)
        return total or 0

    async def find_with_joins(
        self,
        ctx: OperationContext | None,
        destination: Any,
        config: JoinConfig | None,
    ) -> None:
        """
        Run a multi-table query described by ``config``.

        Rows land in a ``RecordList`` (as records), a plain list (as dicts)
        or a single record (first row).
        """
        validate_context(ctx)
        validate_destination(destination)
        validate_join_config(config)

        model = _destination_model(destination)
        if config.preloads:
            if model is None:
                raise ModelRequiredError("preloads require a record destination")
            validate_preloads(model, config.preloads)

        condition = Equality(config.conditions) if config.conditions else None
        query = build_join_query(config, condition)
        sql, parameters = query.build()

        async def operation(executor: QueryExecutor) -> None:
            result = await executor.execute_query(sql, parameters)
            records = _scan_rows(destination, result.rows)
            if model is not None:
                await preload(executor, records, model, query.preloads)

        await self._run(ctx, JOIN_QUERY_STEP, "Failed to execute join query", operation)

    async def execute_raw_query(
        self,
        ctx: OperationContext | None,
        destination: Any,
        query: str | None,
        *args: Any,
    ) -> QueryResult:
        """
        Execute a raw SQL statement with ``?`` placeholders.

        With ``destination=None`` the statement is treated as a mutation and
        its affected row count is reported; otherwise its rows are scanned
        into ``destination`` and the scanned row count is reported.
        """
        validate_context(ctx)
        if destination is not None:
            validate_destination(destination)
        validate_query(query)

        parameters = list(args)

        async def operation(executor: QueryExecutor) -> QueryResult:
            if destination is None:
                rows_affected = await executor.execute_command(query, parameters)
                return QueryResult.from_rows_affected(rows_affected)
            result = await executor.execute_query(query, parameters)
            _scan_rows(destination, result.rows)
            return QueryResult.from_rows_affected(result.row_count)

        return await self._run(ctx, RAW_QUERY_STEP, "Failed to execute raw query", operation)

    async def find_page(
        self,
        ctx: OperationContext | None,
        destination: Any,
        conditions: Any = None,
        *args: Any,
        pagination: PaginationOptions | None = None,
        order_by: str = "",
        preloads: Iterable[str] = (),
    ) -> Pagination:
        """
        Load one page of records and report the pagination metadata.

        Returns:
            Pagination with total items/pages computed from a matching count
        """
        validate_context(ctx)
        validate_destination(destination)
        model = _list_model(destination)

        pagination = pagination or PaginationOptions()
        page, limit, _ = normalize_pagination(pagination.page, pagination.limit)

        total = await self.count(ctx, model, conditions, *args)
        options = QueryOptions(
            pagination=PaginationOptions(page=page, limit=limit),
            order_by=order_by,
            preloads=tuple(preloads),
        )
        await self.find_many(ctx, destination, conditions, *args, options=options)
        return build_pagination(total, page, limit)

    async def ping(self) -> bool:
        return await self.connection.ping()

    async def connection_info(self) -> dict[str, Any]:
        return await self.connection.get_connection_info()

    # Transactions

    async def with_transaction(self, ctx: OperationContext | None, fn: UnitOfWork) -> T:
        """
        Run ``fn`` inside a transaction and commit or roll back on its outcome.

        ``fn`` receives a ``Database`` bound to the transaction and is called
        exactly once. If it raises, the transaction is rolled back and the
        same exception propagates; cancellation and other aborts also roll
        back before propagating. Called on a transaction-bound ``Database``
        the unit of work joins the active transaction instead of nesting.

        Returns:
            Whatever ``fn`` returns

        Raises:
            TransactionFunctionRequiredError: If ``fn`` is missing
            TransactionAbortedError: If a joined unit of work failed and the
                transaction could therefore not be committed
            DatabaseError: If begin or commit fails
        """
        validate_context(ctx)
        validate_transaction_function(fn)

        if self._transaction is not None:
            return await self._join_transaction(ctx, fn)

        self.logger.debug(ctx, TRANSACTION_STEP, "Starting database transaction")
        try:
            transaction = await self.connection.begin()
        except Exception as exc:
            error = self._classify(ctx, exc, TRANSACTION_STEP, "Failed to begin transaction")
            if error is exc:
                raise
            raise error from None

        try:
            result = await fn(self._bind(transaction))
        except BaseException as exc:
            await self._rollback(ctx, transaction, exc)
            raise

        if transaction.rollback_only:
            await self._rollback(ctx, transaction, None)
            raise TransactionAbortedError(
                "transaction was rolled back because a joined unit of work failed"
            )

        try:
            await transaction.commit()
        except Exception as exc:
            error = self._classify(ctx, exc, TRANSACTION_STEP, "Failed to commit transaction")
            if error is exc:
                raise
            raise error from None

        self.logger.debug(ctx, TRANSACTION_STEP, "Transaction committed successfully")
        return result

    async def _join_transaction(self, ctx: OperationContext, fn: UnitOfWork) -> T:
        if not self._transaction.is_active:
            raise TransactionClosedError()

        self.logger.debug(ctx, TRANSACTION_STEP, "Joining active database transaction")
        try:
            return await fn(self)
        except BaseException:
            self._transaction.mark_rollback_only()
            raise

    async def _rollback(self, ctx: OperationContext, transaction: TransactionHandle,
                        cause: BaseException | None) -> None:
        reason = "joined unit of work failure" if cause is None else type(cause).__name__
        try:
            await asyncio.shield(transaction.rollback())
        except Exception as rollback_error:
            self.logger.error(
                ctx, TRANSACTION_STEP, "Failed to rollback transaction",
                reason=reason, rollback_error=str(rollback_error),
            )
            return

        if cause is None or isinstance(cause, Exception):
            self.logger.debug(ctx, TRANSACTION_STEP, "Transaction rolled back due to error",
                              reason=reason)
        else:
            self.logger.warning(ctx, TRANSACTION_STEP, "Transaction rolled back due to abort",
                                reason=reason)

    def _bind(self, transaction: TransactionHandle) -> "Database":
        return Database(
            self.connection,
            logger=self.logger,
            slow_query_threshold_ms=self.slow_query_threshold_ms,
            transaction=transaction,
        )

    # Execution pipeline

    def _executor(self) -> QueryExecutor:
        if self._transaction is not None:
            if not self._transaction.is_active:
                raise TransactionClosedError()
            return self._transaction.executor
        return self.connection.executor()

    async def _run(
        self,
        ctx: OperationContext,
        step: str,
        message: str,
        operation: Callable[[QueryExecutor], Awaitable[T]],
    ) -> T | None:
        """Execute ``operation`` on the bound executor and classify its failures.

        Returns None when the engine reported "no rows found".
        """
        started = time.perf_counter()
        try:
            executor = self._executor()
            if ctx.timeout is not None:
                result = await asyncio.wait_for(operation(executor), ctx.timeout)
            else:
                result = await operation(executor)
        except Exception as exc:
            error = self._classify(ctx, exc, step, message)
            if error is None:
                return None
            if error is exc:
                raise
            raise error from None

        elapsed_ms = (time.perf_counter() - started) * 1000
        if elapsed_ms > self.slow_query_threshold_ms:
            self.logger.warning(ctx, step, "Slow database operation",
                                elapsed_ms=round(elapsed_ms, 2))
        else:
            self.logger.debug(ctx, step, "Completed", elapsed_ms=round(elapsed_ms, 2))
        return result

    def _classify(self, ctx: OperationContext, error: Exception, step: str,
                  message: str) -> BaseException | None:
        classified = handle_database_error(ctx, self.logger, error, step, message)
        if classified is None and step in (TRANSACTION_STEP, CREATE_STEP, UPDATE_STEP):
            return DatabaseError()
        return classified

    async def _insert(self, ctx: OperationContext, record: Any) -> dict[str, Any]:
        """Insert one record and return the values to write back into it."""
        values = column_values(record)
        now = None
        for column in (CREATED_AT, UPDATED_AT):
            if column in values and values[column] is None:
                now = now or _now()
                values[column] = now
        values = {column: value for column, value in values.items() if value is not None}

        sql, parameters = build_insert(table_name(record), values)

        async def operation(executor: QueryExecutor) -> dict[str, Any]:
            result = await executor.execute_query(sql, parameters)
            return {**values, **(result.first() or {})}

        return await self._run(ctx, CREATE_STEP, "Failed to create record", operation)


def _now() -> datetime:
    # Naive UTC, stored as-is in TIMESTAMP columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _primary_key_order(model: type) -> str:
    return ", ".join(quote_identifier(column) for column in primary_key(model))


def _list_model(destination: Any) -> type:
    if not isinstance(destination, RecordList):
        raise ModelRequiredError("destination must be a RecordList bound to a record type")
    return destination.model


def _destination_model(destination: Any) -> type | None:
    if isinstance(destination, RecordList):
        return destination.model
    if is_record(destination):
        return type(destination)
    return None


def _scan_rows(destination: Any, rows: list[dict[str, Any]]) -> list[Any]:
    """Write rows into a destination; returns the records that were populated."""
    if isinstance(destination, RecordList):
        records = [instantiate(destination.model, row) for row in rows]
        destination[:] = records
        return records
    if isinstance(destination, MutableSequence):
        destination[:] = [dict(row) for row in rows]
        return []
    if isinstance(destination, MutableMapping):
        if rows:
            destination.update(rows[0])
        return []
    if rows:
        populate(destination, rows[0])
        return [destination]
    return []
