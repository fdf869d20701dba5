"""Query builder composing SELECT statements from structured options.

Options are applied in a fixed order: select fields, joins, conditions,
preloads, ordering, pagination. Joins exist before conditions may reference
joined tables, and limit/offset are computed against the filtered, ordered set.
"""

import logging
import re
from typing import Any, Iterable

from .conditions import Condition, Expr
from .exceptions import InvalidQueryError
from .options import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_LIMIT,
    JoinClause,
    JoinConfig,
    PaginationOptions,
    QueryOptions,
)

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")
JOIN_TYPES = ("INNER", "LEFT", "RIGHT", "FULL")


def quote_identifier(identifier: str) -> str:
    """Quote a ``column`` or ``table.column`` identifier.

    Raises:
        InvalidQueryError: If the identifier contains anything but name characters
    """
    if not isinstance(identifier, str) or not _IDENTIFIER.match(identifier):
        raise InvalidQueryError(f"invalid identifier: {identifier!r}")
    return ".".join(f'"{part}"' for part in identifier.split("."))


def normalize_pagination(page: int, limit: int) -> tuple[int, int, int]:
    """Normalize a page request.

    Returns:
        Tuple of (page, limit, offset) with page >= 1 and limit >= 1
    """
    if page < 1:
        page = DEFAULT_PAGE
    if limit < 1:
        limit = DEFAULT_PAGE_LIMIT
    return page, limit, (page - 1) * limit


def render_join(clause: JoinClause) -> str:
    """Render a join clause as ``{TYPE} JOIN {table} ON {on}``."""
    join_type = (clause.type or "INNER").strip().upper()
    if join_type not in JOIN_TYPES:
        raise InvalidQueryError(f"unsupported join type: {clause.type!r}")
    if not clause.table or not clause.on:
        raise InvalidQueryError("join clause requires a table and an ON predicate")
    return f"{join_type} JOIN {clause.table} ON {clause.on}"


class SelectQuery:
    """Mutable SELECT statement under construction."""

    def __init__(self, table: str, quote_table: bool = True):
        self.table = quote_identifier(table) if quote_table else table
        self.columns = "*"
        self.joins: list[str] = []
        self.where_clauses: list[str] = []
        self.parameters: list[Any] = []
        self.preloads: list[str] = []
        self.order_by = ""
        self.limit: int | None = None
        self.offset: int | None = None

    def select(self, columns: str) -> "SelectQuery":
        if columns:
            self.columns = columns
        return self

    def join(self, clause: JoinClause) -> "SelectQuery":
        self.joins.append(render_join(clause))
        return self

    def where(self, condition: Condition | None) -> "SelectQuery":
        if condition is None:
            return self
        sql, parameters = condition.to_sql(quote_identifier)
        if sql:
            self.where_clauses.append(sql)
            self.parameters.extend(parameters)
        return self

    def preload(self, names: Iterable[str]) -> "SelectQuery":
        self.preloads.extend(name for name in names if name)
        return self

    def order(self, expression: str) -> "SelectQuery":
        if expression:
            self.order_by = expression
        return self

    def paginate(self, pagination: PaginationOptions) -> "SelectQuery":
        _, limit, offset = normalize_pagination(pagination.page, pagination.limit)
        self.limit = limit
        self.offset = offset
        return self

    def build(self) -> tuple[str, list[Any]]:
        """Render the statement.

        Returns:
            Tuple of (SQL query, parameters list)
        """
        query = f"SELECT {self.columns} FROM {self.table}"
        for join_sql in self.joins:
            query += f" {join_sql}"
        if self.where_clauses:
            query += f" WHERE {' AND '.join(self.where_clauses)}"
        if self.order_by:
            query += f" ORDER BY {self.order_by}"
        if self.limit is not None:
            query += f" LIMIT {int(self.limit)}"
        if self.offset:
            query += f" OFFSET {int(self.offset)}"
        return query, list(self.parameters)


def apply_query_options(query: SelectQuery, options: QueryOptions | None) -> SelectQuery:
    """Apply preloads, ordering and pagination in that order."""
    if options is None:
        return query
    query.preload(options.preloads)
    query.order(options.order_by)
    if options.pagination is not None:
        query.paginate(options.pagination)
    return query


def build_join_query(config: JoinConfig, condition: Condition | None) -> SelectQuery:
    """Compose base table, joins and options of a join configuration."""
    query = SelectQuery(config.base_table, quote_table=False)
    query.select(config.select)
    for clause in config.joins:
        query.join(clause)
    query.where(condition)
    query.preload(config.preloads)
    query.order(config.order_by)
    if config.limit > 0:
        query.limit = config.limit
    if config.offset > 0:
        query.offset = config.offset
    return query


def build_count(table: str, condition: Condition | None) -> tuple[str, list[Any]]:
    """Build COUNT query for records.

    Returns:
        Tuple of (SQL query, parameters list)
    """
    query = SelectQuery(table).select("COUNT(*) AS count").where(condition)
    return query.build()


def build_insert(table: str, values: dict[str, Any]) -> tuple[str, list[Any]]:
    """Build an INSERT ... RETURNING * statement for one row."""
    if values:
        columns = ", ".join(quote_identifier(column) for column in values)
        placeholders = ", ".join("?" for _ in values)
        query = (
            f"INSERT INTO {quote_identifier(table)} ({columns}) "
            f"VALUES ({placeholders}) RETURNING *"
        )
    else:
        query = f"INSERT INTO {quote_identifier(table)} DEFAULT VALUES RETURNING *"
    return query, list(values.values())


def build_update(table: str, updates: dict[str, Any],
                 conditions: list[Condition]) -> tuple[str, list[Any]]:
    """Build an UPDATE statement; ``Expr`` values are inlined with their arguments."""
    set_clauses = []
    parameters: list[Any] = []
    for column, value in updates.items():
        if isinstance(value, Expr):
            set_clauses.append(f"{quote_identifier(column)} = {value.sql}")
            parameters.extend(value.args)
        else:
            set_clauses.append(f"{quote_identifier(column)} = ?")
            parameters.append(value)

    query = f"UPDATE {quote_identifier(table)} SET {', '.join(set_clauses)}"

    where_clauses = []
    for condition in conditions:
        sql, condition_parameters = condition.to_sql(quote_identifier)
        if sql:
            where_clauses.append(sql)
            parameters.extend(condition_parameters)
    if where_clauses:
        query += f" WHERE {' AND '.join(where_clauses)}"

    logger.debug(f"Built update for {table} with {len(set_clauses)} columns")
    return query, parameters
