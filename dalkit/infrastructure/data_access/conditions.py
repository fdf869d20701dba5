"""Query conditions.

A condition is one of three variants:

* :class:`Equality` - column/value pairs AND-ed together,
* :class:`Template` - a partial record whose non-zero columns become an Equality,
* :class:`Raw` - a parameterized SQL predicate with positional arguments.

Callers usually pass a mapping, a record or a string and let
:func:`to_condition` pick the variant. ``None`` means "no filter".
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from dalkit.domain.records import is_record, template_values

from .exceptions import InvalidQueryError

QuoteFn = Callable[[str], str]


class Condition(ABC):
    """A predicate rendered as a SQL fragment plus its parameters."""

    @abstractmethod
    def to_sql(self, quote: QuoteFn) -> tuple[str, list[Any]]:
        """Render the predicate.

        Returns:
            Tuple of (SQL fragment, parameters). An empty fragment means no filter.
        """
        pass


@dataclass(frozen=True)
class Equality(Condition):
    values: Mapping[str, Any]

    def to_sql(self, quote: QuoteFn) -> tuple[str, list[Any]]:
        clauses = []
        parameters: list[Any] = []
        for column, value in self.values.items():
            column_sql = quote(column)
            if value is None:
                clauses.append(f"{column_sql} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                items = list(value)
                if not items:
                    clauses.append("1 = 0")
                    continue
                placeholders = ", ".join("?" for _ in items)
                clauses.append(f"{column_sql} IN ({placeholders})")
                parameters.extend(items)
            else:
                clauses.append(f"{column_sql} = ?")
                parameters.append(value)
        return " AND ".join(clauses), parameters


@dataclass(frozen=True)
class Template(Condition):
    record: Any

    def to_sql(self, quote: QuoteFn) -> tuple[str, list[Any]]:
        return Equality(template_values(self.record)).to_sql(quote)


@dataclass(frozen=True)
class Raw(Condition):
    sql: str
    args: tuple[Any, ...] = ()

    def to_sql(self, quote: QuoteFn) -> tuple[str, list[Any]]:
        if not self.sql.strip():
            return "", []
        return f"({self.sql})", list(self.args)


@dataclass(frozen=True)
class Expr:
    """A raw SQL expression used as an update value, e.g. ``Expr("stock - ?", 1)``."""

    sql: str
    args: tuple[Any, ...] = field(default=())

    def __init__(self, sql: str, *args: Any):
        object.__setattr__(self, "sql", sql)
        object.__setattr__(self, "args", args)


def to_condition(conditions: Any, args: tuple[Any, ...] = ()) -> Condition | None:
    """Coerce a caller-supplied condition into a :class:`Condition`.

    Raises:
        InvalidQueryError: If the value has no condition form, or positional
            arguments accompany something other than a string condition
    """
    if conditions is None:
        if args:
            raise InvalidQueryError("positional arguments require a string condition")
        return None
    if isinstance(conditions, Raw):
        return Raw(conditions.sql, conditions.args + tuple(args)) if args else conditions
    if isinstance(conditions, str):
        return Raw(conditions, tuple(args))
    if args:
        raise InvalidQueryError("positional arguments require a string condition")
    if isinstance(conditions, Condition):
        return conditions
    if isinstance(conditions, Mapping):
        return Equality(dict(conditions))
    if is_record(conditions):
        return Template(conditions)
    raise InvalidQueryError(
        f"unsupported condition type: {type(conditions).__name__}"
    )
