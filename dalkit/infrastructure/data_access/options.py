"""Value types describing query options, join configurations and results."""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 10


@dataclass(frozen=True)
class PaginationOptions:
    """Requested page (1-based) and page size.

    Out-of-range values are normalized when applied, never rejected.
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_PAGE_LIMIT


@dataclass(frozen=True)
class QueryOptions:
    """Optional modifiers for multi-record reads."""

    pagination: PaginationOptions | None = None
    order_by: str = ""
    preloads: tuple[str, ...] = ()


@dataclass(frozen=True)
class JoinClause:
    """One ``{type} JOIN {table} ON {on}`` clause.

    ``type`` is one of INNER, LEFT, RIGHT or FULL; ``table`` and ``on`` are
    trusted SQL fragments and may reference tables joined earlier.
    """

    type: str
    table: str
    on: str


@dataclass(frozen=True)
class JoinConfig:
    """Structured description of a multi-table query."""

    base_table: str
    joins: list[JoinClause] = field(default_factory=list)
    conditions: dict[str, Any] = field(default_factory=dict)
    preloads: list[str] = field(default_factory=list)
    select: str = ""
    limit: int = 0
    offset: int = 0
    order_by: str = ""


@dataclass(frozen=True)
class QueryResult:
    """Outcome of a raw statement.

    ``found`` disambiguates "no error, no rows" from "no error, rows affected".
    """

    rows_affected: int
    found: bool

    @classmethod
    def from_rows_affected(cls, rows_affected: int) -> "QueryResult":
        return cls(rows_affected=rows_affected, found=rows_affected > 0)


@dataclass(frozen=True)
class Pagination:
    """Pagination metadata returned alongside a page of records."""

    total_pages: int
    total_items: int
    page: int
    limit: int


def build_pagination(total: int, page: int, limit: int) -> Pagination:
    """Build pagination metadata for ``total`` items split into ``limit``-sized pages."""
    if limit < 1:
        limit = DEFAULT_PAGE_LIMIT
    total_pages = (total + limit - 1) // limit
    return Pagination(
        total_pages=total_pages,
        total_items=total,
        page=page,
        limit=limit,
    )
