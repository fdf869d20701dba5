"""Eager loading of record associations.

Preload paths name association fields, dotted for nested levels
(``"orders.items"``). Each level is loaded with one ``IN`` query.
"""

import logging
from typing import Any, Iterable

from dalkit.domain.records import (
    AssociationKind,
    get_association,
    instantiate,
    primary_key,
    table_name,
)

from .conditions import Equality
from .query_builder import SelectQuery, quote_identifier
from .query_executor import QueryExecutor

logger = logging.getLogger(__name__)

PreloadTree = dict[str, "PreloadTree"]


def build_preload_tree(paths: Iterable[str]) -> PreloadTree:
    tree: PreloadTree = {}
    for path in paths:
        if not path:
            continue
        node = tree
        for name in path.split("."):
            node = node.setdefault(name, {})
    return tree


def validate_preloads(model: type, paths: Iterable[str]) -> None:
    """Check that every preload path names existing associations.

    Raises:
        RecordDefinitionError: If a path segment is not an association
    """
    _validate_tree(model, build_preload_tree(paths))


def _validate_tree(model: type, tree: PreloadTree) -> None:
    for name, children in tree.items():
        association = get_association(model, name)
        if children:
            _validate_tree(association.target_model, children)


async def preload(executor: QueryExecutor, records: list[Any], model: type,
                  paths: Iterable[str]) -> None:
    """Populate the association fields named by ``paths`` on ``records``."""
    tree = build_preload_tree(paths)
    if records and tree:
        await _load_level(executor, records, model, tree)


async def _load_level(executor: QueryExecutor, records: list[Any], model: type,
                      tree: PreloadTree) -> None:
    for name, children in tree.items():
        association = get_association(model, name)
        target = association.target_model

        if association.kind is AssociationKind.BELONGS_TO:
            keys = _distinct(getattr(record, association.foreign_key, None) for record in records)
            loaded = await _fetch(executor, target, association.references, keys)
            by_key = {getattr(item, association.references): item for item in loaded}
            for record in records:
                setattr(record, name, by_key.get(getattr(record, association.foreign_key, None)))
        else:
            keys = _distinct(getattr(record, association.references, None) for record in records)
            loaded = await _fetch(executor, target, association.foreign_key, keys)
            grouped: dict[Any, list[Any]] = {}
            for item in loaded:
                grouped.setdefault(getattr(item, association.foreign_key), []).append(item)
            for record in records:
                related = grouped.get(getattr(record, association.references, None), [])
                if association.many:
                    setattr(record, name, related)
                else:
                    setattr(record, name, related[0] if related else None)

        logger.debug(f"Preloaded {len(loaded)} {target.__name__} rows for '{name}'")

        if children and loaded:
            await _load_level(executor, loaded, target, children)


async def _fetch(executor: QueryExecutor, target: type, column: str, keys: list[Any]) -> list[Any]:
    if not keys:
        return []
    query = SelectQuery(table_name(target)).where(Equality({column: keys}))
    query.order(", ".join(quote_identifier(key) for key in primary_key(target)))
    sql, parameters = query.build()
    result = await executor.execute_query(sql, parameters)
    return [instantiate(target, row) for row in result.rows]


def _distinct(values: Iterable[Any]) -> list[Any]:
    seen = []
    for value in values:
        if value is not None and value not in seen:
            seen.append(value)
    return seen
