"""
Record metadata helpers.

Records are caller-defined, non-frozen dataclasses. This module derives the
table name, primary key, columns and associations of a record type, and moves
values between records and row dictionaries.

    @dataclass
    class User:
        __tablename__ = "users"

        id: int | None = None
        name: str = ""
        orders: list["Order"] = has_many(lambda: Order, foreign_key="user_id")
"""

import dataclasses
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Iterable

from dalkit.domain.exceptions import RecordDefinitionError

ASSOCIATION_METADATA_KEY = "dalkit_association"


class AssociationKind(Enum):
    """Supported association shapes."""

    HAS_MANY = "has_many"
    HAS_ONE = "has_one"
    BELONGS_TO = "belongs_to"


@dataclass(frozen=True)
class Association:
    """Describes how a record field is loaded from another table.

    For ``HAS_MANY``/``HAS_ONE`` the ``foreign_key`` column lives on the target
    and points at ``references`` on the owner. For ``BELONGS_TO`` the
    ``foreign_key`` column lives on the owner and points at ``references`` on
    the target.
    """

    name: str
    kind: AssociationKind
    target: Any
    foreign_key: str
    references: str = "id"

    @property
    def target_model(self) -> type:
        target = self.target
        if not isinstance(target, type):
            target = target()
        if not is_record_type(target):
            raise RecordDefinitionError(
                f"association '{self.name}' does not point at a record type"
            )
        return target

    @property
    def many(self) -> bool:
        return self.kind is AssociationKind.HAS_MANY


def _association_field(kind: AssociationKind, target: Any, foreign_key: str,
                       references: str) -> Any:
    metadata = {
        ASSOCIATION_METADATA_KEY: {
            "kind": kind,
            "target": target,
            "foreign_key": foreign_key,
            "references": references,
        }
    }
    if kind is AssociationKind.HAS_MANY:
        return field(default_factory=list, compare=False, repr=False, metadata=metadata)
    return field(default=None, compare=False, repr=False, metadata=metadata)


def has_many(target: type | Callable[[], type], foreign_key: str, references: str = "id") -> Any:
    """Declare a one-to-many association field."""
    return _association_field(AssociationKind.HAS_MANY, target, foreign_key, references)


def has_one(target: type | Callable[[], type], foreign_key: str, references: str = "id") -> Any:
    """Declare a one-to-one association whose foreign key lives on the target."""
    return _association_field(AssociationKind.HAS_ONE, target, foreign_key, references)


def belongs_to(target: type | Callable[[], type], foreign_key: str, references: str = "id") -> Any:
    """Declare an association whose foreign key lives on this record."""
    return _association_field(AssociationKind.BELONGS_TO, target, foreign_key, references)


class RecordList(list):
    """A list destination bound to the record type it holds."""

    def __init__(self, model: type, iterable: Iterable[Any] = ()):
        if not is_record_type(model):
            raise RecordDefinitionError(f"{model!r} is not a record type")
        super().__init__(iterable)
        self.model = model

    def __repr__(self) -> str:
        return f"RecordList({self.model.__name__}, {list.__repr__(self)})"


def is_record_type(obj: Any) -> bool:
    """Check whether ``obj`` is a dataclass type usable as a record."""
    return isinstance(obj, type) and dataclasses.is_dataclass(obj)


def is_record(obj: Any) -> bool:
    """Check whether ``obj`` is a record instance."""
    return dataclasses.is_dataclass(obj) and not isinstance(obj, type)


def is_frozen(obj: Any) -> bool:
    params = getattr(type(obj), "__dataclass_params__", None)
    return bool(params and params.frozen)


def record_type(obj: Any) -> type:
    """Resolve the record type behind a class, instance or ``RecordList``."""
    if isinstance(obj, RecordList):
        return obj.model
    if is_record_type(obj):
        return obj
    if is_record(obj):
        return type(obj)
    raise RecordDefinitionError(f"{type(obj).__name__} is not a record type")


def _snake_case(name: str) -> str:
    name = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name).lower()


def _pluralize(name: str) -> str:
    if name.endswith("y") and not name.endswith(("ay", "ey", "iy", "oy", "uy")):
        return name[:-1] + "ies"
    if name.endswith(("s", "x", "z", "ch", "sh")):
        return name + "es"
    return name + "s"


@lru_cache(maxsize=256)
def _table_name_for(model: type) -> str:
    explicit = getattr(model, "__tablename__", None)
    if explicit:
        return explicit
    return _pluralize(_snake_case(model.__name__))


def table_name(model: Any) -> str:
    """Table name of a record type, record, ``RecordList`` or table string."""
    if isinstance(model, str):
        return model
    return _table_name_for(record_type(model))


def primary_key(model: Any) -> tuple[str, ...]:
    declared = getattr(record_type(model), "__primary_key__", "id")
    if isinstance(declared, str):
        return (declared,)
    return tuple(declared)


@lru_cache(maxsize=256)
def _columns_for(model: type) -> tuple[str, ...]:
    return tuple(
        f.name for f in dataclasses.fields(model)
        if ASSOCIATION_METADATA_KEY not in f.metadata and not f.name.startswith("_")
    )


def column_names(model: Any) -> tuple[str, ...]:
    return _columns_for(record_type(model))


@lru_cache(maxsize=256)
def _associations_for(model: type) -> dict[str, Association]:
    associations = {}
    for f in dataclasses.fields(model):
        declared = f.metadata.get(ASSOCIATION_METADATA_KEY)
        if declared is not None:
            associations[f.name] = Association(name=f.name, **declared)
    return associations


def associations(model: Any) -> dict[str, Association]:
    return _associations_for(record_type(model))


def get_association(model: Any, name: str) -> Association:
    found = associations(model).get(name)
    if found is None:
        raise RecordDefinitionError(
            f"{record_type(model).__name__} has no association named '{name}'"
        )
    return found


def is_zero(value: Any) -> bool:
    """Zero values are skipped when a record is used as a query template."""
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    if isinstance(value, (str, bytes, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def column_values(record: Any, skip_none: bool = False) -> dict[str, Any]:
    """Column values of a record, in declaration order."""
    values = {}
    for name in column_names(record):
        value = getattr(record, name)
        if skip_none and value is None:
            continue
        values[name] = value
    return values


def template_values(record: Any) -> dict[str, Any]:
    """Non-zero column values of a record used as a query template."""
    return {name: value for name, value in column_values(record).items() if not is_zero(value)}


def primary_key_values(record: Any) -> dict[str, Any] | None:
    """Primary key values of a record, or None if any of them is unset."""
    values = {}
    for name in primary_key(record):
        value = getattr(record, name, None)
        if value is None:
            return None
        values[name] = value
    return values


def populate(record: Any, row: Mapping[str, Any]) -> Any:
    """Copy the row values for known columns onto an existing record."""
    for name in column_names(record):
        if name in row:
            setattr(record, name, row[name])
    return record


def instantiate(model: type, row: Mapping[str, Any]) -> Any:
    """Build a new record from a row, ignoring columns the record does not know.

    Required fields missing from the row are set to None.
    """
    columns = set(column_names(model))
    kwargs = {}
    for f in dataclasses.fields(model):
        if not f.init:
            continue
        if f.name in columns and f.name in row:
            kwargs[f.name] = row[f.name]
        elif f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
            kwargs[f.name] = None
    return model(**kwargs)
