"""
Precondition checks run before any engine interaction.

Every check is pure and order-independent; the facade calls them in a fixed
order (context, destination/model, operation-specific) and stops at the first
failure.
"""

from collections.abc import Mapping, MutableMapping, MutableSequence
from typing import Any

from dalkit.domain.records import is_frozen, is_record

from .context import OperationContext
from .exceptions import (
    BaseTableRequiredError,
    ConditionRequiredError,
    ContextRequiredError,
    DestinationMustBeReferenceError,
    DestinationRequiredError,
    JoinsRequiredError,
    ModelRequiredError,
    QueryRequiredError,
    TransactionFunctionRequiredError,
    UpdatesRequiredError,
)
from .options import JoinConfig


def validate_context(ctx: OperationContext | None) -> None:
    if ctx is None:
        raise ContextRequiredError()


def is_mutable_reference(value: Any) -> bool:
    """Check whether a destination refers to storage the DAL can write into."""
    if isinstance(value, type):
        return False
    if isinstance(value, (MutableSequence, MutableMapping)):
        return True
    return is_record(value) and not is_frozen(value)


def validate_destination(destination: Any) -> None:
    """
    Validate that results can be written into ``destination``.

    Raises:
        DestinationRequiredError: If destination is None
        DestinationMustBeReferenceError: If destination is an immutable value
    """
    if destination is None:
        raise DestinationRequiredError()
    if not is_mutable_reference(destination):
        raise DestinationMustBeReferenceError(
            f"destination must be a mutable reference, got {type(destination).__name__}"
        )


def validate_model(model: Any) -> None:
    if model is None or (isinstance(model, str) and not model.strip()):
        raise ModelRequiredError()


def validate_updates(updates: Mapping[str, Any] | None) -> None:
    if not updates:
        raise UpdatesRequiredError()


def validate_conditions(conditions: Any) -> None:
    if conditions is None:
        raise ConditionRequiredError()


def validate_query(query: str | None) -> None:
    if not query or not query.strip():
        raise QueryRequiredError()


def validate_join_config(config: JoinConfig | None) -> None:
    """
    Validate the structural requirements of a join query.

    Raises:
        BaseTableRequiredError: If the base table is missing
        JoinsRequiredError: If no join clause is given
    """
    if config is None or not config.base_table or not config.base_table.strip():
        raise BaseTableRequiredError()
    if not config.joins:
        raise JoinsRequiredError()


def validate_transaction_function(fn: Any) -> None:
    if fn is None or not callable(fn):
        raise TransactionFunctionRequiredError()
