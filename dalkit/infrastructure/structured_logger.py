"""Structured logging adapter used by the data access layer.

Diagnostics are emitted as ``(context, step, message, fields)`` on top of a
standard library logger, so they flow through whatever handlers
``dalkit.config.configure_logging`` (or the host application) installed.
"""

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dalkit.infrastructure.data_access.context import OperationContext


class StructuredLogger:
    """Adapter rendering ``[step] message`` with structured ``extra`` data."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("dalkit.database")

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, ctx: "OperationContext | None", step: str, message: str, **fields: Any) -> None:
        self.log(logging.DEBUG, ctx, step, message, **fields)

    def info(self, ctx: "OperationContext | None", step: str, message: str, **fields: Any) -> None:
        self.log(logging.INFO, ctx, step, message, **fields)

    def warning(self, ctx: "OperationContext | None", step: str, message: str, **fields: Any) -> None:
        self.log(logging.WARNING, ctx, step, message, **fields)

    def error(self, ctx: "OperationContext | None", step: str, message: str, **fields: Any) -> None:
        self.log(logging.ERROR, ctx, step, message, **fields)

    def log(self, level: int, ctx: "OperationContext | None", step: str, message: str,
            **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return

        context_fields = ctx.log_fields() if ctx is not None else {}
        all_fields = {**context_fields, **fields}
        rendered = " ".join(f"{key}={value}" for key, value in all_fields.items())

        self._logger.log(
            level,
            f"[{step}] {message}" + (f" {rendered}" if rendered else ""),
            extra={
                "step": step,
                "request_id": context_fields.get("request_id"),
                "fields": all_fields,
            },
        )
