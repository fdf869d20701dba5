"""Call context passed to every data access operation."""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping
from uuid import uuid4


@dataclass(frozen=True)
class OperationContext:
    """Request-scoped context for a database call.

    Attributes:
        request_id: Correlation id attached to every log line of the call
        timeout: Upper bound in seconds for each engine operation (None = unbounded)
        fields: Extra structured fields attached to log lines
    """

    request_id: str | None = None
    timeout: float | None = None
    fields: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def background(cls) -> "OperationContext":
        """Context with no deadline and a fresh request id."""
        return cls(request_id=uuid4().hex)

    def with_timeout(self, seconds: float | None) -> "OperationContext":
        return replace(self, timeout=seconds)

    def with_fields(self, **fields: Any) -> "OperationContext":
        merged = dict(self.fields)
        merged.update(fields)
        return replace(self, fields=MappingProxyType(merged))

    def log_fields(self) -> dict[str, Any]:
        """Fields describing this context for structured log output."""
        data = dict(self.fields)
        if self.request_id:
            data["request_id"] = self.request_id
        return data
