"""Domain-level exceptions for dalkit."""


class DomainError(Exception):
    """Base exception for all dalkit errors."""

    pass


class DomainValidationError(DomainError):
    """Raised when a value handed to dalkit fails validation."""

    pass


class RecordDefinitionError(DomainValidationError):
    """A record type cannot be used (not a dataclass, unknown association...)."""

    code = "invalid_record"

    def __init__(self, message: str = "record type is invalid"):
        self.message = message
        super().__init__(message)
