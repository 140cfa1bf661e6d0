class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class StoreError(Exception):
    """Base exception for ledger storage problems."""


class StoreUnavailableError(StoreError):
    """Raised when the backing store cannot serve a read or a commit."""
