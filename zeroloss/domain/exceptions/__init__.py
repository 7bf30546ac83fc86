"""Domain exceptions."""
from zeroloss.domain.exceptions.domain_errors import (
    DomainError,
    InvalidSignalError,
    InvalidTradeError,
    ValidationError,
    ProviderUnavailableError,
)

__all__ = [
    "DomainError",
    "InvalidSignalError",
    "InvalidTradeError",
    "ValidationError",
    "ProviderUnavailableError",
]
