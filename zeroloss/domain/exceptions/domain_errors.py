"""
ZeroLoss – Domain Exceptions
==============================
Excepciones específicas del dominio de negocio.

Estas excepciones capturan errores de lógica de negocio,
NO errores técnicos (esos van en infrastructure).

JERARQUÍA:
    DomainError (base)
    ├── InvalidSignalError
    ├── InvalidTradeError
    ├── ValidationError
    └── ProviderUnavailableError

NOTA: los datos de mercado inválidos NUNCA levantan excepción; se
descartan y se cuentan. Solo la construcción de entidades falla en voz alta.
"""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Excepción base para errores de dominio."""

    def __init__(self, message: str, code: str = "DOMAIN_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class InvalidSignalError(DomainError):
    """Error cuando una señal no cumple los requisitos de negocio."""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message, code="INVALID_SIGNAL")
        self.reason = reason


class InvalidTradeError(DomainError):
    """Error cuando un trade tiene datos inválidos o transición ilegal."""

    def __init__(self, message: str, trade_id: str | None = None):
        super().__init__(message, code="INVALID_TRADE")
        self.trade_id = trade_id


class ValidationError(DomainError):
    """Error de validación general de datos de dominio."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.value = value


class ProviderUnavailableError(DomainError):
    """El proveedor externo de señales no está configurado o no responde."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message, code="PROVIDER_UNAVAILABLE")
        self.provider = provider
