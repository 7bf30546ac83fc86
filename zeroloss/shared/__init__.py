"""
ZeroLoss – Shared Module
==========================
Utilidades transversales usadas por todas las capas.

- config/: Settings (pydantic-settings)
- logging/: Setup de logging

NOTA: Este módulo no contiene lógica de negocio.
"""

from zeroloss.shared.config.settings import settings
from zeroloss.shared.logging.logger import setup_logging, get_logger

__all__ = [
    "settings",
    "setup_logging",
    "get_logger",
]
