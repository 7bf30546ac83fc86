"""
ZeroLoss – Presentation Layer
===============================
API HTTP.

Este módulo contiene:
- api/: FastAPI routes

REGLA DE DEPENDENCIA:
Esta capa SOLO llama a use cases de application/.
"""

from zeroloss.presentation.api.routes import router, init_routes

__all__ = [
    "router",
    "init_routes",
]
