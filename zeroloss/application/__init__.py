"""
ZeroLoss – Application Layer
==============================
Capa de casos de uso y orquestación.

Este módulo contiene:
- use_cases/: Casos de uso (orquestadores de dominio)
- ports/: Interfaces hacia infraestructura (SignalProvider)
- services/: Motores con estado (agregador, indicadores, riesgo, alertas)
- state/: Estado de mercado por símbolo

REGLA DE DEPENDENCIA:
Esta capa puede importar de:
- domain/ (entidades, servicios, eventos)
- ports/ propios (interfaces hacia infra)

NO puede importar de:
- infrastructure/ (implementaciones concretas)
- presentation/ (API)
"""

from zeroloss.application.use_cases.generate_signal_usecase import (
    GenerateSignalUseCase,
    GenerateSignalResult,
)
from zeroloss.application.use_cases.process_update_usecase import (
    ProcessUpdateUseCase,
    UpdateResult,
)

__all__ = [
    "GenerateSignalUseCase",
    "GenerateSignalResult",
    "ProcessUpdateUseCase",
    "UpdateResult",
]
