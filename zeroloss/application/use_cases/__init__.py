"""Application use cases - Orquestación del pipeline por símbolo."""

from zeroloss.application.use_cases.generate_signal_usecase import (
    GenerateSignalUseCase,
    GenerateSignalResult,
)
from zeroloss.application.use_cases.process_update_usecase import (
    ProcessUpdateUseCase,
    SymbolPipeline,
    UpdateResult,
)

__all__ = [
    "GenerateSignalUseCase",
    "GenerateSignalResult",
    "ProcessUpdateUseCase",
    "SymbolPipeline",
    "UpdateResult",
]
