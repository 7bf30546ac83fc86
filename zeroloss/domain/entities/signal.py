"""
ZeroLoss – Domain Entity: Signal
==================================
Señal de trading inmutable (BUY / SELL / HOLD).

DECISIONES DE DISEÑO:
- frozen=True → inmutable una vez generada. Cada evaluación produce
  una señal NUEVA; nadie modifica una señal emitida.
- Sin id aleatorio: dos evaluaciones con las mismas entradas producen
  señales iguales (==), lo que hace testeable al scorer local.
- source indica quién la produjo: "local", "remote" o "fallback"
  (scorer local usado porque el proveedor remoto falló).

CAMPOS:
- signal_type:   BUY | SELL | HOLD
- confidence:    entero 0–99 (heurístico, no probabilidad real)
- trend:         UP | DOWN | SIDEWAYS
- support / resistance: niveles derivados del último close
- suggested_sl / suggested_tp: solo para BUY/SELL
- reasoning:     texto determinista con los factores que dispararon
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SignalType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Trend(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    SIDEWAYS = "SIDEWAYS"


MAX_CONFIDENCE = 99


@dataclass(frozen=True, slots=True)
class Signal:
    """Señal de trading inmutable."""

    signal_type: SignalType
    confidence: int
    trend: Trend
    support: float
    resistance: float
    reasoning: str
    suggested_sl: Optional[float] = None
    suggested_tp: Optional[float] = None
    symbol: str = ""
    price: float = 0.0           # close de la vela evaluada
    candle_timestamp: float = 0.0
    score: float = 0.0
    source: str = "local"

    def __post_init__(self) -> None:
        # Normalizar a enums aunque lleguen como string (proveedor remoto)
        object.__setattr__(self, "signal_type", SignalType(self.signal_type))
        object.__setattr__(self, "trend", Trend(self.trend))
        object.__setattr__(
            self, "confidence", max(0, min(MAX_CONFIDENCE, int(self.confidence))),
        )

    @property
    def is_actionable(self) -> bool:
        return self.signal_type != SignalType.HOLD

    def to_dict(self) -> dict:
        """Serialización para API / WebSocket."""
        return {
            "symbol": self.symbol,
            "signal_type": self.signal_type.value,
            "confidence": self.confidence,
            "trend": self.trend.value,
            "support": round(self.support, 5),
            "resistance": round(self.resistance, 5),
            "suggested_sl": round(self.suggested_sl, 5) if self.suggested_sl is not None else None,
            "suggested_tp": round(self.suggested_tp, 5) if self.suggested_tp is not None else None,
            "price": round(self.price, 5),
            "candle_timestamp": self.candle_timestamp,
            "score": round(self.score, 3),
            "source": self.source,
            "reasoning": self.reasoning,
        }
