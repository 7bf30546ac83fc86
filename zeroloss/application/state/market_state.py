"""
ZeroLoss – Market State
=========================
Estado en memoria de UN símbolo/timeframe: vela en formación, historial
acotado de velas cerradas, último precio y contadores.

PROPIEDAD:
- Cada CandleAggregator crea y posee su propio MarketState. No existe un
  estado global compartido entre símbolos.
- Hacia afuera solo salen snapshots inmutables (Candle, tuple).

PROTECCIÓN DE MEMORIA:
- El historial usa collections.deque con maxlen → descarta automáticamente
  las velas más antiguas (FIFO). O(1) en append.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from zeroloss.domain.entities.candle import Candle


def _history(capacity: int) -> Deque[Candle]:
    return deque(maxlen=capacity)


@dataclass
class MarketState:
    """Estado de mercado para UN símbolo y timeframe."""

    symbol: str
    interval: int
    capacity: int = 100
    history: Deque[Candle] = field(default=None)  # type: ignore[assignment]
    last_price: float = 0.0
    last_update_ts: Optional[float] = None

    # Contadores de monitoreo
    total_updates: int = 0
    total_candles: int = 0
    rejected_stale: int = 0
    rejected_invalid: int = 0

    def __post_init__(self) -> None:
        if self.history is None:
            self.history = _history(self.capacity)

    def push(self, candle: Candle) -> None:
        """Añadir una vela cerrada; deque(maxlen) evicta la más antigua."""
        self.history.append(candle)
        self.total_candles += 1

    @property
    def last_bucket(self) -> Optional[float]:
        return self.history[-1].bucket_start if self.history else None

    def snapshot(self) -> dict:
        """Snapshot para diagnóstico / API."""
        return {
            "symbol": self.symbol,
            "interval": self.interval,
            "last_price": self.last_price,
            "last_update_ts": self.last_update_ts,
            "candles_in_buffer": len(self.history),
            "capacity": self.capacity,
            "total_updates": self.total_updates,
            "total_candles": self.total_candles,
            "rejected_stale": self.rejected_stale,
            "rejected_invalid": self.rejected_invalid,
        }
