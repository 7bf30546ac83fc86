"""
ZeroLoss – Domain Entity: Candle
==================================
Vela OHLCV inmutable construida a partir de updates agregados.

Decisiones de diseño:
- frozen=True → inmutable una vez cerrada, EVITA REPAINTING.
  Nadie puede alterar una vela pasada, garantizando integridad histórica.
- Se usa dataclass por rendimiento (más ligera que Pydantic para hot-path).
- La vela en formación vive en el CandleAggregator; hacia afuera solo
  salen snapshots Candle.
"""

from __future__ import annotations

from dataclasses import dataclass

from zeroloss.domain.value_objects.price_update import ohlcv_is_valid


@dataclass(frozen=True, slots=True)
class Candle:
    """Vela OHLCV con timestamp de apertura del bucket."""

    symbol: str          # e.g. "XAUUSD"
    bucket_start: float  # epoch de apertura alineado al intervalo
    open: float
    high: float
    low: float
    close: float
    volume: float
    interval: int        # duración en segundos de la vela
    update_count: int = 1

    @property
    def range(self) -> float:
        """Rango high − low de la vela."""
        return self.high - self.low

    @property
    def is_valid(self) -> bool:
        """Mismos chequeos que un PriceUpdate (velas históricas de REST/CSV)."""
        return ohlcv_is_valid(
            self.open, self.high, self.low, self.close, self.volume, self.bucket_start,
        )

    def to_dict(self) -> dict:
        """Serialización para WebSocket / frontend."""
        return {
            "symbol": self.symbol,
            "bucket_start": self.bucket_start,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "interval": self.interval,
            "update_count": self.update_count,
        }
