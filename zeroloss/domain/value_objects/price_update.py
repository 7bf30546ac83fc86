"""
ZeroLoss – Domain Value Object: PriceUpdate
=============================================
Actualización de precio/vela recibida del feed (kline de Binance,
replay histórico o tick simple).

- frozen=True → inmutable, seguro para pasar entre coroutines.
- slots=True  → menor footprint de memoria en hot-path.

Un tick de precio simple se representa con open=high=low=close.

`timestamp` decide el bucket de la vela; `event_time` (opcional) es la
hora real del evento y es la que se registra en trades y alertas.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


def ohlcv_is_valid(
    open_: float, high: float, low: float, close: float, volume: float, timestamp: float,
) -> bool:
    """Chequeo común a updates y velas: finitos, precios > 0, OHLC coherente."""
    values = (timestamp, open_, high, low, close, volume)
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in values):
        return False
    if min(open_, high, low, close) <= 0 or volume < 0:
        return False
    if high < low:
        return False
    return high >= max(open_, close) and low <= min(open_, close)


@dataclass(frozen=True, slots=True)
class PriceUpdate:
    """Update OHLCV atómico para un símbolo."""

    symbol: str
    timestamp: float   # epoch (segundos) del update
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    event_time: float | None = None  # hora real del evento si difiere de timestamp

    @classmethod
    def from_price(
        cls, symbol: str, timestamp: float, price: float, volume: float = 0.0,
    ) -> "PriceUpdate":
        """Construir un update a partir de un único precio (tick)."""
        return cls(
            symbol=symbol,
            timestamp=timestamp,
            open=price,
            high=price,
            low=price,
            close=price,
            volume=volume,
        )

    @property
    def is_valid(self) -> bool:
        """
        ¿El update es utilizable?

        Rechaza NaN/inf, precios no positivos, volumen negativo y
        OHLC incoherente (high < low, high por debajo de open/close...).
        """
        return ohlcv_is_valid(
            self.open, self.high, self.low, self.close, self.volume, self.timestamp,
        )

    @property
    def event_ts(self) -> float:
        """Hora a registrar en trades y alertas (evento real si se conoce)."""
        return self.event_time if self.event_time is not None else self.timestamp

    def to_dict(self) -> dict:
        """Serialización para EventBus / API."""
        return {
            "symbol": self.symbol,
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "event_time": self.event_ts,
        }
