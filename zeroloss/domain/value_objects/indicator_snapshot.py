"""
ZeroLoss – Domain Value Object: IndicatorSnapshot
===================================================
Foto inmutable de los indicadores técnicos de un símbolo.

Siempre completa: cuando un indicador no tiene warm-up suficiente,
lleva su valor neutral documentado (ver IndicatorState), nunca None.
"""

from __future__ import annotations

from dataclasses import dataclass, field

NEUTRAL_RSI = 50.0
NEUTRAL_STOCH = 50.0


@dataclass(frozen=True, slots=True)
class Macd:
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0


@dataclass(frozen=True, slots=True)
class StochRsi:
    k: float = NEUTRAL_STOCH
    d: float = NEUTRAL_STOCH


@dataclass(frozen=True, slots=True)
class IndicatorSnapshot:
    """Snapshot de indicadores derivado de CandleHistory."""

    rsi: float = NEUTRAL_RSI
    ma50: float = 0.0
    ema20: float = 0.0
    ema50: float = 0.0
    macd: Macd = field(default_factory=Macd)
    stoch_rsi: StochRsi = field(default_factory=StochRsi)
    candles_seen: int = 0

    def to_dict(self) -> dict:
        """Serialización para API / WebSocket."""
        return {
            "rsi": round(self.rsi, 2),
            "ma50": round(self.ma50, 5),
            "ema20": round(self.ema20, 5),
            "ema50": round(self.ema50, 5),
            "macd": {
                "macd": round(self.macd.macd, 5),
                "signal": round(self.macd.signal, 5),
                "histogram": round(self.macd.histogram, 5),
            },
            "stoch_rsi": {
                "k": round(self.stoch_rsi.k, 2),
                "d": round(self.stoch_rsi.d, 2),
            },
            "candles_seen": self.candles_seen,
        }
