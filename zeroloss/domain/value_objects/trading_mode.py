"""
ZeroLoss – Domain Value Object: Trading Modes
===============================================
Tabla fija de parámetros de riesgo por modo de trading.

Tabla canónica. Todas las distancias se expresan relativas al riesgo
inicial (|entry − SL inicial|) para que escalen con el instrumento:

  mode        trigger  trail   stop%   reward  conf≥
  SCALPING     0.50    0.50   0.15%    2.0     75
  SWING        0.50    1.00   0.50%    3.0     80
  REGULAR      0.50    0.75   0.30%    1.5     75
  SAFE         0.30    0.30   0.20%    1.2     85
  ULTRA_SAFE   0.20    0.20   0.10%    1.0     95

  trigger → fracción del riesgo inicial que dispara el breakeven
  trail   → distancia de trailing (fracción del riesgo inicial)
  stop%   → riesgo inicial como % del entry si la señal no sugiere SL
  reward  → distancia del TP en múltiplos del riesgo inicial
  conf≥   → confianza mínima de la señal para ejecutar
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TradingMode(str, Enum):
    SCALPING = "SCALPING"
    SWING = "SWING"
    REGULAR = "REGULAR"
    SAFE = "SAFE"
    ULTRA_SAFE = "ULTRA_SAFE"


@dataclass(frozen=True, slots=True)
class TradingModeProfile:
    mode: TradingMode
    breakeven_trigger_fraction: float
    trail_gap_fraction: float
    stop_loss_pct: float
    reward_multiple: float
    confidence_threshold: int

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "breakeven_trigger_fraction": self.breakeven_trigger_fraction,
            "trail_gap_fraction": self.trail_gap_fraction,
            "stop_loss_pct": self.stop_loss_pct,
            "reward_multiple": self.reward_multiple,
            "confidence_threshold": self.confidence_threshold,
        }


TRADING_MODE_PROFILES: dict[TradingMode, TradingModeProfile] = {
    TradingMode.SCALPING: TradingModeProfile(TradingMode.SCALPING, 0.50, 0.50, 0.0015, 2.0, 75),
    TradingMode.SWING: TradingModeProfile(TradingMode.SWING, 0.50, 1.00, 0.0050, 3.0, 80),
    TradingMode.REGULAR: TradingModeProfile(TradingMode.REGULAR, 0.50, 0.75, 0.0030, 1.5, 75),
    TradingMode.SAFE: TradingModeProfile(TradingMode.SAFE, 0.30, 0.30, 0.0020, 1.2, 85),
    TradingMode.ULTRA_SAFE: TradingModeProfile(TradingMode.ULTRA_SAFE, 0.20, 0.20, 0.0010, 1.0, 95),
}


def get_profile(mode: TradingMode | str) -> TradingModeProfile:
    """Perfil de riesgo de un modo (acepta el nombre como string)."""
    return TRADING_MODE_PROFILES[TradingMode(mode)]
