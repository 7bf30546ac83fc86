"""
ZeroLoss – Domain Service: Risk Calculator
============================================
Cálculos de gestión de riesgo puros.

Traduce (lado, entry, perfil del modo, SL/TP sugeridos por la señal) en
los niveles iniciales de un trade y sus RiskParameters.

FÓRMULAS:
- SL:    el sugerido por la señal si está del lado correcto y a una
         distancia ≤ max_sl_pct del entry; si no, entry ∓ entry × stop_loss_pct.
- riesgo = |entry − SL|
- TP:    el sugerido si está del lado correcto; si no, entry ± riesgo × reward.
- trail_gap = riesgo × trail_gap_fraction
- RR:    distancia TP / distancia SL
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from zeroloss.domain.entities.trade import RiskParameters, Side
from zeroloss.domain.exceptions.domain_errors import ValidationError
from zeroloss.domain.value_objects.trading_mode import TradingModeProfile


@dataclass(frozen=True)
class RiskConfig:
    """Configuración de gestión de riesgo."""

    max_sl_pct: float = 0.02       # SL sugerido más lejano aceptado (% del entry)
    use_suggested_tp: bool = True  # respetar el TP de la señal si es coherente


@dataclass(frozen=True)
class RiskLevels:
    """Resultado del cálculo de niveles de riesgo."""

    side: Side
    entry: float
    stop_loss: float
    take_profit: float
    sl_distance: float
    tp_distance: float
    rr: float
    risk: RiskParameters
    sl_source: str   # "signal" | "mode"
    tp_source: str   # "signal" | "mode"


class RiskCalculator:
    """
    Calculadora de niveles de riesgo.

    RESPONSABILIDAD:
    Calcular SL, TP y parámetros del trinquete para un trade nuevo.

    NO tiene dependencias externas.
    """

    def __init__(self, config: RiskConfig | None = None):
        self._config = config or RiskConfig()

    def calculate_levels(
        self,
        side: Side | str,
        entry_price: float,
        profile: TradingModeProfile,
        suggested_sl: Optional[float] = None,
        suggested_tp: Optional[float] = None,
    ) -> RiskLevels:
        """
        Calcula SL, TP y RiskParameters para abrir un trade.

        Args:
            side: BUY o SELL
            entry_price: Precio de entrada (close de la vela evaluada)
            profile: Perfil del modo de trading activo
            suggested_sl / suggested_tp: Niveles sugeridos por la señal

        Raises:
            ValidationError si el entry no es un precio válido
        """
        side = Side(side)
        if not math.isfinite(entry_price) or entry_price <= 0:
            raise ValidationError(
                f"entry_price inválido: {entry_price}", field="entry_price", value=entry_price,
            )
        d = side.direction

        # ── Stop Loss ──
        if self._usable_sl(entry_price, d, suggested_sl):
            stop_loss = suggested_sl
            sl_source = "signal"
        else:
            stop_loss = entry_price - d * entry_price * profile.stop_loss_pct
            sl_source = "mode"
        sl_distance = abs(entry_price - stop_loss)

        # ── Take Profit ──
        if self._config.use_suggested_tp and self._usable_tp(entry_price, d, suggested_tp):
            take_profit = suggested_tp
            tp_source = "signal"
        else:
            take_profit = entry_price + d * sl_distance * profile.reward_multiple
            tp_source = "mode"
        tp_distance = abs(take_profit - entry_price)

        risk = RiskParameters(
            breakeven_trigger_fraction=profile.breakeven_trigger_fraction,
            trail_gap=sl_distance * profile.trail_gap_fraction,
        )

        return RiskLevels(
            side=side,
            entry=entry_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            sl_distance=sl_distance,
            tp_distance=tp_distance,
            rr=tp_distance / sl_distance if sl_distance > 0 else 0.0,
            risk=risk,
            sl_source=sl_source,
            tp_source=tp_source,
        )

    def _usable_sl(self, entry: float, d: int, sl: Optional[float]) -> bool:
        if sl is None or not math.isfinite(sl) or sl <= 0:
            return False
        distance = (entry - sl) * d
        return 0 < distance <= entry * self._config.max_sl_pct

    @staticmethod
    def _usable_tp(entry: float, d: int, tp: Optional[float]) -> bool:
        if tp is None or not math.isfinite(tp) or tp <= 0:
            return False
        return (tp - entry) * d > 0
