"""
ZeroLoss – Domain Service: Signal Scorer (fallback local)
===========================================================
Función pura IndicatorSnapshot + última vela → Signal.

Se usa siempre que el proveedor remoto no está disponible, tarda
demasiado o falla. NUNCA lanza excepción y NO usa aleatoriedad: la
confianza es una función determinista de las entradas.

═══════════════════════════════════════════════════════════════
            SCORE PONDERADO
═══════════════════════════════════════════════════════════════

  RSI      < rsi_buy (45)   → +3.5 + bonus (hasta +1.0, lineal en 15 pts)
           > rsi_sell (55)  → −3.5 − bonus
  MACD     histo > 0 y macd > señal → +2.0  (espejo → −2.0)
  Tendencia EMA20 > EMA50 → +1.5, EMA20 < EMA50 → −1.5
           (|spread| ≤ close × trend_flat_pct → SIDEWAYS, 0)
  StochRSI %K < 30 → +1.0, %K > 70 → −1.0

  score ≥ buy_threshold (2.5)   → BUY
  score ≤ −sell_threshold (2.5) → SELL
  resto                         → HOLD

CONFIANZA (monótona, saturante, 0–99):
  confidence = floor(99 × (1 − e^(−|score| / scale))),  scale = 2.0

  |score| 2.5 → 70   |score| 5 → 90   |score| 9 → 97

NIVELES:
  band = max(rango_vela × sr_range_mult, close × sr_min_pct)
  support = close − band,  resistance = close + band
  BUY:  SL = support,    TP = close + band × tp_mult
  SELL: SL = resistance, TP = close − band × tp_mult
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List

from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import MAX_CONFIDENCE, Signal, SignalType, Trend
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot


@dataclass(frozen=True)
class ScorerConfig:
    """Pesos y umbrales del scorer local."""

    rsi_buy: float = 45.0
    rsi_sell: float = 55.0
    rsi_weight: float = 3.5
    rsi_bonus: float = 1.0
    rsi_bonus_span: float = 15.0
    macd_weight: float = 2.0
    trend_weight: float = 1.5
    trend_flat_pct: float = 0.00001
    stoch_oversold: float = 30.0
    stoch_overbought: float = 70.0
    stoch_weight: float = 1.0
    buy_threshold: float = 2.5
    sell_threshold: float = 2.5
    confidence_scale: float = 2.0
    sr_range_mult: float = 1.5
    sr_min_pct: float = 0.001
    tp_mult: float = 2.0


class SignalScorer:
    """
    Scorer determinista de señales.

    USO:
        scorer = SignalScorer(ScorerConfig())
        signal = scorer.score(snapshot, last_candle)
    """

    def __init__(self, config: ScorerConfig | None = None):
        self._config = config or ScorerConfig()

    @property
    def config(self) -> ScorerConfig:
        return self._config

    def score(
        self,
        snapshot: IndicatorSnapshot,
        last_candle: Candle,
        *,
        source: str = "local",
        note: str | None = None,
    ) -> Signal:
        cfg = self._config
        close = last_candle.close
        factors: List[str] = []
        total = 0.0

        # ── 1. RSI ──
        rsi = snapshot.rsi
        if rsi < cfg.rsi_buy:
            contrib = cfg.rsi_weight + cfg.rsi_bonus * min(1.0, (cfg.rsi_buy - rsi) / cfg.rsi_bonus_span)
            total += contrib
            factors.append(f"RSI {rsi:.1f} < {cfg.rsi_buy:g} ({contrib:+.2f})")
        elif rsi > cfg.rsi_sell:
            contrib = -(cfg.rsi_weight + cfg.rsi_bonus * min(1.0, (rsi - cfg.rsi_sell) / cfg.rsi_bonus_span))
            total += contrib
            factors.append(f"RSI {rsi:.1f} > {cfg.rsi_sell:g} ({contrib:+.2f})")

        # ── 2. MACD ──
        macd = snapshot.macd
        if macd.histogram > 0 and macd.macd > macd.signal:
            total += cfg.macd_weight
            factors.append(f"MACD alcista ({cfg.macd_weight:+.2f})")
        elif macd.histogram < 0 and macd.macd < macd.signal:
            total -= cfg.macd_weight
            factors.append(f"MACD bajista ({-cfg.macd_weight:+.2f})")

        # ── 3. Tendencia EMA20 vs EMA50 ──
        spread = snapshot.ema20 - snapshot.ema50
        if abs(spread) <= abs(close) * cfg.trend_flat_pct:
            trend = Trend.SIDEWAYS
        elif spread > 0:
            trend = Trend.UP
            total += cfg.trend_weight
            factors.append(f"EMA20 > EMA50 ({cfg.trend_weight:+.2f})")
        else:
            trend = Trend.DOWN
            total -= cfg.trend_weight
            factors.append(f"EMA20 < EMA50 ({-cfg.trend_weight:+.2f})")

        # ── 4. StochRSI ──
        k = snapshot.stoch_rsi.k
        if k < cfg.stoch_oversold:
            total += cfg.stoch_weight
            factors.append(f"StochRSI %K {k:.1f} sobreventa ({cfg.stoch_weight:+.2f})")
        elif k > cfg.stoch_overbought:
            total -= cfg.stoch_weight
            factors.append(f"StochRSI %K {k:.1f} sobrecompra ({-cfg.stoch_weight:+.2f})")

        # ── Decisión ──
        if total >= cfg.buy_threshold:
            signal_type = SignalType.BUY
        elif total <= -cfg.sell_threshold:
            signal_type = SignalType.SELL
        else:
            signal_type = SignalType.HOLD

        confidence = self.confidence_for(total)

        # ── Niveles ──
        band = max(last_candle.range * cfg.sr_range_mult, abs(close) * cfg.sr_min_pct)
        support = close - band
        resistance = close + band
        suggested_sl = suggested_tp = None
        if signal_type is SignalType.BUY:
            suggested_sl = support
            suggested_tp = close + band * cfg.tp_mult
        elif signal_type is SignalType.SELL:
            suggested_sl = resistance
            suggested_tp = close - band * cfg.tp_mult

        detail = "; ".join(factors) if factors else "sin factores activos"
        reasoning = (
            f"Scorer local: {detail} → score {total:+.2f} → "
            f"{signal_type.value} ({confidence}%)"
        )
        if note:
            reasoning = f"{reasoning} ({note})"

        return Signal(
            signal_type=signal_type,
            confidence=confidence,
            trend=trend,
            support=support,
            resistance=resistance,
            reasoning=reasoning,
            suggested_sl=suggested_sl,
            suggested_tp=suggested_tp,
            symbol=last_candle.symbol,
            price=close,
            candle_timestamp=last_candle.bucket_start,
            score=total,
            source=source,
        )

    def confidence_for(self, score: float) -> int:
        """Mapeo monótono y saturante |score| → [0, 99]."""
        raw = MAX_CONFIDENCE * (1.0 - math.exp(-abs(score) / self._config.confidence_scale))
        return max(0, min(MAX_CONFIDENCE, int(math.floor(raw))))
