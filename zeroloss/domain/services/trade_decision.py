"""
ZeroLoss – Domain Service: Trade Decision
===========================================
Compuerta de ejecución: ¿se abre un trade a partir de esta señal?

REGLAS (en orden):
  1. HOLD nunca ejecuta.
  2. Si ya hay max_open_trades abiertos en el símbolo → no ejecuta.
  3. Umbral = confidence_threshold del modo; con avoid_news y noticia de
     impacto HIGH el umbral sube a NEWS_CONFIDENCE_THRESHOLD (98).
  4. confidence ≥ umbral → ejecuta.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from zeroloss.domain.entities.signal import Signal, SignalType
from zeroloss.domain.value_objects.trading_mode import TradingModeProfile

NEWS_CONFIDENCE_THRESHOLD = 98


class NewsImpact(str, Enum):
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DecisionReason(str, Enum):
    ACCEPTED = "accepted"
    HOLD_SIGNAL = "hold_signal"
    LOW_CONFIDENCE = "low_confidence"
    BLOCKED_BY_NEWS = "blocked_by_news"
    MAX_OPEN_TRADES = "max_open_trades"


@dataclass(frozen=True, slots=True)
class TradeDecision:
    execute: bool
    reason: DecisionReason
    threshold: int

    def to_dict(self) -> dict:
        return {
            "execute": self.execute,
            "reason": self.reason.value,
            "threshold": self.threshold,
        }


def decide(
    signal: Signal,
    profile: TradingModeProfile,
    *,
    open_trades: int = 0,
    max_open_trades: int = 1,
    avoid_news: bool = False,
    news_impact: NewsImpact = NewsImpact.NONE,
) -> TradeDecision:
    """Aplica la compuerta de ejecución a una señal."""
    threshold = profile.confidence_threshold
    news_blocking = avoid_news and NewsImpact(news_impact) is NewsImpact.HIGH
    if news_blocking:
        threshold = max(threshold, NEWS_CONFIDENCE_THRESHOLD)

    if signal.signal_type is SignalType.HOLD:
        return TradeDecision(False, DecisionReason.HOLD_SIGNAL, threshold)

    if open_trades >= max_open_trades:
        return TradeDecision(False, DecisionReason.MAX_OPEN_TRADES, threshold)

    if signal.confidence < threshold:
        reason = DecisionReason.BLOCKED_BY_NEWS if news_blocking else DecisionReason.LOW_CONFIDENCE
        return TradeDecision(False, reason, threshold)

    return TradeDecision(True, DecisionReason.ACCEPTED, threshold)
