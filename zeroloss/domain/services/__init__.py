"""Domain services – lógica de negocio pura."""
from zeroloss.domain.services.indicator_calculator import IndicatorCalculator, IndicatorState
from zeroloss.domain.services.signal_scorer import ScorerConfig, SignalScorer
from zeroloss.domain.services.risk_calculator import RiskCalculator, RiskConfig, RiskLevels
from zeroloss.domain.services.trade_decision import (
    DecisionReason,
    NewsImpact,
    TradeDecision,
    decide,
)

__all__ = [
    "IndicatorCalculator",
    "IndicatorState",
    "ScorerConfig",
    "SignalScorer",
    "RiskCalculator",
    "RiskConfig",
    "RiskLevels",
    "DecisionReason",
    "NewsImpact",
    "TradeDecision",
    "decide",
]
