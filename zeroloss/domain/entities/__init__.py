"""Domain entities."""
from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import Signal, SignalType, Trend
from zeroloss.domain.entities.trade import (
    CloseReason,
    RiskParameters,
    Side,
    Trade,
    TradeState,
    TradeStatus,
)

__all__ = [
    "Candle",
    "Signal",
    "SignalType",
    "Trend",
    "CloseReason",
    "RiskParameters",
    "Side",
    "Trade",
    "TradeState",
    "TradeStatus",
]
