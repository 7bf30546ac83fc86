"""Application services - Motores con estado, uno por símbolo."""

from zeroloss.application.services.candle_aggregator import CandleAggregator, VolumeMode
from zeroloss.application.services.indicator_engine import IndicatorEngine
from zeroloss.application.services.position_risk_manager import PositionRiskManager
from zeroloss.application.services.price_alert_monitor import PriceAlertMonitor

__all__ = [
    "CandleAggregator",
    "VolumeMode",
    "IndicatorEngine",
    "PositionRiskManager",
    "PriceAlertMonitor",
]
