"""Domain value objects."""
from zeroloss.domain.value_objects.price_update import PriceUpdate
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot, Macd, StochRsi
from zeroloss.domain.value_objects.trading_mode import (
    TradingMode,
    TradingModeProfile,
    TRADING_MODE_PROFILES,
    get_profile,
)

__all__ = [
    "PriceUpdate",
    "IndicatorSnapshot",
    "Macd",
    "StochRsi",
    "TradingMode",
    "TradingModeProfile",
    "TRADING_MODE_PROFILES",
    "get_profile",
]
