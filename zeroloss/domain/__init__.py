"""
ZeroLoss – Domain Layer
=========================
Núcleo puro del sistema. CERO dependencias externas.

Este módulo contiene:
- entities/: Entidades de negocio (Candle, Signal, Trade)
- value_objects/: Objetos inmutables (PriceUpdate, IndicatorSnapshot, TradingMode)
- services/: Servicios de dominio puros (IndicatorCalculator, SignalScorer,
  RiskCalculator, decide)
- events/: Eventos de dominio
- exceptions/: Excepciones de dominio

REGLA DE DEPENDENCIA:
Este módulo NO puede importar de:
- infrastructure/
- presentation/
- application/
- Frameworks externos (FastAPI, aiohttp, etc.)
"""

from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import Signal, SignalType, Trend
from zeroloss.domain.entities.trade import Side, Trade, TradeState
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot
from zeroloss.domain.value_objects.price_update import PriceUpdate

__all__ = [
    "Candle",
    "Signal",
    "SignalType",
    "Trend",
    "Side",
    "Trade",
    "TradeState",
    "IndicatorSnapshot",
    "PriceUpdate",
]
