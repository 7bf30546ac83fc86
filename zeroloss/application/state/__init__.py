"""Estado de mercado en memoria."""

from zeroloss.application.state.market_state import MarketState

__all__ = ["MarketState"]
