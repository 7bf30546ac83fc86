"""Domain events."""
from zeroloss.domain.events.domain_events import (
    DomainEvent,
    StopMoved,
    TradeClosed,
    TradeEvent,
    TradeOpened,
    TradeSecured,
)

__all__ = [
    "DomainEvent",
    "StopMoved",
    "TradeClosed",
    "TradeEvent",
    "TradeOpened",
    "TradeSecured",
]
