"""Adaptadores externos: Event Bus y feeds de precios."""

from zeroloss.infrastructure.external.event_bus import EventBus
from zeroloss.infrastructure.external.binance_client import BinanceKlineClient
from zeroloss.infrastructure.external.replay_feed import ReplayFeed

__all__ = [
    "EventBus",
    "BinanceKlineClient",
    "ReplayFeed",
]
