"""
ZeroLoss – Domain Events
==========================
Eventos de dominio emitidos por el Position Risk Manager.

Los eventos representan HECHOS que ocurrieron sobre un trade. Son
inmutables y llevan timestamp del tick que los produjo (no del reloj),
así un replay histórico genera exactamente los mismos eventos.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from zeroloss.domain.entities.trade import Trade


@dataclass(frozen=True)
class DomainEvent:
    """Evento base de dominio."""

    timestamp: float = 0.0

    topic = "domain_event"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.__class__.__name__,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TradeEvent(DomainEvent):
    """Evento sobre un trade; lleva el snapshot del trade tras el hecho."""

    trade: Trade = field(default=None)  # type: ignore[assignment]

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["trade"] = self.trade.to_dict()
        return base


@dataclass(frozen=True)
class TradeOpened(TradeEvent):
    """Evento: se abrió un trade."""

    topic = "trade_opened"


@dataclass(frozen=True)
class TradeSecured(TradeEvent):
    """Evento: el trade alcanzó el breakeven (OPEN_RISKED → OPEN_SECURED)."""

    topic = "trade_secured"


@dataclass(frozen=True)
class StopMoved(TradeEvent):
    """Evento: el trailing apretó el stop-loss."""

    previous_sl: float = 0.0

    topic = "stop_moved"

    def to_dict(self) -> Dict[str, Any]:
        base = super().to_dict()
        base["previous_sl"] = self.previous_sl
        return base


@dataclass(frozen=True)
class TradeClosed(TradeEvent):
    """Evento: se cerró un trade (stop, TP o manual)."""

    topic = "trade_closed"
