"""
ZeroLoss – Price Alert Monitor
================================
Alertas de precio de un solo disparo por símbolo.

- La condición se decide al crear la alerta con el precio actual:
  objetivo > precio → ABOVE, si no → BELOW.
- ABOVE dispara con precio ≥ objetivo; BELOW con precio ≤ objetivo.
- Una alerta disparada se elimina (no vuelve a disparar).
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from zeroloss.domain.exceptions.domain_errors import ValidationError
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("price_alerts")


class AlertCondition(str, Enum):
    ABOVE = "ABOVE"
    BELOW = "BELOW"


@dataclass(frozen=True, slots=True)
class PriceAlert:
    id: str
    symbol: str
    price: float
    condition: AlertCondition
    created_at: float = 0.0

    def is_hit(self, price: float) -> bool:
        if self.condition is AlertCondition.ABOVE:
            return price >= self.price
        return price <= self.price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "price": self.price,
            "condition": self.condition.value,
            "created_at": self.created_at,
        }


@dataclass(frozen=True, slots=True)
class AlertTriggered:
    """Evento: una alerta de precio se cumplió."""

    alert: PriceAlert
    price: float
    timestamp: float

    topic = "price_alert"

    def to_dict(self) -> dict:
        return {
            "event_type": "AlertTriggered",
            "alert": self.alert.to_dict(),
            "price": self.price,
            "timestamp": self.timestamp,
        }


class PriceAlertMonitor:
    """Alertas activas de UN símbolo."""

    def __init__(self, symbol: str) -> None:
        self._symbol = symbol
        self._alerts: Dict[str, PriceAlert] = {}

    def add(self, target_price: float, current_price: float, timestamp: float = 0.0) -> PriceAlert:
        """
        Crear una alerta.

        Raises:
            ValidationError si el objetivo o el precio actual no son válidos
        """
        if not math.isfinite(target_price) or target_price <= 0:
            raise ValidationError(
                f"Precio objetivo inválido: {target_price}", field="price", value=target_price,
            )
        if not math.isfinite(current_price) or current_price <= 0:
            raise ValidationError(
                f"Sin precio actual para {self._symbol}", field="current_price", value=current_price,
            )
        condition = AlertCondition.ABOVE if target_price > current_price else AlertCondition.BELOW
        alert = PriceAlert(
            id=uuid.uuid4().hex[:9],
            symbol=self._symbol,
            price=target_price,
            condition=condition,
            created_at=timestamp,
        )
        self._alerts[alert.id] = alert
        logger.info("🔔 Alerta %s creada: %s %s %.5f", alert.id, self._symbol, condition.value, target_price)
        return alert

    def remove(self, alert_id: str) -> Optional[PriceAlert]:
        return self._alerts.pop(alert_id, None)

    def check(self, price: float, timestamp: float = 0.0) -> List[AlertTriggered]:
        """Evaluar el precio; las alertas cumplidas se disparan y se eliminan."""
        if not self._alerts or not math.isfinite(price) or price <= 0:
            return []
        triggered = [a for a in self._alerts.values() if a.is_hit(price)]
        for alert in triggered:
            del self._alerts[alert.id]
            logger.info("🔔 Alerta %s disparada: %s @ %.5f", alert.id, self._symbol, price)
        return [AlertTriggered(alert=a, price=price, timestamp=timestamp) for a in triggered]

    @property
    def alerts(self) -> tuple[PriceAlert, ...]:
        return tuple(self._alerts.values())
