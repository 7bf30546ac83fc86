"""
ZeroLoss – Application Port: Signal Provider
==============================================
Interfaz para obtener una señal de trading.

Los use cases solicitan señales; la infraestructura decide QUIÉN las
produce (modelo remoto, scorer local) y CÓMO se combinan.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import Signal
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot


@dataclass(frozen=True)
class SignalRequest:
    """Entrada para evaluar una señal."""

    symbol: str
    snapshot: IndicatorSnapshot
    candles: Tuple[Candle, ...]   # historial reciente, el más antiguo primero
    timeframe: str = "1m"
    news_impact: str = "NONE"

    @property
    def last_candle(self) -> Candle:
        return self.candles[-1]

    def to_dict(self, max_candles: int = 15) -> Dict[str, Any]:
        """Payload serializable para proveedores remotos."""
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "news_impact": self.news_impact,
            "indicators": self.snapshot.to_dict(),
            "candles": [c.to_dict() for c in self.candles[-max_candles:]],
        }


class SignalProvider(ABC):
    """
    Interfaz de proveedor de señales.

    IMPLEMENTACIONES:
    - LocalHeuristicProvider (scorer determinista, nunca falla)
    - RemoteSignalProvider (modelo remoto vía HTTP)
    - FallbackSignalProvider (remoto con timeout → local)
    """

    name: str = "provider"

    @abstractmethod
    def is_available(self) -> bool:
        """
        Verifica si el proveedor puede atender peticiones.

        Returns:
            True si está configurado y operativo
        """

    @abstractmethod
    async def get_signal(self, request: SignalRequest) -> Signal:
        """
        Produce una señal para el request.

        Raises:
            ProviderUnavailableError / errores de transporte en
            implementaciones remotas. El proveedor local nunca lanza.
        """
