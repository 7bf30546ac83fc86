"""
Generate Signal Use Case.

Caso de uso para obtener una señal de trading de un símbolo.
Construye el SignalRequest a partir del historial y el snapshot de
indicadores y delega en el proveedor (normalmente el combinador con
fallback). Aplica la compuerta de ejecución (decide) sobre el resultado.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from zeroloss.application.ports.signal_provider import SignalProvider, SignalRequest
from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import Signal
from zeroloss.domain.services.trade_decision import NewsImpact, TradeDecision, decide
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot
from zeroloss.domain.value_objects.trading_mode import TradingModeProfile
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("generate_signal")


@dataclass
class GenerateSignalResult:
    """Resultado de la generación de señal."""

    signal: Optional[Signal] = None
    decision: Optional[TradeDecision] = None
    generated: bool = False
    skip_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "generated": self.generated,
            "skip_reason": self.skip_reason,
            "signal": self.signal.to_dict() if self.signal else None,
            "decision": self.decision.to_dict() if self.decision else None,
        }


class GenerateSignalUseCase:
    """
    Caso de uso: Generar señal de trading.

    Orquesta:
    1. Validación de historial mínimo
    2. Llamada al proveedor de señales (remoto con fallback local)
    3. Compuerta de ejecución (confianza, noticias, trades abiertos)

    DEPENDE SOLO DE:
    - Puerto SignalProvider
    - Domain services puros (decide)
    """

    def __init__(
        self,
        provider: SignalProvider,
        *,
        min_candles: int = 10,
        timeframe: str = "1m",
    ) -> None:
        self._provider = provider
        self._min_candles = min_candles
        self._timeframe = timeframe

    async def execute(
        self,
        symbol: str,
        candles: Sequence[Candle],
        snapshot: IndicatorSnapshot,
        profile: TradingModeProfile,
        *,
        open_trades: int = 0,
        max_open_trades: int = 1,
        avoid_news: bool = False,
        news_impact: NewsImpact = NewsImpact.NONE,
    ) -> GenerateSignalResult:
        """
        Ejecuta la generación de señal.

        Returns:
            Resultado con la señal y la decisión, o el motivo de omisión
        """
        if len(candles) < self._min_candles:
            return GenerateSignalResult(
                skip_reason=f"Historial insuficiente: {len(candles)} < {self._min_candles} velas",
            )

        request = SignalRequest(
            symbol=symbol,
            snapshot=snapshot,
            candles=tuple(candles),
            timeframe=self._timeframe,
            news_impact=NewsImpact(news_impact).value,
        )
        signal = await self._provider.get_signal(request)
        decision = decide(
            signal,
            profile,
            open_trades=open_trades,
            max_open_trades=max_open_trades,
            avoid_news=avoid_news,
            news_impact=news_impact,
        )

        logger.info(
            "📊 Señal %s: %s conf=%d%% trend=%s source=%s → %s",
            symbol, signal.signal_type.value, signal.confidence,
            signal.trend.value, signal.source, decision.reason.value,
        )
        return GenerateSignalResult(signal=signal, decision=decision, generated=True)
