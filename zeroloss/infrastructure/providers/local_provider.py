"""
ZeroLoss – Local Heuristic Provider
=====================================
Adaptador SignalProvider sobre el SignalScorer determinista.

Siempre disponible y NUNCA lanza: el scorer es una función pura sobre
un IndicatorSnapshot que siempre está completo.
"""

from __future__ import annotations

from zeroloss.application.ports.signal_provider import SignalProvider, SignalRequest
from zeroloss.domain.entities.signal import Signal
from zeroloss.domain.services.signal_scorer import SignalScorer


class LocalHeuristicProvider(SignalProvider):
    name = "local"

    def __init__(self, scorer: SignalScorer | None = None) -> None:
        self._scorer = scorer or SignalScorer()

    def is_available(self) -> bool:
        return True

    async def get_signal(self, request: SignalRequest) -> Signal:
        return self.score(request)

    def score(self, request: SignalRequest, *, source: str = "local", note: str | None = None) -> Signal:
        """Versión síncrona, usada también por el fallback."""
        return self._scorer.score(
            request.snapshot, request.last_candle, source=source, note=note,
        )
