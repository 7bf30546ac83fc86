"""
ZeroLoss – Indicator Engine
=============================
Envoltorio con estado sobre IndicatorState para UN símbolo.

compute(history) lleva el estado incremental entre llamadas y solo
alimenta las velas POSTERIORES al cursor (bucket_start de la última vela
consumida). Cada vela cerrada cuesta O(1); no se re-escanea el historial.

ARRANQUE EN FRÍO (full rescan con IndicatorCalculator.replay):
- Primera llamada.
- El historial ya no continúa desde el cursor (la vela del cursor no
  está en el historial: hueco mayor que la capacidad, o historial
  reemplazado).

IDEMPOTENCIA:
- Dos llamadas con el mismo historial devuelven el mismo snapshot
  (se cachea; no se vuelve a alimentar nada).

NOTA SOBRE EVICCIÓN:
  Las EMAs y el RSI de Wilder tienen memoria infinita. Una vez que el
  historial empieza a descartar velas antiguas, el estado incremental
  sigue reflejando esas velas y deja de coincidir bit a bit con un
  rescan del historial visible. Mientras no haya evicción, incremental
  y rescan son idénticos.
"""

from __future__ import annotations

from typing import Optional, Sequence

from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.services.indicator_calculator import IndicatorCalculator, IndicatorState
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("indicator_engine")


class IndicatorEngine:
    """
    Motor de indicadores incremental.

    Uso:
        engine = IndicatorEngine("XAUUSD")
        snapshot = engine.compute(aggregator.history())
    """

    def __init__(self, symbol: str = "") -> None:
        self._symbol = symbol
        self._state: Optional[IndicatorState] = None
        self._cursor: Optional[float] = None
        self._snapshot: Optional[IndicatorSnapshot] = None
        self.rescans = 0

    def compute(self, history: Sequence[Candle]) -> IndicatorSnapshot:
        """Snapshot de indicadores para el historial dado (siempre completo)."""
        if not history:
            if self._snapshot is None or self._cursor is not None:
                self._reset()
                self._snapshot = IndicatorState().snapshot()
            return self._snapshot

        if self._state is None or self._cursor is None:
            return self._rescan(history)

        fresh = self._candles_after_cursor(history)
        if fresh is None:
            logger.info(
                "Historial de %s no continúa desde el cursor %.0f → rescan completo",
                self._symbol, self._cursor,
            )
            return self._rescan(history)

        if not fresh and self._snapshot is not None:
            return self._snapshot

        for candle in fresh:
            self._state.update(candle.close)
        self._cursor = history[-1].bucket_start
        self._snapshot = self._state.snapshot()
        return self._snapshot

    def _candles_after_cursor(self, history: Sequence[Candle]) -> Optional[list[Candle]]:
        """
        Velas posteriores al cursor, en orden. None si la vela del cursor
        no está en el historial (no se puede continuar incrementalmente).
        """
        fresh: list[Candle] = []
        for candle in reversed(history):
            if candle.bucket_start > self._cursor:
                fresh.append(candle)
                continue
            if candle.bucket_start == self._cursor:
                fresh.reverse()
                return fresh
            return None
        return None

    def _rescan(self, history: Sequence[Candle]) -> IndicatorSnapshot:
        self._state = IndicatorCalculator.replay(history)
        self._cursor = history[-1].bucket_start
        self._snapshot = self._state.snapshot()
        self.rescans += 1
        logger.debug("Rescan de indicadores %s sobre %d velas", self._symbol, len(history))
        return self._snapshot

    def _reset(self) -> None:
        self._state = None
        self._cursor = None
        self._snapshot = None

    @property
    def last_snapshot(self) -> Optional[IndicatorSnapshot]:
        return self._snapshot
