"""
ZeroLoss – Candle Aggregator Service
======================================
Pliega un stream de PriceUpdate en velas OHLCV de intervalo fijo para
UN símbolo/timeframe y mantiene el historial acotado (MarketState).

ALGORITMO (ingest):
  bucket = floor(timestamp / interval) × interval
  1. Update inválido (NaN, precio ≤ 0, OHLC incoherente) → descartado,
     contado, None. La vela en formación no se toca.
  2. bucket == actual → merge: close = update.close, high = max,
     low = min, open intacto, volumen según VolumeMode.
  3. bucket  > actual → la vela actual se congela, entra al historial
     (FIFO) y se retorna; la nueva vela se siembra con el update.
  4. bucket  < actual → rechazado (fuera de orden / duplicado), contado,
     None. NO se reordena.

Los buckets intermedios sin updates no se rellenan: el historial solo
contiene velas que realmente recibieron datos.

VOLUMEN (VolumeMode):
  SNAPSHOT → cada update trae el volumen acumulado de la vela (kline de
             Binance): se reemplaza.
  DELTA    → cada update trae volumen incremental (trades sueltos): se suma.

CÓMO SE EVITA REPAINTING:
- La vela en formación vive en `_forming` (mutable, privada). Solo sale
  como Candle(frozen=True).
- Una vela del historial nunca se vuelve a tocar.

ingest() es O(1): sin I/O, sin await, sin bloqueo.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from zeroloss.application.state.market_state import MarketState
from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.exceptions.domain_errors import ValidationError
from zeroloss.domain.value_objects.price_update import PriceUpdate
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("candle_aggregator")


TIMEFRAME_SECONDS = {
    "1m": 60,
    "3m": 180,
    "5m": 300,
    "15m": 900,
    "30m": 1800,
    "1h": 3600,
    "4h": 14400,
    "1d": 86400,
}


def timeframe_to_seconds(timeframe: str) -> int:
    """Convertir un timeframe ('1m', '4h'...) a segundos."""
    try:
        return TIMEFRAME_SECONDS[timeframe]
    except KeyError:
        raise ValidationError(
            f"Timeframe no soportado: {timeframe}", field="timeframe", value=timeframe,
        ) from None


class VolumeMode(str, Enum):
    SNAPSHOT = "snapshot"
    DELTA = "delta"


@dataclass
class _FormingCandle:
    """Vela mutable en formación (solo uso interno)."""

    symbol: str
    bucket_start: float
    interval: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    update_count: int = 1

    @classmethod
    def seed(cls, update: PriceUpdate, bucket_start: float, interval: int) -> "_FormingCandle":
        return cls(
            symbol=update.symbol,
            bucket_start=bucket_start,
            interval=interval,
            open=update.open,
            high=update.high,
            low=update.low,
            close=update.close,
            volume=update.volume,
        )

    def merge(self, update: PriceUpdate, volume_mode: VolumeMode) -> None:
        self.high = max(self.high, update.high)
        self.low = min(self.low, update.low)
        self.close = update.close
        if volume_mode is VolumeMode.DELTA:
            self.volume += update.volume
        else:
            self.volume = update.volume
        self.update_count += 1

    def freeze(self) -> Candle:
        """Convertir en Candle inmutable."""
        return Candle(
            symbol=self.symbol,
            bucket_start=self.bucket_start,
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=self.volume,
            interval=self.interval,
            update_count=self.update_count,
        )


class CandleAggregator:
    """
    Agregador de velas de UN símbolo/timeframe.

    Uso:
        aggregator = CandleAggregator("XAUUSD", "1m", capacity=100)
        closed = aggregator.ingest(update)
        if closed:
            # vela finalizada → indicadores, señal...
    """

    def __init__(
        self,
        symbol: str,
        timeframe: str = "1m",
        capacity: int = 100,
        volume_mode: VolumeMode | str = VolumeMode.SNAPSHOT,
    ) -> None:
        if capacity <= 0:
            raise ValidationError(
                f"La capacidad del historial debe ser > 0, recibido {capacity}",
                field="capacity", value=capacity,
            )
        self._symbol = symbol
        self._timeframe = timeframe
        self._interval = timeframe_to_seconds(timeframe)
        self._volume_mode = VolumeMode(volume_mode)
        self._state = MarketState(symbol=symbol, interval=self._interval, capacity=capacity)
        self._forming: Optional[_FormingCandle] = None
        logger.info(
            "CandleAggregator %s inicializado (tf=%s, capacidad=%d, volumen=%s)",
            symbol, timeframe, capacity, self._volume_mode.value,
        )

    # ════════════════════════════════════════════════════════════════
    #  INGESTA
    # ════════════════════════════════════════════════════════════════

    def _bucket_of(self, timestamp: float) -> float:
        return math.floor(timestamp / self._interval) * self._interval

    def ingest(self, update: PriceUpdate) -> Optional[Candle]:
        """
        Procesar un update. Retorna la Candle finalizada si el bucket
        cambió, None en cualquier otro caso.
        """
        state = self._state

        if update.symbol != self._symbol or not update.is_valid:
            state.rejected_invalid += 1
            logger.warning("Update inválido descartado (%s): %s", self._symbol, update)
            return None

        bucket = self._bucket_of(update.timestamp)
        forming = self._forming

        # ── CASO 1: sin vela en formación ──
        if forming is None:
            last = state.last_bucket
            if last is not None and bucket <= last:
                return self._reject_stale(update, bucket)
            self._forming = _FormingCandle.seed(update, bucket, self._interval)
            self._touch(update)
            return None

        # ── CASO 2: mismo bucket → merge ──
        if bucket == forming.bucket_start:
            forming.merge(update, self._volume_mode)
            self._touch(update)
            return None

        # ── CASO 3: bucket antiguo → rechazo ──
        if bucket < forming.bucket_start:
            return self._reject_stale(update, bucket)

        # ── CASO 4: bucket nuevo → finalizar y sembrar ──
        closed = forming.freeze()
        state.push(closed)
        self._forming = _FormingCandle.seed(update, bucket, self._interval)
        self._touch(update)

        logger.debug(
            "Vela cerrada: %s O=%.5f H=%.5f L=%.5f C=%.5f V=%.4f updates=%d",
            closed.symbol, closed.open, closed.high, closed.low,
            closed.close, closed.volume, closed.update_count,
        )
        return closed

    def _touch(self, update: PriceUpdate) -> None:
        self._state.last_price = update.close
        self._state.last_update_ts = update.timestamp
        self._state.total_updates += 1

    def _reject_stale(self, update: PriceUpdate, bucket: float) -> None:
        self._state.rejected_stale += 1
        logger.debug(
            "Update fuera de orden rechazado: %s bucket=%.0f ts=%.3f",
            self._symbol, bucket, update.timestamp,
        )
        return None

    def seed(self, candles: Iterable[Candle]) -> int:
        """
        Precargar velas históricas cerradas (arranque en frío).

        Solo se aceptan velas válidas del símbolo, en orden estrictamente creciente
        y anteriores a la vela en formación. Las malformadas (NaN, OHLC
        incoherente...) se descartan y cuentan en rejected_invalid.
        Retorna cuántas se cargaron.
        """
        loaded = 0
        for candle in candles:
            if candle.symbol != self._symbol:
                continue
            if not candle.is_valid:
                self._state.rejected_invalid += 1
                logger.warning("Vela histórica inválida descartada: %s", candle)
                continue
            last = self._state.last_bucket
            if last is not None and candle.bucket_start <= last:
                continue
            if self._forming is not None and candle.bucket_start >= self._forming.bucket_start:
                continue
            self._state.push(candle)
            self._state.last_price = candle.close
            loaded += 1
        if loaded:
            logger.info("📥 %d velas históricas precargadas para %s", loaded, self._symbol)
        return loaded

    # ════════════════════════════════════════════════════════════════
    #  CONSULTAS
    # ════════════════════════════════════════════════════════════════

    def history(self) -> Tuple[Candle, ...]:
        """Velas cerradas, la más antigua primero (snapshot de solo lectura)."""
        return tuple(self._state.history)

    def current(self) -> Optional[Candle]:
        """Snapshot inmutable de la vela en formación."""
        return self._forming.freeze() if self._forming is not None else None

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def timeframe(self) -> str:
        return self._timeframe

    @property
    def interval(self) -> int:
        return self._interval

    @property
    def volume_mode(self) -> VolumeMode:
        return self._volume_mode

    @property
    def state(self) -> MarketState:
        return self._state

    def snapshot(self) -> dict:
        data = self._state.snapshot()
        data["timeframe"] = self._timeframe
        data["volume_mode"] = self._volume_mode.value
        current = self.current()
        data["current"] = current.to_dict() if current else None
        return data
