"""
ZeroLoss – Domain Service: Indicator Calculator
=================================================
Matemática pura de indicadores técnicos (sin I/O, sin dependencias).

═══════════════════════════════════════════════════════════════════
                    MATEMÁTICA
═══════════════════════════════════════════════════════════════════

─── EMA (period) ──────────────────────────────────────────────────
    Seed:      SMA de los primeros `period` closes.
    Recursión: EMA_t = close_t × k + EMA_{t-1} × (1 − k),  k = 2/(period+1)
    Antes del seed → valor neutral = último close (0.0 sin datos).

─── RSI (14) – Wilder ─────────────────────────────────────────────
    Seed:  avg_gain / avg_loss = media simple de los primeros 14 deltas
           (se necesitan 15 closes).
    Luego: avg = (avg × 13 + actual) / 14
    RSI = 100 − 100 / (1 + avg_gain/avg_loss)
    avg_loss == 0 → RSI = 100. Siempre acotado a [0, 100].
    Antes del seed → 50.

─── MACD (12, 26, 9) ──────────────────────────────────────────────
    línea   = EMA12 − EMA26  (existe desde el close 26)
    señal   = EMA9 de la serie de la línea
    histo   = línea − señal
    Antes de EMA26 → {0, 0, 0}. Con línea pero sin 9 valores para
    la señal → señal = línea, histograma = 0.

─── SMA (50) ──────────────────────────────────────────────────────
    Media de los últimos 50 closes; antes → último close.

─── Stochastic RSI (14, %D = SMA 3) ───────────────────────────────
    Ventana de los últimos 14 valores de RSI (incluido el actual).
    %K = (RSI_t − min) / (max − min) × 100;  max == min → 0.
    %D = media simple de los últimos 3 %K (o de los disponibles si
         todavía hay menos de 3).
    Antes de 14 RSI → {50, 50}.

═══════════════════════════════════════════════════════════════════

IndicatorState es el estado incremental O(1) por close. El cálculo
"desde cero" (IndicatorCalculator.compute) alimenta un estado nuevo con
la misma ruta de código, por lo que incremental y full-rescan producen
exactamente los mismos bits.

MEMORIA:
- Buffers de seed se liberan tras el seed.
- Ventanas rodantes con deque(maxlen) → memoria acotada.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable, Optional

from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.value_objects.indicator_snapshot import (
    NEUTRAL_RSI,
    NEUTRAL_STOCH,
    IndicatorSnapshot,
    Macd,
    StochRsi,
)

# Períodos estándar
RSI_PERIOD = 14
EMA_FAST_PERIOD = 20
EMA_SLOW_PERIOD = 50
MACD_FAST_PERIOD = 12
MACD_SLOW_PERIOD = 26
MACD_SIGNAL_PERIOD = 9
MA_PERIOD = 50
STOCH_PERIOD = 14
STOCH_D_PERIOD = 3


class EmaState:
    """EMA incremental con seed SMA."""

    __slots__ = ("period", "k", "value", "_seed")

    def __init__(self, period: int) -> None:
        self.period = period
        self.k = 2.0 / (period + 1)
        self.value: Optional[float] = None
        self._seed: list[float] = []

    @property
    def ready(self) -> bool:
        return self.value is not None

    def update(self, x: float) -> Optional[float]:
        if self.value is None:
            self._seed.append(x)
            if len(self._seed) == self.period:
                self.value = sum(self._seed) / self.period
                self._seed = []  # Liberar memoria
            return self.value
        self.value = x * self.k + self.value * (1.0 - self.k)
        return self.value


class WilderRsiState:
    """RSI incremental con suavizado de Wilder."""

    __slots__ = (
        "period", "prev_close", "avg_gain", "avg_loss", "value",
        "_seed_gain", "_seed_loss", "_seed_count",
    )

    def __init__(self, period: int = RSI_PERIOD) -> None:
        self.period = period
        self.prev_close: Optional[float] = None
        self.avg_gain: Optional[float] = None
        self.avg_loss: Optional[float] = None
        self.value: Optional[float] = None
        self._seed_gain = 0.0
        self._seed_loss = 0.0
        self._seed_count = 0

    def update(self, close: float) -> Optional[float]:
        if self.prev_close is None:
            self.prev_close = close
            return None

        delta = close - self.prev_close
        self.prev_close = close
        gain = delta if delta > 0 else 0.0
        loss = -delta if delta < 0 else 0.0

        if self.avg_gain is None or self.avg_loss is None:
            self._seed_gain += gain
            self._seed_loss += loss
            self._seed_count += 1
            if self._seed_count == self.period:
                self.avg_gain = self._seed_gain / self.period
                self.avg_loss = self._seed_loss / self.period
                self.value = self.compute_rsi(self.avg_gain, self.avg_loss)
            return self.value

        period = self.period
        self.avg_gain = (self.avg_gain * (period - 1) + gain) / period
        self.avg_loss = (self.avg_loss * (period - 1) + loss) / period
        self.value = self.compute_rsi(self.avg_gain, self.avg_loss)
        return self.value

    @staticmethod
    def compute_rsi(avg_gain: float, avg_loss: float) -> float:
        """
        RSI = 100 − (100 / (1 + RS)),  RS = avg_gain / avg_loss

        avg_loss == 0 → 100.0 (incluye serie plana).
        """
        if avg_loss == 0.0:
            return 100.0
        rs = avg_gain / avg_loss
        rsi = 100.0 - (100.0 / (1.0 + rs))
        return min(100.0, max(0.0, rsi))


class IndicatorState:
    """
    Estado incremental de TODOS los indicadores de un símbolo.

    update(close) es O(1) salvo la SMA50 y la ventana StochRSI, que
    recorren ventanas de tamaño fijo (50 y 14).
    """

    def __init__(self) -> None:
        self.count = 0
        self.last_close: Optional[float] = None

        self.ema20 = EmaState(EMA_FAST_PERIOD)
        self.ema50 = EmaState(EMA_SLOW_PERIOD)
        self.ema12 = EmaState(MACD_FAST_PERIOD)
        self.ema26 = EmaState(MACD_SLOW_PERIOD)
        self.macd_signal = EmaState(MACD_SIGNAL_PERIOD)
        self.macd_line: Optional[float] = None

        self.rsi = WilderRsiState(RSI_PERIOD)

        self._ma_window: deque[float] = deque(maxlen=MA_PERIOD)
        self._rsi_window: deque[float] = deque(maxlen=STOCH_PERIOD)
        self._k_window: deque[float] = deque(maxlen=STOCH_D_PERIOD)

    def update(self, close: float) -> None:
        self.count += 1
        self.last_close = close
        self._ma_window.append(close)

        self.ema20.update(close)
        self.ema50.update(close)
        fast = self.ema12.update(close)
        slow = self.ema26.update(close)

        if fast is not None and slow is not None:
            self.macd_line = fast - slow
            self.macd_signal.update(self.macd_line)

        rsi = self.rsi.update(close)
        if rsi is not None:
            self._rsi_window.append(rsi)
            if len(self._rsi_window) == STOCH_PERIOD:
                lo = min(self._rsi_window)
                hi = max(self._rsi_window)
                k = (rsi - lo) / (hi - lo) * 100.0 if hi != lo else 0.0
                self._k_window.append(k)

    def snapshot(self) -> IndicatorSnapshot:
        """Snapshot completo con defaults neutrales donde falte warm-up."""
        fallback = self.last_close if self.last_close is not None else 0.0

        if self.macd_line is None:
            macd = Macd()
        elif self.macd_signal.value is None:
            macd = Macd(macd=self.macd_line, signal=self.macd_line, histogram=0.0)
        else:
            macd = Macd(
                macd=self.macd_line,
                signal=self.macd_signal.value,
                histogram=self.macd_line - self.macd_signal.value,
            )

        if self._k_window:
            k = self._k_window[-1]
            d = sum(self._k_window) / len(self._k_window)
            stoch = StochRsi(k=k, d=d)
        else:
            stoch = StochRsi(k=NEUTRAL_STOCH, d=NEUTRAL_STOCH)

        ma50 = (
            sum(self._ma_window) / MA_PERIOD
            if len(self._ma_window) == MA_PERIOD
            else fallback
        )

        return IndicatorSnapshot(
            rsi=self.rsi.value if self.rsi.value is not None else NEUTRAL_RSI,
            ma50=ma50,
            ema20=self.ema20.value if self.ema20.value is not None else fallback,
            ema50=self.ema50.value if self.ema50.value is not None else fallback,
            macd=macd,
            stoch_rsi=stoch,
            candles_seen=self.count,
        )


class IndicatorCalculator:
    """
    Cálculo "desde cero" sobre un historial completo.

    Stateless: cada llamada crea un IndicatorState nuevo. Se usa para
    el arranque en frío del IndicatorEngine y como referencia pura.
    """

    @staticmethod
    def replay(candles: Iterable[Candle]) -> IndicatorState:
        state = IndicatorState()
        for candle in candles:
            state.update(candle.close)
        return state

    @staticmethod
    def compute(candles: Iterable[Candle]) -> IndicatorSnapshot:
        return IndicatorCalculator.replay(candles).snapshot()
