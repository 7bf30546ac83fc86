"""
ZeroLoss – Process Update Use Case
====================================
Caso de uso central: consume PriceUpdate del EventBus y ejecuta la
cadena por símbolo.

FLUJO (por update, en orden de llegada):
  EventBus ("price_update")
       │
       ▼
  handle(update)                       ◄── núcleo SÍNCRONO, sin await
       │
       ├── CandleAggregator.ingest()     → inválido/fuera de orden: fin
       ├── PositionRiskManager.on_price() → trinquete de trades abiertos
       ├── PriceAlertMonitor.check()      → alertas de un disparo
       └── Si vela finalizada:
               ├── IndicatorEngine.compute(history)
               └── cada N velas → señal pendiente
       │
       ▼
  process(update)                      ◄── capa asíncrona
       ├── EventBus.publish(candle | indicators | trade_* | price_alert)
       └── Si señal pendiente:
               GenerateSignalUseCase (proveedor con timeout + fallback)
               → decide() → open_from_profile() → "trade_opened"

PROPIEDAD (single-writer):
- Un SymbolPipeline por símbolo; solo este use case lo muta.
- Un único consumidor procesa la cola en orden: nunca hay dos updates
  del mismo símbolo en vuelo.
- El proveedor remoto se espera FUERA del núcleo síncrono; en el loop de
  consumo la señal corre en su propia task (una por símbolo), así el
  trinquete de todos los símbolos sigue avanzando mientras tanto. El trade
  entra al close del update que disparó la señal.

CANCELACIÓN:
- stop() es idempotente: desuscribe, cancela el loop y las señales en
  curso, y deja el estado intacto (el update en curso termina o no
  empieza).
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from zeroloss.application.services.candle_aggregator import CandleAggregator, VolumeMode
from zeroloss.application.services.indicator_engine import IndicatorEngine
from zeroloss.application.services.position_risk_manager import PositionRiskManager
from zeroloss.application.services.price_alert_monitor import AlertTriggered, PriceAlert, PriceAlertMonitor
from zeroloss.application.use_cases.generate_signal_usecase import (
    GenerateSignalResult,
    GenerateSignalUseCase,
)
from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import Signal
from zeroloss.domain.entities.trade import Side
from zeroloss.domain.events.domain_events import DomainEvent, TradeClosed
from zeroloss.domain.exceptions.domain_errors import DomainError, InvalidTradeError
from zeroloss.domain.services.trade_decision import NewsImpact
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot
from zeroloss.domain.value_objects.price_update import PriceUpdate
from zeroloss.domain.value_objects.trading_mode import TradingMode, TradingModeProfile, get_profile
from zeroloss.shared.logging.logger import get_logger

logger = get_logger("process_update")

# Tópicos del EventBus
PRICE_UPDATE_TOPIC = "price_update"
CANDLE_TOPIC = "candle"
INDICATORS_TOPIC = "indicators"
SIGNAL_TOPIC = "signal"


@dataclass
class SymbolPipeline:
    """Estado completo de UN símbolo; un único escritor."""

    symbol: str
    aggregator: CandleAggregator
    engine: IndicatorEngine
    risk_manager: PositionRiskManager
    alerts: PriceAlertMonitor
    snapshot: Optional[IndicatorSnapshot] = None
    last_signal: Optional[Signal] = None
    last_result: Optional[GenerateSignalResult] = None
    candles_since_signal: int = 0


@dataclass
class UpdateResult:
    """Resultado del núcleo síncrono para un update."""

    update: PriceUpdate
    accepted: bool = False
    candle: Optional[Candle] = None
    snapshot: Optional[IndicatorSnapshot] = None
    events: List[DomainEvent] = field(default_factory=list)
    alerts: List[AlertTriggered] = field(default_factory=list)
    signal_due: bool = False


class ProcessUpdateUseCase:
    """
    Orquestador por símbolo: agregación → trinquete → indicadores → señal.
    """

    def __init__(
        self,
        event_bus,
        signal_usecase: GenerateSignalUseCase,
        *,
        timeframe: str = "1m",
        capacity: int = 100,
        volume_mode: VolumeMode | str = VolumeMode.SNAPSHOT,
        trading_mode: TradingMode | str = TradingMode.ULTRA_SAFE,
        lot_size: float = 1.0,
        auto_trade: bool = True,
        avoid_news: bool = False,
        max_open_trades: int = 1,
        signal_every_n_candles: int = 5,
        signal_min_candles: int = 10,
        contract_multiplier_for: Callable[[str], float] = lambda symbol: 1.0,
    ) -> None:
        self._event_bus = event_bus
        self._signal_usecase = signal_usecase
        self._timeframe = timeframe
        self._capacity = capacity
        self._volume_mode = VolumeMode(volume_mode)
        self._mode = TradingMode(trading_mode)
        self.lot_size = lot_size
        self.auto_trade = auto_trade
        self.avoid_news = avoid_news
        self.news_impact = NewsImpact.NONE
        self._max_open_trades = max_open_trades
        self._signal_every = max(1, signal_every_n_candles)
        self._signal_min_candles = signal_min_candles
        self._contract_multiplier_for = contract_multiplier_for

        self._pipelines: Dict[str, SymbolPipeline] = {}
        self._queue: asyncio.Queue | None = None
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._processed_count = 0
        self._consumer_name = "process_update_usecase"
        self._signal_tasks: Dict[str, asyncio.Task] = {}

    # ════════════════════════════════════════════════════════════════
    #  PIPELINES
    # ════════════════════════════════════════════════════════════════

    def pipeline(self, symbol: str) -> SymbolPipeline:
        """Obtener el pipeline de un símbolo; crearlo si no existe."""
        pipeline = self._pipelines.get(symbol)
        if pipeline is None:
            pipeline = SymbolPipeline(
                symbol=symbol,
                aggregator=CandleAggregator(
                    symbol, self._timeframe, self._capacity, self._volume_mode,
                ),
                engine=IndicatorEngine(symbol),
                risk_manager=PositionRiskManager(symbol),
                alerts=PriceAlertMonitor(symbol),
            )
            self._pipelines[symbol] = pipeline
        return pipeline

    def get_pipeline(self, symbol: str) -> Optional[SymbolPipeline]:
        return self._pipelines.get(symbol)

    @property
    def symbols(self) -> List[str]:
        return list(self._pipelines)

    def seed(self, symbol: str, candles: List[Candle]) -> int:
        """Precargar historial (arranque en frío) y recalcular indicadores."""
        pipeline = self.pipeline(symbol)
        loaded = pipeline.aggregator.seed(candles)
        if loaded:
            pipeline.snapshot = pipeline.engine.compute(pipeline.aggregator.history())
        return loaded

    # ════════════════════════════════════════════════════════════════
    #  MODO DE TRADING
    # ════════════════════════════════════════════════════════════════

    @property
    def trading_mode(self) -> TradingMode:
        return self._mode

    @trading_mode.setter
    def trading_mode(self, mode: TradingMode | str) -> None:
        new_mode = TradingMode(mode)
        if new_mode is not self._mode:
            logger.info("Modo de trading cambiado: %s → %s", self._mode.value, new_mode.value)
            self._mode = new_mode

    @property
    def profile(self) -> TradingModeProfile:
        return get_profile(self._mode)

    # ════════════════════════════════════════════════════════════════
    #  NÚCLEO SÍNCRONO
    # ════════════════════════════════════════════════════════════════

    def handle(self, update: PriceUpdate) -> UpdateResult:
        """
        Cadena síncrona para un update. Sin I/O ni await.

        Un update rechazado por el agregador (inválido o fuera de orden)
        no llega al trinquete ni a las alertas.
        """
        result = UpdateResult(update=update)
        pipeline = self.pipeline(update.symbol)
        state = pipeline.aggregator.state
        rejected_before = state.rejected_invalid + state.rejected_stale

        closed = pipeline.aggregator.ingest(update)
        if state.rejected_invalid + state.rejected_stale != rejected_before:
            return result
        result.accepted = True

        # ── Trinquete (cada update, no solo al cierre de vela) ──
        result.events = pipeline.risk_manager.on_price(update.close, update.event_ts)
        result.alerts = pipeline.alerts.check(update.close, update.event_ts)

        # ── Vela finalizada → indicadores ──
        if closed is not None:
            result.candle = closed
            history = pipeline.aggregator.history()
            pipeline.snapshot = pipeline.engine.compute(history)
            result.snapshot = pipeline.snapshot
            pipeline.candles_since_signal += 1
            if (
                pipeline.candles_since_signal >= self._signal_every
                and len(history) >= self._signal_min_candles
            ):
                pipeline.candles_since_signal = 0
                result.signal_due = True

        self._processed_count += 1
        return result

    # ════════════════════════════════════════════════════════════════
    #  CAPA ASÍNCRONA
    # ════════════════════════════════════════════════════════════════

    async def process(self, update: PriceUpdate, *, background_signal: bool = False) -> UpdateResult:
        """
        handle() + publicación de eventos + señal si corresponde.

        Con background_signal=True la señal se evalúa en una task aparte
        (una por símbolo como máximo) y el trade, si se abre, entra al
        close del update que la disparó.
        """
        result = self.handle(update)
        if not result.accepted:
            return result

        for event in result.events:
            await self._event_bus.publish(event.topic, event)
        for alert in result.alerts:
            await self._event_bus.publish(alert.topic, alert)

        if result.candle is not None:
            await self._event_bus.publish(CANDLE_TOPIC, result.candle)
            await self._event_bus.publish(INDICATORS_TOPIC, {
                "symbol": update.symbol,
                "candle_timestamp": result.candle.bucket_start,
                **result.snapshot.to_dict(),
            })

        if result.signal_due:
            if background_signal:
                self._schedule_signal(update)
            else:
                await self.evaluate_signal(update.symbol, price=update.close, timestamp=update.event_ts)
        return result

    def _schedule_signal(self, update: PriceUpdate) -> None:
        pending = self._signal_tasks.get(update.symbol)
        if pending is not None and not pending.done():
            logger.debug("Señal de %s aún en curso; se omite esta evaluación", update.symbol)
            return
        task = asyncio.create_task(
            self.evaluate_signal(update.symbol, price=update.close, timestamp=update.event_ts),
            name=f"signal-{update.symbol}",
        )
        self._signal_tasks[update.symbol] = task
        task.add_done_callback(self._on_signal_done)

    def _on_signal_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Error evaluando señal (%s): %s", task.get_name(), error, exc_info=error)

    @property
    def pending_signals(self) -> int:
        return sum(1 for t in self._signal_tasks.values() if not t.done())

    async def evaluate_signal(
        self,
        symbol: str,
        *,
        price: Optional[float] = None,
        timestamp: float = 0.0,
        allow_trade: bool = True,
    ) -> GenerateSignalResult:
        """Pedir señal al proveedor y, si la compuerta lo permite, abrir trade."""
        pipeline = self.pipeline(symbol)
        history = pipeline.aggregator.history()
        snapshot = pipeline.snapshot or pipeline.engine.compute(history)

        result = await self._signal_usecase.execute(
            symbol,
            history,
            snapshot,
            self.profile,
            open_trades=pipeline.risk_manager.open_count,
            max_open_trades=self._max_open_trades,
            avoid_news=self.avoid_news,
            news_impact=self.news_impact,
        )
        pipeline.last_result = result
        if not result.generated or result.signal is None:
            logger.debug("Señal omitida para %s: %s", symbol, result.skip_reason)
            return result

        pipeline.last_signal = result.signal
        await self._event_bus.publish(SIGNAL_TOPIC, result.signal)

        if allow_trade and self.auto_trade and result.decision is not None and result.decision.execute:
            entry = price if price is not None else pipeline.aggregator.state.last_price
            await self._open_from_signal(pipeline, result.signal, entry, timestamp)
        return result

    async def _open_from_signal(
        self, pipeline: SymbolPipeline, signal: Signal, entry: float, timestamp: float,
    ) -> None:
        try:
            _, opened = pipeline.risk_manager.open_from_profile(
                Side(signal.signal_type.value),
                entry,
                self.profile,
                lot_size=self.lot_size,
                suggested_sl=signal.suggested_sl,
                suggested_tp=signal.suggested_tp,
                contract_multiplier=self._contract_multiplier_for(pipeline.symbol),
                timestamp=timestamp,
            )
        except DomainError as e:
            logger.warning("No se pudo abrir trade en %s: %s", pipeline.symbol, e.message)
            return
        await self._event_bus.publish(opened.topic, opened)

    async def close_trade(
        self, symbol: str, trade_id: str, price: Optional[float] = None, timestamp: float = 0.0,
    ) -> TradeClosed:
        """
        Cierre manual al precio dado o al último precio conocido.

        Raises:
            InvalidTradeError si el símbolo o el trade no existen
        """
        pipeline = self._pipelines.get(symbol)
        if pipeline is None:
            raise InvalidTradeError(f"Símbolo sin pipeline: {symbol}", trade_id=trade_id)
        exit_price = price if price is not None else pipeline.aggregator.state.last_price
        closed = pipeline.risk_manager.close_trade(trade_id, exit_price, timestamp)
        await self._event_bus.publish(closed.topic, closed)
        return closed

    def add_alert(self, symbol: str, target_price: float, timestamp: float = 0.0) -> PriceAlert:
        pipeline = self.pipeline(symbol)
        return pipeline.alerts.add(target_price, pipeline.aggregator.state.last_price, timestamp)

    # ════════════════════════════════════════════════════════════════
    #  LOOP DE CONSUMO
    # ════════════════════════════════════════════════════════════════

    async def start(self) -> None:
        """Suscribirse al EventBus y lanzar el loop. Idempotente."""
        if self._running:
            return
        self._queue = await self._event_bus.subscribe(PRICE_UPDATE_TOPIC, self._consumer_name)
        self._running = True
        self._task = asyncio.create_task(self._run(), name="process-update-loop")
        logger.info("ProcessUpdateUseCase iniciado, consumiendo tópico '%s'", PRICE_UPDATE_TOPIC)

    async def stop(self) -> None:
        """Detener procesamiento. Idempotente."""
        if not self._running and self._task is None:
            return
        self._running = False
        await self._event_bus.unsubscribe(PRICE_UPDATE_TOPIC, self._consumer_name)
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        pending = [t for t in self._signal_tasks.values() if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._signal_tasks.clear()

        logger.info(
            "ProcessUpdateUseCase detenido. Updates procesados: %d", self._processed_count,
        )

    async def drain(self) -> int:
        """Procesar lo que haya en cola sin esperar (replay / tests)."""
        processed = 0
        if self._queue is None:
            return processed
        while not self._queue.empty():
            await self.process(self._queue.get_nowait())
            processed += 1
        return processed

    async def _run(self) -> None:
        """
        Loop principal de consumo.
        Espera en queue.get() → no consume CPU cuando no hay datos.
        """
        assert self._queue is not None

        while self._running:
            try:
                try:
                    update: PriceUpdate = await asyncio.wait_for(self._queue.get(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue
                await self.process(update, background_signal=True)
            except asyncio.CancelledError:
                logger.info("ProcessUpdateUseCase cancelado")
                break
            except Exception as e:
                logger.error("Error procesando update: %s", e, exc_info=True)
                continue

    # ════════════════════════════════════════════════════════════════
    #  CONSULTAS
    # ════════════════════════════════════════════════════════════════

    @property
    def running(self) -> bool:
        return self._running

    @property
    def processed_count(self) -> int:
        return self._processed_count

    def snapshot(self) -> dict:
        """Snapshot completo para diagnóstico / API."""
        return {
            "running": self._running,
            "processed": self._processed_count,
            "trading_mode": self._mode.value,
            "auto_trade": self.auto_trade,
            "avoid_news": self.avoid_news,
            "news_impact": self.news_impact.value,
            "symbols": {
                symbol: {
                    **p.aggregator.snapshot(),
                    "open_trades": p.risk_manager.open_count,
                    "closed_trades": len(p.risk_manager.closed_trades),
                    "alerts": len(p.alerts.alerts),
                }
                for symbol, p in self._pipelines.items()
            },
        }
