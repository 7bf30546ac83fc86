import asyncio

import pytest

from zeroloss.application.ports.signal_provider import SignalProvider
from zeroloss.application.use_cases.generate_signal_usecase import GenerateSignalUseCase
from zeroloss.application.use_cases.process_update_usecase import (
    CANDLE_TOPIC,
    INDICATORS_TOPIC,
    SIGNAL_TOPIC,
    ProcessUpdateUseCase,
)
from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import Signal, SignalType, Trend
from zeroloss.domain.entities.trade import RiskParameters, Side
from zeroloss.domain.events.domain_events import StopMoved, TradeOpened, TradeSecured
from zeroloss.domain.exceptions.domain_errors import InvalidTradeError
from zeroloss.domain.services.trade_decision import DecisionReason
from zeroloss.domain.value_objects.price_update import PriceUpdate
from zeroloss.infrastructure.external.event_bus import EventBus
from zeroloss.infrastructure.external.replay_feed import ReplayFeed
from zeroloss.infrastructure.providers.local_provider import LocalHeuristicProvider

SYMBOL = "XAUUSD"


class FixedProvider(SignalProvider):
    """Proveedor que siempre responde la misma señal."""

    name = "fixed"

    def __init__(self, signal_type=SignalType.BUY, confidence=99):
        self.signal_type = signal_type
        self.confidence = confidence
        self.requests = []

    def is_available(self):
        return True

    async def get_signal(self, request):
        self.requests.append(request)
        last = request.last_candle
        return Signal(
            signal_type=self.signal_type,
            confidence=self.confidence,
            trend=Trend.UP,
            support=last.close - 3.0,
            resistance=last.close + 3.0,
            reasoning="fixed",
            suggested_sl=last.close - 3.0,
            suggested_tp=last.close + 10.0,
            symbol=request.symbol,
            price=last.close,
            candle_timestamp=last.bucket_start,
            source=self.name,
        )


def tick(ts, price):
    return PriceUpdate.from_price(SYMBOL, ts, price, 1.0)


def make_usecase(bus=None, provider=None, **kwargs):
    provider = provider or FixedProvider()
    params = dict(
        trading_mode="SCALPING",
        signal_every_n_candles=1,
        signal_min_candles=3,
    )
    params.update(kwargs)
    return ProcessUpdateUseCase(
        bus or EventBus(),
        GenerateSignalUseCase(provider, min_candles=params["signal_min_candles"]),
        **params,
    )


def test_handle_builds_candles_and_indicators_per_symbol():
    usecase = make_usecase()
    results = [usecase.handle(tick(i * 60, 2350.0 + i)) for i in range(5)]
    assert all(r.accepted for r in results)
    assert results[0].candle is None
    assert results[1].candle.close == 2350.0
    assert results[4].snapshot.candles_seen == 4

    pipeline = usecase.get_pipeline(SYMBOL)
    assert len(pipeline.aggregator.history()) == 4
    assert usecase.symbols == [SYMBOL]
    assert usecase.processed_count == 5


def test_signal_is_due_every_n_candles_after_warm_up():
    usecase = make_usecase(signal_every_n_candles=2, signal_min_candles=3)
    due = [usecase.handle(tick(i * 60, 2350.0)).signal_due for i in range(9)]
    # velas cerradas en i=1..8; historial >= 3 a partir de i=3
    assert due == [False, False, False, True, False, True, False, True, False]


def test_rejected_update_never_reaches_the_ratchet():
    usecase = make_usecase()
    usecase.handle(tick(120, 2350.0))
    pipeline = usecase.get_pipeline(SYMBOL)
    trade, _ = pipeline.risk_manager.open_trade(
        side=Side.BUY, entry_price=2350.0, lot_size=1.0, sl_price=2347.0,
        risk=RiskParameters(0.5, 2.0),
    )

    stale = usecase.handle(tick(60, 2300.0))
    assert not stale.accepted
    invalid = usecase.handle(PriceUpdate(SYMBOL, 130, 2300.0, 2200.0, 2250.0, 2300.0))
    assert not invalid.accepted
    assert pipeline.risk_manager.open_trades == (trade,)

    result = usecase.handle(tick(130, 2351.6))
    assert [type(e) for e in result.events] == [TradeSecured]


def test_process_opens_trade_from_accepted_signal_and_publishes():
    async def scenario():
        bus = EventBus()
        candles = await bus.subscribe(CANDLE_TOPIC, "t-candle")
        indicators = await bus.subscribe(INDICATORS_TOPIC, "t-ind")
        signals = await bus.subscribe(SIGNAL_TOPIC, "t-signal")
        opened = await bus.subscribe("trade_opened", "t-opened")
        secured = await bus.subscribe("trade_secured", "t-secured")

        usecase = make_usecase(bus)
        for i in range(4):
            await usecase.process(tick(i * 60, 2350.0))
        # 3 velas cerradas → señal → trade BUY @ 2350
        await usecase.process(tick(190, 2352.0))
        return usecase, candles.qsize(), indicators.qsize(), signals, opened, secured

    usecase, n_candles, n_indicators, signals, opened, secured = asyncio.run(scenario())
    assert n_candles == n_indicators == 3
    signal = signals.get_nowait()
    assert signal.signal_type is SignalType.BUY

    event = opened.get_nowait()
    assert isinstance(event, TradeOpened)
    trade = event.trade
    assert trade.entry_price == 2350.0
    assert trade.sl_price == 2347.0
    assert trade.tp_price == 2360.0
    assert trade.mode == "SCALPING"

    assert isinstance(secured.get_nowait(), TradeSecured)
    pipeline = usecase.get_pipeline(SYMBOL)
    assert pipeline.risk_manager.open_trades[0].secured
    assert pipeline.last_result.decision.reason is DecisionReason.ACCEPTED


def test_low_confidence_signal_does_not_open_trade():
    async def scenario():
        usecase = make_usecase(provider=FixedProvider(confidence=60))
        for i in range(4):
            await usecase.process(tick(i * 60, 2350.0))
        return usecase

    usecase = asyncio.run(scenario())
    pipeline = usecase.get_pipeline(SYMBOL)
    assert pipeline.last_signal is not None
    assert pipeline.last_result.decision.reason is DecisionReason.LOW_CONFIDENCE
    assert pipeline.risk_manager.open_count == 0


def test_auto_trade_off_only_records_signal():
    async def scenario():
        usecase = make_usecase(auto_trade=False)
        for i in range(4):
            await usecase.process(tick(i * 60, 2350.0))
        return usecase

    pipeline = asyncio.run(scenario()).get_pipeline(SYMBOL)
    assert pipeline.last_result.decision.execute
    assert pipeline.risk_manager.open_count == 0


def test_insufficient_history_skips_signal():
    async def scenario():
        usecase = make_usecase(signal_min_candles=50)
        usecase.handle(tick(0, 2350.0))
        usecase.handle(tick(60, 2350.0))
        return await usecase.evaluate_signal(SYMBOL)

    result = asyncio.run(scenario())
    assert not result.generated
    assert "insuficiente" in result.skip_reason


def test_mode_change_applies_to_new_trades_only():
    usecase = make_usecase()
    usecase.trading_mode = "ULTRA_SAFE"
    assert usecase.profile.confidence_threshold == 95
    with pytest.raises(ValueError):
        usecase.trading_mode = "YOLO"


def test_manual_close_and_alerts():
    async def scenario():
        bus = EventBus()
        closed_q = await bus.subscribe("trade_closed", "t")
        alerts_q = await bus.subscribe("price_alert", "t")
        usecase = make_usecase(bus)
        await usecase.process(tick(0, 2350.0))
        pipeline = usecase.get_pipeline(SYMBOL)
        trade, _ = pipeline.risk_manager.open_trade(
            side=Side.SELL, entry_price=2350.0, lot_size=1.0, sl_price=2355.0,
            risk=RiskParameters(0.5, 1.0),
        )
        alert = usecase.add_alert(SYMBOL, 2353.0)
        await usecase.process(tick(10, 2353.5))
        event = await usecase.close_trade(SYMBOL, trade.id)
        with pytest.raises(InvalidTradeError):
            await usecase.close_trade("BTCUSDT", trade.id)
        return alert, event, closed_q, alerts_q

    alert, event, closed_q, alerts_q = asyncio.run(scenario())
    assert alert.condition.value == "ABOVE"
    assert alerts_q.get_nowait().alert.id == alert.id
    assert event.trade.exit_price == 2353.5
    assert event.trade.profit == pytest.approx(-3.5)
    assert closed_q.get_nowait().trade.id == event.trade.id


def test_start_stop_consumes_replayed_updates():
    updates = [tick(i * 60 + s, 2350.0 + (i % 3)) for i in range(8) for s in (0, 30)]

    async def scenario():
        bus = EventBus()
        usecase = make_usecase(bus, provider=LocalHeuristicProvider())
        await usecase.start()
        await usecase.start()
        await ReplayFeed(bus, updates).run()

        async def wait_all():
            while usecase.processed_count < len(updates):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(wait_all(), timeout=5.0)
        await usecase.stop()
        await usecase.stop()
        return usecase, bus

    usecase, bus = asyncio.run(scenario())
    assert not usecase.running
    assert bus.subscriber_count == 0
    assert len(usecase.get_pipeline(SYMBOL).aggregator.history()) == 7


def test_seed_warms_up_history_and_indicators():
    usecase = make_usecase()
    candles = [Candle(SYMBOL, i * 60.0, 2350.0, 2400.0, 2349.0, 2350.0 + i, 1.0, 60) for i in range(30)]
    assert usecase.seed(SYMBOL, candles) == 30
    pipeline = usecase.get_pipeline(SYMBOL)
    assert pipeline.snapshot.candles_seen == 30
    assert pipeline.aggregator.state.last_price == 2379.0


class GatedProvider(FixedProvider):
    """Proveedor que no responde hasta que se abre la compuerta."""

    name = "gated"

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()
        self.waiting = 0

    async def get_signal(self, request):
        self.waiting += 1
        await self.gate.wait()
        return await super().get_signal(request)


def wait_until(condition, timeout=5.0):
    async def poll():
        while not condition():
            await asyncio.sleep(0.01)
    return asyncio.wait_for(poll(), timeout=timeout)


def test_slow_provider_does_not_stall_the_ratchet():
    """La señal corre aparte; el trade entra al close del update que la disparó."""
    updates = [tick(i * 60, 2350.0) for i in range(4)] + [tick(190, 2351.0), tick(200, 2352.0)]

    async def scenario():
        bus = EventBus()
        provider = GatedProvider()
        usecase = make_usecase(bus, provider=provider)
        await usecase.start()
        await ReplayFeed(bus, updates).run()

        await wait_until(lambda: usecase.processed_count == len(updates) and provider.waiting == 1)
        pipeline = usecase.get_pipeline(SYMBOL)
        blocked = (usecase.pending_signals, pipeline.risk_manager.open_count)

        provider.gate.set()
        await wait_until(lambda: pipeline.risk_manager.open_count == 1)
        await usecase.stop()
        return blocked, pipeline.risk_manager.open_trades[0]

    blocked, trade = asyncio.run(scenario())
    assert blocked == (1, 0)
    assert trade.entry_price == 2350.0
    assert trade.opened_at == 180


def test_stop_cancels_pending_signal():
    async def scenario():
        bus = EventBus()
        provider = GatedProvider()
        usecase = make_usecase(bus, provider=provider)
        await usecase.start()
        await ReplayFeed(bus, [tick(i * 60, 2350.0) for i in range(4)]).run()
        await wait_until(lambda: provider.waiting == 1)
        await usecase.stop()
        return usecase

    usecase = asyncio.run(scenario())
    assert usecase.pending_signals == 0
    assert usecase.get_pipeline(SYMBOL).risk_manager.open_count == 0


def test_event_time_is_recorded_on_trades_and_alerts():
    """El bucket usa timestamp; trades y alertas registran la hora real del evento."""
    async def scenario():
        usecase = make_usecase()
        await usecase.process(PriceUpdate.from_price(SYMBOL, 0, 2350.0))
        pipeline = usecase.get_pipeline(SYMBOL)
        trade, _ = pipeline.risk_manager.open_trade(
            side=Side.BUY, entry_price=2350.0, lot_size=1.0, sl_price=2347.0,
            risk=RiskParameters(0.5, 1.0),
        )
        alert = usecase.add_alert(SYMBOL, 2352.0)
        stopped = await usecase.process(
            PriceUpdate(SYMBOL, 0, 2350.0, 2350.0, 2346.0, 2346.5, 1.0, event_time=42.5)
        )
        fired = await usecase.process(
            PriceUpdate(SYMBOL, 0, 2346.5, 2353.0, 2346.5, 2353.0, 2.0, event_time=50.0)
        )
        return usecase, stopped, fired, trade, alert

    usecase, stopped, fired, trade, alert = asyncio.run(scenario())
    pipeline = usecase.get_pipeline(SYMBOL)
    assert stopped.candle is None and fired.candle is None
    assert pipeline.aggregator.current().bucket_start == 0
    closed = pipeline.risk_manager.closed_trades[0]
    assert closed.id == trade.id
    assert closed.closed_at == 42.5
    assert [(t.alert.id, t.timestamp) for t in fired.alerts] == [(alert.id, 50.0)]
