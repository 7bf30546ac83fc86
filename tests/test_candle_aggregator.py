import math

import pytest

from zeroloss.application.services.candle_aggregator import (
    CandleAggregator,
    VolumeMode,
    timeframe_to_seconds,
)
from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.exceptions.domain_errors import ValidationError
from zeroloss.domain.services.indicator_calculator import IndicatorCalculator
from zeroloss.domain.value_objects.price_update import PriceUpdate

SYMBOL = "XAUUSD"


def update(ts, o, h, l, c, v=1.0, symbol=SYMBOL):
    return PriceUpdate(symbol=symbol, timestamp=ts, open=o, high=h, low=l, close=c, volume=v)


def tick(ts, price, v=1.0):
    return PriceUpdate.from_price(SYMBOL, ts, price, v)


def test_timeframes_map_to_seconds():
    assert timeframe_to_seconds("1m") == 60
    assert timeframe_to_seconds("4h") == 14400
    with pytest.raises(ValidationError):
        timeframe_to_seconds("7m")


def test_same_bucket_updates_merge_into_one_candle():
    """close = último, high = máximo, low = mínimo, open intacto."""
    agg = CandleAggregator(SYMBOL, "1m")
    assert agg.ingest(update(60, 2350.0, 2351.0, 2349.5, 2350.5)) is None
    assert agg.ingest(update(75, 2350.5, 2353.0, 2350.0, 2352.0)) is None
    assert agg.ingest(update(119.9, 2352.0, 2352.5, 2348.0, 2349.0)) is None

    closed = agg.ingest(tick(120, 2349.5))
    assert closed is not None
    assert closed.bucket_start == 60
    assert closed.open == 2350.0
    assert closed.high == 2353.0
    assert closed.low == 2348.0
    assert closed.close == 2349.0
    assert closed.update_count == 3
    assert agg.history() == (closed,)


def test_random_updates_in_one_bucket_keep_ohlc_invariants():
    import random

    rng = random.Random(7)
    agg = CandleAggregator(SYMBOL, "5m")
    prices = []
    for i in range(50):
        p = 2300 + rng.uniform(-10, 10)
        prices.append(p)
        agg.ingest(tick(600 + i * 5, p))
    closed = agg.ingest(tick(900, 2300.0))
    assert closed.close == prices[-1]
    assert closed.high == max(prices)
    assert closed.low == min(prices)
    assert closed.open == prices[0]


def test_new_bucket_finalizes_and_seeds_next_candle():
    agg = CandleAggregator(SYMBOL, "1m")
    agg.ingest(tick(0, 100.0))
    closed = agg.ingest(tick(60, 101.0))
    assert closed.close == 100.0
    current = agg.current()
    assert current.bucket_start == 60
    assert current.open == current.close == 101.0


def test_gaps_are_not_filled():
    agg = CandleAggregator(SYMBOL, "1m")
    agg.ingest(tick(0, 100.0))
    agg.ingest(tick(300, 101.0))
    agg.ingest(tick(360, 102.0))
    assert [c.bucket_start for c in agg.history()] == [0, 300]


def test_older_bucket_is_rejected_without_touching_state():
    agg = CandleAggregator(SYMBOL, "1m")
    agg.ingest(tick(120, 100.0))
    before = agg.current()
    assert agg.ingest(tick(60, 50.0)) is None
    assert agg.current() == before
    assert agg.state.rejected_stale == 1
    assert agg.state.last_price == 100.0


@pytest.mark.parametrize("bad", [
    update(60, math.nan, 1.0, 1.0, 1.0),
    update(60, 1.0, 1.0, 1.0, math.inf),
    update(60, 1.0, 1.0, 1.0, 1.0, v=-1.0),
    update(60, 1.0, 1.0, 1.0, 1.0, v=math.nan),
    update(60, 0.0, 1.0, 0.0, 1.0),
    update(60, 1.0, 0.5, 0.9, 0.8),     # high < low
    update(60, 1.0, 1.1, 0.9, 1.2),     # high < close
    update(60, 1.0, 1.1, 0.95, 0.9),    # low > close
])
def test_malformed_updates_are_discarded(bad):
    agg = CandleAggregator(SYMBOL, "1m")
    agg.ingest(update(60, 2.0, 2.5, 1.5, 2.2))
    before = agg.current()
    assert agg.ingest(bad) is None
    assert agg.current() == before
    assert agg.state.rejected_invalid == 1


def test_update_for_other_symbol_is_discarded():
    agg = CandleAggregator(SYMBOL, "1m")
    assert agg.ingest(update(60, 1.0, 1.0, 1.0, 1.0, symbol="BTCUSDT")) is None
    assert agg.current() is None
    assert agg.state.rejected_invalid == 1


def test_history_is_bounded_fifo():
    agg = CandleAggregator(SYMBOL, "1m", capacity=5)
    for i in range(12):
        agg.ingest(tick(i * 60, 100.0 + i))
    history = agg.history()
    assert len(history) == 5
    assert [c.close for c in history] == [106.0, 107.0, 108.0, 109.0, 110.0]
    assert agg.state.total_candles == 11


def test_snapshot_volume_mode_replaces_volume():
    agg = CandleAggregator(SYMBOL, "1m", volume_mode=VolumeMode.SNAPSHOT)
    agg.ingest(tick(0, 100.0, v=5.0))
    agg.ingest(tick(10, 100.0, v=8.0))
    agg.ingest(tick(20, 100.0, v=12.5))
    assert agg.current().volume == 12.5


def test_delta_volume_mode_adds_volume():
    agg = CandleAggregator(SYMBOL, "1m", volume_mode="delta")
    agg.ingest(tick(0, 100.0, v=5.0))
    agg.ingest(tick(10, 100.0, v=8.0))
    agg.ingest(tick(20, 100.0, v=12.5))
    assert agg.current().volume == 25.5


def test_seed_loads_ordered_history_and_blocks_older_updates():
    agg = CandleAggregator(SYMBOL, "1m")
    candles = [
        Candle(SYMBOL, t, 100.0, 101.0, 99.0, 100.5, 3.0, 60) for t in (0, 60, 120)
    ]
    duplicate = Candle(SYMBOL, 60, 1.0, 1.0, 1.0, 1.0, 1.0, 60)
    assert agg.seed(candles + [duplicate]) == 3
    assert len(agg.history()) == 3
    assert agg.state.last_price == 100.5

    assert agg.ingest(tick(130, 100.0)) is None
    assert agg.state.rejected_stale == 1
    assert agg.ingest(tick(180, 100.0)) is None
    assert agg.current().bucket_start == 180


def test_seed_discards_malformed_candles():
    """Una vela histórica con NaN no debe envenenar las EMAs."""
    agg = CandleAggregator(SYMBOL, "1m")
    candles = [
        Candle(SYMBOL, i * 60.0, 100.0, 105.0, 99.0, 100.0 + i * 0.1, 1.0, 60) for i in range(30)
    ]
    candles[5] = Candle(SYMBOL, 300.0, 100.0, 101.0, 99.0, math.nan, 1.0, 60)
    candles[7] = Candle(SYMBOL, 420.0, 100.0, 99.0, 101.0, 100.0, 1.0, 60)
    candles[9] = Candle(SYMBOL, 540.0, 100.0, 101.0, 99.0, 100.5, -1.0, 60)

    assert agg.seed(candles) == 27
    assert agg.state.rejected_invalid == 3
    assert all(c.is_valid for c in agg.history())

    snapshot = IndicatorCalculator.compute(agg.history())
    assert math.isfinite(snapshot.ema20)
    assert math.isfinite(snapshot.ema50)
    assert math.isfinite(snapshot.macd.macd)
    assert math.isfinite(snapshot.macd.signal)


def test_invalid_capacity_raises():
    with pytest.raises(ValidationError):
        CandleAggregator(SYMBOL, "1m", capacity=0)
