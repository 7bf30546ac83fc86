import pytest

from zeroloss.domain.entities.candle import Candle
from zeroloss.domain.entities.signal import SignalType, Trend
from zeroloss.domain.services.signal_scorer import ScorerConfig, SignalScorer
from zeroloss.domain.value_objects.indicator_snapshot import IndicatorSnapshot, Macd, StochRsi

CANDLE = Candle("XAUUSD", 600.0, 2350.0, 2351.0, 2349.0, 2350.0, 10.0, 60)

BULLISH = IndicatorSnapshot(
    rsi=25.0,
    ma50=2340.0,
    ema20=2352.0,
    ema50=2345.0,
    macd=Macd(macd=1.2, signal=0.8, histogram=0.4),
    stoch_rsi=StochRsi(k=12.0, d=15.0),
    candles_seen=100,
)

BEARISH = IndicatorSnapshot(
    rsi=78.0,
    ma50=2360.0,
    ema20=2345.0,
    ema50=2352.0,
    macd=Macd(macd=-1.2, signal=-0.8, histogram=-0.4),
    stoch_rsi=StochRsi(k=90.0, d=85.0),
    candles_seen=100,
)


def test_neutral_snapshot_is_hold():
    signal = SignalScorer().score(IndicatorSnapshot(), CANDLE)
    assert signal.signal_type is SignalType.HOLD
    assert signal.confidence == 0
    assert signal.suggested_sl is None and signal.suggested_tp is None
    assert "sin factores activos" in signal.reasoning


def test_scorer_is_deterministic():
    scorer = SignalScorer()
    assert scorer.score(BULLISH, CANDLE) == scorer.score(BULLISH, CANDLE)


def test_bullish_confluence_is_buy_with_coherent_levels():
    signal = SignalScorer().score(BULLISH, CANDLE)
    assert signal.signal_type is SignalType.BUY
    assert signal.trend is Trend.UP
    assert signal.score > 0
    assert signal.support < CANDLE.close < signal.resistance
    assert signal.suggested_sl < CANDLE.close < signal.suggested_tp
    assert signal.source == "local"
    assert signal.candle_timestamp == CANDLE.bucket_start
    assert "RSI" in signal.reasoning and "MACD alcista" in signal.reasoning


def test_bearish_confluence_is_sell_with_mirrored_levels():
    signal = SignalScorer().score(BEARISH, CANDLE)
    assert signal.signal_type is SignalType.SELL
    assert signal.trend is Trend.DOWN
    assert signal.score < 0
    assert signal.suggested_tp < CANDLE.close < signal.suggested_sl


def test_buy_and_sell_scores_are_symmetric():
    scorer = SignalScorer()
    buy = scorer.score(BULLISH, CANDLE)
    sell = scorer.score(BEARISH, CANDLE)
    assert buy.confidence == sell.confidence
    assert buy.score == pytest.approx(-sell.score)


def test_rsi_alone_below_threshold_is_not_enough_when_threshold_is_high():
    snapshot = IndicatorSnapshot(rsi=40.0, ema20=2350.0, ema50=2350.0)
    strict = SignalScorer(ScorerConfig(buy_threshold=10.0))
    assert strict.score(snapshot, CANDLE).signal_type is SignalType.HOLD
    assert SignalScorer().score(snapshot, CANDLE).signal_type is SignalType.BUY


def test_confidence_is_bounded_and_monotonic():
    scorer = SignalScorer()
    previous = -1
    for i in range(0, 200):
        conf = scorer.confidence_for(i * 0.1)
        assert 0 <= conf <= 99
        assert conf >= previous
        previous = conf
    assert scorer.confidence_for(-3.0) == scorer.confidence_for(3.0)


def test_note_is_appended_to_reasoning():
    signal = SignalScorer().score(BULLISH, CANDLE, source="fallback", note="Timeout")
    assert signal.source == "fallback"
    assert signal.reasoning.endswith("(Timeout)")
