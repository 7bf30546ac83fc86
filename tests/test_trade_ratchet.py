import math
import random

import pytest

from zeroloss.domain.entities.trade import CloseReason, RiskParameters, Side, Trade, TradeState
from zeroloss.domain.exceptions.domain_errors import InvalidTradeError


def buy_2350(trail_gap=2.0, tp=None, lot=1.0, multiplier=1.0):
    return Trade.open(
        symbol="XAUUSD",
        side=Side.BUY,
        entry_price=2350.0,
        lot_size=lot,
        sl_price=2347.0,
        risk=RiskParameters(breakeven_trigger_fraction=0.5, trail_gap=trail_gap),
        tp_price=tp,
        contract_multiplier=multiplier,
    )


def sell_2350(trail_gap=2.0, tp=None, lot=1.0, multiplier=1.0):
    return Trade.open(
        symbol="XAUUSD",
        side=Side.SELL,
        entry_price=2350.0,
        lot_size=lot,
        sl_price=2353.0,
        risk=RiskParameters(breakeven_trigger_fraction=0.5, trail_gap=trail_gap),
        tp_price=tp,
        contract_multiplier=multiplier,
    )


def test_breakeven_fires_only_after_trigger_is_exceeded():
    trade = buy_2350()
    assert trade.state is TradeState.OPEN_RISKED
    assert trade.initial_risk_distance == 3.0

    trade = trade.apply_price(2350.0)
    trade = trade.apply_price(2351.4)
    assert trade.state is TradeState.OPEN_RISKED
    assert trade.sl_price == 2347.0

    trade = trade.apply_price(2351.6)
    assert trade.state is TradeState.OPEN_SECURED
    assert trade.secured
    assert trade.sl_price == 2350.0


def test_trailing_ratchets_up_and_never_regresses():
    trade = buy_2350(trail_gap=2.0).apply_price(2351.6)
    assert trade.sl_price == 2350.0

    trade = trade.apply_price(2360.0)
    assert trade.highest_favorable == 2360.0
    assert trade.sl_price == 2358.0

    trade = trade.apply_price(2358.5)
    assert trade.is_open
    assert trade.sl_price == 2358.0

    trade = trade.apply_price(2362.0)
    assert trade.sl_price == 2360.0
    assert trade.is_trailing


def test_sell_mirrors_buy():
    trade = sell_2350(trail_gap=2.0)
    trade = trade.apply_price(2348.6)
    assert trade.state is TradeState.OPEN_RISKED
    trade = trade.apply_price(2348.4)
    assert trade.secured and trade.sl_price == 2350.0
    trade = trade.apply_price(2340.0)
    assert trade.sl_price == 2342.0
    trade = trade.apply_price(2341.5)
    assert trade.is_open and trade.sl_price == 2342.0
    trade = trade.apply_price(2342.0)
    assert trade.is_closed
    assert trade.close_reason is CloseReason.TRAILING_STOP
    assert trade.exit_price == 2342.0
    assert trade.profit == pytest.approx(8.0)


def test_initial_stop_loss_closes_at_stop_level():
    trade = buy_2350(lot=2.0, multiplier=100.0).apply_price(2345.0, timestamp=10.0)
    assert trade.is_closed
    assert trade.close_reason is CloseReason.STOP_LOSS
    assert trade.exit_price == 2347.0
    assert trade.closed_at == 10.0
    assert trade.profit == pytest.approx(-3.0 * 2.0 * 100.0)
    assert trade.profit == pytest.approx(-trade.max_loss)


def test_breakeven_stop_closes_flat():
    trade = buy_2350(trail_gap=5.0).apply_price(2352.0)
    assert trade.sl_price == 2350.0
    trade = trade.apply_price(2349.0)
    assert trade.close_reason is CloseReason.BREAKEVEN_STOP
    assert trade.exit_price == 2350.0
    assert trade.profit == 0.0


def test_take_profit_closes_at_target_level():
    trade = buy_2350(tp=2356.0).apply_price(2357.5)
    assert trade.close_reason is CloseReason.TAKE_PROFIT
    assert trade.exit_price == 2356.0
    assert trade.profit == pytest.approx(6.0)


def test_stop_is_checked_before_take_profit():
    """Un tick que cruza el SL cierra al nivel del SL aunque haya TP."""
    trade = sell_2350(tp=2340.0).apply_price(2360.0)
    assert trade.close_reason is CloseReason.STOP_LOSS
    assert trade.exit_price == 2353.0


def test_closed_trade_is_terminal():
    trade = buy_2350().apply_price(2340.0)
    assert trade.apply_price(2400.0) is trade
    with pytest.raises(InvalidTradeError):
        trade.close_at(2400.0)


@pytest.mark.parametrize("price", [math.nan, math.inf, -1.0, 0.0])
def test_invalid_prices_are_ignored(price):
    trade = buy_2350()
    assert trade.apply_price(price) is trade


def test_manual_close_uses_given_price():
    trade = buy_2350(lot=0.5, multiplier=100.0).close_at(2352.0, timestamp=5.0)
    assert trade.close_reason is CloseReason.MANUAL
    assert trade.profit == pytest.approx(2.0 * 0.5 * 100.0)


@pytest.mark.parametrize("kwargs", [
    {"sl_price": 2351.0},                  # SL del lado equivocado
    {"tp_price": 2340.0},                  # TP del lado equivocado
    {"lot_size": 0.0},
    {"entry_price": math.nan},
    {"contract_multiplier": -1.0},
])
def test_invalid_construction_raises(kwargs):
    params = dict(
        symbol="XAUUSD",
        side=Side.BUY,
        entry_price=2350.0,
        lot_size=1.0,
        sl_price=2347.0,
        risk=RiskParameters(0.5, 2.0),
    )
    params.update(kwargs)
    with pytest.raises(InvalidTradeError):
        Trade.open(**params)


def test_risk_parameters_validate():
    with pytest.raises(InvalidTradeError):
        RiskParameters(0.5, 0.0)
    with pytest.raises(InvalidTradeError):
        RiskParameters(-0.1, 1.0)


@pytest.mark.parametrize("side", [Side.BUY, Side.SELL])
@pytest.mark.parametrize("seed", range(40))
def test_stop_loss_is_monotonic_on_random_walks(side, seed):
    """SL monótono, breakeven una sola vez y nunca pérdida tras asegurar."""
    rng = random.Random(seed)
    make = buy_2350 if side is Side.BUY else sell_2350
    trade = make(trail_gap=rng.uniform(0.5, 4.0))
    d = side.direction
    threshold = trade.breakeven_trigger_distance

    price = trade.entry_price
    secured_transitions = 0
    for step in range(500):
        price = max(1.0, price + rng.gauss(0, 1.0))
        before = trade
        trade = trade.apply_price(price, timestamp=float(step))

        assert (trade.sl_price - before.sl_price) * d >= 0
        assert (trade.highest_favorable - before.highest_favorable) * d >= 0

        if before.state is TradeState.OPEN_RISKED and trade.secured:
            secured_transitions += 1
            assert trade.favorable_move(price) > threshold
        if trade.state is TradeState.OPEN_RISKED:
            assert trade.favorable_move(price) <= threshold
        if trade.is_closed:
            break

    assert secured_transitions <= 1
    if trade.is_closed and trade.secured:
        assert trade.profit >= 0.0
    if trade.is_closed and not trade.secured:
        assert trade.profit == pytest.approx(-trade.max_loss)
