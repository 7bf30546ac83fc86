import math

import pytest

from zeroloss.application.services.price_alert_monitor import AlertCondition, PriceAlertMonitor
from zeroloss.domain.exceptions.domain_errors import ValidationError


def test_condition_is_decided_from_current_price():
    monitor = PriceAlertMonitor("XAUUSD")
    assert monitor.add(2400.0, 2350.0).condition is AlertCondition.ABOVE
    assert monitor.add(2300.0, 2350.0).condition is AlertCondition.BELOW
    assert len(monitor.alerts) == 2


def test_alert_fires_once_and_is_removed():
    monitor = PriceAlertMonitor("XAUUSD")
    above = monitor.add(2360.0, 2350.0)
    below = monitor.add(2340.0, 2350.0)

    assert monitor.check(2359.9) == []
    fired = monitor.check(2360.0, timestamp=7.0)
    assert [t.alert.id for t in fired] == [above.id]
    assert fired[0].timestamp == 7.0
    assert monitor.check(2370.0) == []
    assert monitor.alerts == (below,)

    assert [t.alert.id for t in monitor.check(2335.0)] == [below.id]
    assert monitor.alerts == ()


def test_remove_alert():
    monitor = PriceAlertMonitor("XAUUSD")
    alert = monitor.add(2400.0, 2350.0)
    assert monitor.remove(alert.id) == alert
    assert monitor.remove(alert.id) is None


@pytest.mark.parametrize("target,current", [(0.0, 2350.0), (math.nan, 2350.0), (2400.0, 0.0)])
def test_invalid_alerts_raise(target, current):
    with pytest.raises(ValidationError):
        PriceAlertMonitor("XAUUSD").add(target, current)
