import asyncio

from zeroloss.infrastructure.external.binance_client import (
    BinanceKlineClient,
    parse_kline_message,
    parse_rest_klines,
)
from zeroloss.infrastructure.external.event_bus import EventBus
from zeroloss.infrastructure.external.replay_feed import ReplayFeed
from zeroloss.shared.config.settings import Settings

KLINE = {
    "e": "kline",
    "E": 1700000030000,
    "s": "PAXGUSDT",
    "k": {
        "t": 1700000040000,
        "T": 1700000099999,
        "s": "PAXGUSDT",
        "i": "1m",
        "o": "2350.10",
        "h": "2351.00",
        "l": "2349.80",
        "c": "2350.40",
        "v": "12.5",
        "x": False,
    },
}


def test_kline_message_becomes_price_update():
    update = parse_kline_message(KLINE, {"PAXGUSDT": "XAUUSD"})
    assert update.symbol == "XAUUSD"
    assert update.timestamp == 1700000040.0
    assert update.event_time == 1700000030.0
    assert update.event_ts == 1700000030.0
    assert (update.open, update.high, update.low, update.close) == (2350.10, 2351.00, 2349.80, 2350.40)
    assert update.volume == 12.5
    assert update.is_valid


def test_non_kline_and_malformed_messages_are_ignored():
    assert parse_kline_message({"result": None, "id": 1}, {}) is None
    broken = {"e": "kline", "k": {"s": "PAXGUSDT", "t": 1, "o": "x"}}
    assert parse_kline_message(broken, {}) is None


def test_rest_klines_drop_the_unclosed_candle():
    rows = [
        [1700000000000, "1.0", "2.0", "0.5", "1.5", "10", 1700000059999, "0", 1],
        [1700000060000, "1.5", "2.5", "1.0", "2.0", "11", 1700000119999, "0", 1],
        [1700000120000, "2.0", "2.2", "1.9", "2.1", "3", 1700000179999, "0", 1],
    ]
    candles = parse_rest_klines(rows, "XAUUSD", 60, now_ms=1700000150000)
    assert [c.bucket_start for c in candles] == [1700000000.0, 1700000060.0]
    assert candles[1].close == 2.0
    assert candles[0].interval == 60


def test_stream_names_use_symbol_map():
    settings = Settings(symbols=["XAUUSD", "BTCUSDT"], timeframe="5m")
    client = BinanceKlineClient(EventBus(), settings)
    assert client.stream_names == ["paxgusdt@kline_5m", "btcusdt@kline_5m"]
    assert client.stats["running"] is False


def test_client_stop_without_start_is_noop():
    client = BinanceKlineClient(EventBus(), Settings(symbols=["XAUUSD"]))
    asyncio.run(client.stop())
    assert client.stats["connected"] is False


def test_replay_feed_publishes_csv_rows_in_order(tmp_path):
    path = tmp_path / "xau.csv"
    path.write_text(
        "symbol,timestamp,open,high,low,close,volume\n"
        "XAUUSD,0,2350,2351,2349,2350.5,1\n"
        "XAUUSD,30,2350.5,2352,2350,2351.5,2\n"
        "XAUUSD,not-a-number,1,1,1,1,1\n"
        "XAUUSD,60,2351.5,2353,2351,2352.0,3\n",
        encoding="utf-8",
    )

    async def scenario():
        bus = EventBus()
        queue = await bus.subscribe("price_update", "test")
        feed = ReplayFeed.from_csv(bus, path)
        published = await feed.run()
        return published, [queue.get_nowait() for _ in range(queue.qsize())], feed

    published, updates, feed = asyncio.run(scenario())
    assert published == 3
    assert [u.close for u in updates] == [2350.5, 2351.5, 2352.0]
    assert feed.done


def test_replay_feed_accepts_price_ticks(tmp_path):
    path = tmp_path / "ticks.csv"
    path.write_text("timestamp,price\n0,100.0\n1,100.5\n", encoding="utf-8")

    async def scenario():
        bus = EventBus()
        queue = await bus.subscribe("price_update", "test")
        await ReplayFeed.from_csv(bus, path, symbol="XAUUSD").run()
        return [queue.get_nowait() for _ in range(queue.qsize())]

    updates = asyncio.run(scenario())
    assert [u.symbol for u in updates] == ["XAUUSD", "XAUUSD"]
    assert updates[1].open == updates[1].high == updates[1].low == updates[1].close == 100.5
