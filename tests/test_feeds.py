"""
FEED TESTS
Reconnect state machine, poller, streaming and polled feeds, feed manager

Run:
    python -m pytest tests/test_feeds.py -v
"""
import pytest
import asyncio
import random
import sys
import os

import orjson

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def wait_until(predicate, timeout=2.0):
    """Yield to the loop until predicate() holds"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class FakeSocket:
    """Yields queued frames, then stays open until closed"""

    def __init__(self, frames=()):
        self.sent = []
        self.frames = [orjson.dumps(f) if isinstance(f, dict) else f for f in frames]
        self.closed = asyncio.Event()

    async def send(self, message):
        self.sent.append(message)

    async def close(self):
        self.closed.set()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame
        await self.closed.wait()


class FakeConnector:
    def __init__(self, socket):
        self.socket = socket
        self.urls = []

    async def __call__(self, url):
        self.urls.append(url)
        return self.socket


# ============================================================
# A. RECONNECTING WEBSOCKET
# ============================================================

class TestReconnectingWebSocket:
    """Bounded retries and state transitions"""

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.websocket import (
            CONNECTION_ERROR_MESSAGE,
            CONNECTION_LOST_MESSAGE,
            ReconnectingWebSocket,
        )

        attempts = []
        states = []

        async def refuse(url):
            attempts.append(url)
            raise OSError("connection refused")

        async def on_open(ws):
            raise AssertionError("never opened")

        socket = ReconnectingWebSocket(
            url="wss://example.invalid/ws",
            on_open=on_open,
            on_message=lambda raw: None,
            max_retries=2,
            base_delay_s=0,
            max_delay_s=0,
            connect=refuse,
            on_state_change=lambda state, error: states.append((state, error)),
        )
        await socket.run()

        assert len(attempts) == 3
        assert socket.connect_attempts == 3
        assert socket.state == ConnectionState.ERROR
        assert socket.error == CONNECTION_LOST_MESSAGE
        assert (ConnectionState.ERROR, CONNECTION_ERROR_MESSAGE) in states
        assert (ConnectionState.LOADING, "Reconnecting (1/2)…") in states
        assert (ConnectionState.LOADING, "Reconnecting (2/2)…") in states
        assert states[-1] == (ConnectionState.ERROR, CONNECTION_LOST_MESSAGE)

    @pytest.mark.asyncio
    async def test_open_resets_retries_and_subscribes(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.websocket import ReconnectingWebSocket

        ws = FakeSocket([b"one", b"two"])
        received = []

        async def on_open(sock):
            await sock.send("subscribe")

        socket = ReconnectingWebSocket(
            url="wss://example.invalid/ws",
            on_open=on_open,
            on_message=received.append,
            max_retries=3,
            connect=FakeConnector(ws),
        )
        socket.retry_count = 2
        socket.start()
        await wait_until(lambda: len(received) == 2)

        assert socket.state == ConnectionState.OPEN
        assert socket.retry_count == 0
        assert ws.sent == ["subscribe"]
        assert received == [b"one", b"two"]

        await socket.close()
        assert ws.closed.is_set()
        assert not socket.running

    @pytest.mark.asyncio
    async def test_manual_reconnect_after_exhaustion(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.websocket import ReconnectingWebSocket

        ws = FakeSocket()
        calls = {"n": 0}

        async def flaky(url):
            calls["n"] += 1
            if calls["n"] == 1:
                raise OSError("down")
            return ws

        async def on_open(sock):
            pass

        socket = ReconnectingWebSocket(
            url="wss://example.invalid/ws",
            on_open=on_open,
            on_message=lambda raw: None,
            max_retries=0,
            connect=flaky,
        )
        await socket.run()
        assert socket.state == ConnectionState.ERROR

        await socket.reconnect()
        await wait_until(lambda: socket.state == ConnectionState.OPEN)
        assert socket.retry_count == 0

        await socket.close()

    @pytest.mark.asyncio
    async def test_no_state_change_after_close(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.websocket import ReconnectingWebSocket

        states = []

        async def on_open(sock):
            pass

        socket = ReconnectingWebSocket(
            url="wss://example.invalid/ws",
            on_open=on_open,
            on_message=lambda raw: None,
            connect=FakeConnector(FakeSocket()),
            on_state_change=lambda state, error: states.append(state),
        )
        await socket.close()
        socket._set_state(ConnectionState.OPEN)

        assert states == []


# ============================================================
# B. POLLER
# ============================================================

class TestPoller:
    """In-flight guard and failure isolation"""

    @pytest.mark.asyncio
    async def test_overlapping_tick_skipped(self):
        from perpfeed.feeds.polling import Poller

        gate = asyncio.Event()
        calls = []

        async def tick():
            calls.append(1)
            await gate.wait()

        poller = Poller(60, tick)
        assert poller.fire() is True
        await asyncio.sleep(0)
        assert poller.fire() is False

        assert poller.skipped_ticks == 1
        gate.set()
        await poller.wait_idle()

        assert calls == [1]
        assert poller.tick_count == 1
        assert poller.in_flight is False
        await poller.close()

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_schedule(self):
        from perpfeed.feeds.polling import Poller

        async def tick():
            raise RuntimeError("boom")

        poller = Poller(60, tick)
        poller.fire()
        await poller.wait_idle()
        poller.fire()
        await poller.wait_idle()

        assert poller.failure_count == 2
        assert poller.in_flight is False
        await poller.close()

    @pytest.mark.asyncio
    async def test_fire_after_close(self):
        from perpfeed.feeds.polling import Poller

        async def tick():
            pass

        poller = Poller(60, tick)
        await poller.close()

        assert poller.fire() is False

    def test_invalid_interval(self):
        from perpfeed.feeds.polling import Poller

        async def tick():
            pass

        with pytest.raises(ValueError):
            Poller(0, tick)


# ============================================================
# C. STREAMING FEEDS
# ============================================================

class FakeHyperliquidClient:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error

    async def candle_snapshot(self, coin, interval, start_ms, end_ms):
        if self.error is not None:
            raise self.error
        return self.rows


class FakeDydxClient:
    async def candles(self, ticker, resolution, limit=100):
        return {"candles": []}


HL_FRAMES = [
    {"channel": "subscriptionResponse", "data": {"method": "subscribe"}},
    {"channel": "l2Book", "data": {"coin": "BTC", "levels": [
        [{"px": "100", "sz": "1", "n": 1}, {"px": "99", "sz": "2", "n": 1}],
        [{"px": "101", "sz": "3", "n": 1}],
    ]}},
    {"channel": "trades", "data": [
        {"coin": "BTC", "side": "B", "px": "100.5", "sz": "0.1", "time": 1, "hash": "0x1", "tid": 1},
        {"coin": "BTC", "side": "A", "px": "100.4", "sz": "0.2", "time": 2, "hash": "0x1", "tid": 2},
    ]},
    {"channel": "candle", "data": {"t": 1700000000000, "o": "1", "h": "2", "l": "0.5", "c": "1.5", "v": "9"}},
]


class TestHyperliquidFeed:
    """Live Hyperliquid stream into unified state"""

    @pytest.mark.asyncio
    async def test_stream_to_state(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        ws = FakeSocket(HL_FRAMES)
        feed = HyperliquidFeed(
            "BTC", "15m",
            client=FakeHyperliquidClient(),
            connect=FakeConnector(ws),
            backfill=False,
        )
        await feed.start()
        await wait_until(lambda: len(feed.candles) == 1)

        sent = [orjson.loads(m) for m in ws.sent]
        assert [m["subscription"]["type"] for m in sent] == ["l2Book", "trades", "candle"]
        assert feed.connection_state == ConnectionState.OPEN
        assert feed.order_book.best_bid == 100.0
        assert feed.order_book.asks[0].total == 3.0
        assert [t.id for t in feed.tape.trades] == ["2", "1"]
        assert feed.candles.last.close == 1.5

        await feed.close()

    @pytest.mark.asyncio
    async def test_no_writes_after_close(self):
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        updates = []
        feed = HyperliquidFeed(
            "BTC", "15m",
            client=FakeHyperliquidClient(),
            connect=FakeConnector(FakeSocket()),
            backfill=False,
            on_update=updates.append,
        )
        await feed.close()
        feed.handle_message(HL_FRAMES[1])
        feed._on_raw_message(orjson.dumps(HL_FRAMES[3]))

        assert feed.order_book is None
        assert len(feed.candles) == 0
        assert updates == []

    @pytest.mark.asyncio
    async def test_raising_listener_keeps_stream(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        calls = []

        def listener(feed):
            calls.append(feed.connection_state)
            raise ValueError("listener bug")

        feed = HyperliquidFeed(
            "BTC", "15m",
            client=FakeHyperliquidClient(),
            connect=FakeConnector(FakeSocket(HL_FRAMES)),
            backfill=False,
            on_update=listener,
        )
        await feed.start()
        await wait_until(lambda: len(feed.candles) == 1)

        assert calls
        assert feed.socket.running is True
        assert feed.connection_state == ConnectionState.OPEN
        assert feed.order_book.best_bid == 100.0
        assert len(feed.tape.trades) == 2
        await feed.close()

    @pytest.mark.asyncio
    async def test_failed_message_is_dropped(self):
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        feed = HyperliquidFeed(
            "BTC", "15m",
            client=FakeHyperliquidClient(),
            connect=FakeConnector(FakeSocket(HL_FRAMES)),
            backfill=False,
        )
        handle = feed.handle_message

        def fail_on_trades(payload):
            if payload.get("channel") == "trades":
                raise KeyError("px")
            handle(payload)

        feed.handle_message = fail_on_trades
        await feed.start()
        await wait_until(lambda: len(feed.candles) == 1)

        assert feed.socket.running is True
        assert feed.health.dropped_messages == 1
        assert len(feed.tape.trades) == 0
        assert feed.order_book is not None
        await feed.close()

    @pytest.mark.asyncio
    async def test_backfill_keeps_live_candle(self):
        from perpfeed.core.models import CandleData
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        rows = [
            {"t": 1700000000000 - 900_000, "o": "1", "h": "1", "l": "1", "c": "1", "v": "1"},
            {"t": 1700000000000, "o": "1", "h": "1", "l": "1", "c": "1", "v": "1"},
        ]
        feed = HyperliquidFeed(
            "BTC", "15m",
            client=FakeHyperliquidClient(rows),
            connect=FakeConnector(FakeSocket()),
        )
        feed._apply_candle(CandleData(timestamp=1700000000000, open=1, high=9, low=1, close=8))
        await feed._backfill()

        assert len(feed.candles) == 2
        assert feed.candles.last.close == 8
        await feed.close()

    @pytest.mark.asyncio
    async def test_backfill_failure_is_logged(self):
        from perpfeed.exchanges.http import ExchangeAPIError
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        feed = HyperliquidFeed(
            "BTC", "15m",
            client=FakeHyperliquidClient(error=ExchangeAPIError("hyperliquid", 500, "down")),
            connect=FakeConnector(FakeSocket()),
        )
        await feed._backfill()

        assert len(feed.candles) == 0
        await feed.close()

    def test_undecodable_frames_dropped(self):
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        feed = HyperliquidFeed(
            "BTC", "15m",
            client=FakeHyperliquidClient(),
            connect=FakeConnector(FakeSocket()),
        )
        feed._on_raw_message(b"not json")
        feed._on_raw_message(b"[1, 2]")
        feed._on_raw_message(orjson.dumps({"channel": "pong"}))

        assert feed.health.dropped_messages == 3

    def test_candle_tolerance_is_one_interval(self):
        from perpfeed.feeds.hyperliquid import HyperliquidFeed

        feed = HyperliquidFeed("BTC", "1h", client=FakeHyperliquidClient())

        assert feed.candles.tolerance_ms == 60 * 60_000


class TestDydxFeed:
    """dYdX snapshot then deltas"""

    @pytest.mark.asyncio
    async def test_book_snapshot_and_deltas(self):
        from perpfeed.feeds.dydx import DydxFeed

        frames = [
            {"type": "connected", "connection_id": "abc"},
            {"type": "subscribed", "channel": "v4_orderbook", "id": "BTC-USD", "contents": {
                "bids": [{"price": "100", "size": "1"}, {"price": "99", "size": "2"}],
                "asks": [{"price": "101", "size": "1"}],
            }},
            {"type": "channel_data", "channel": "v4_orderbook", "id": "BTC-USD", "contents": {
                "bids": [["100", "0"], ["98", "5"]],
            }},
            {"type": "channel_data", "channel": "v4_trades", "id": "BTC-USD", "contents": {"trades": [
                {"id": "t1", "side": "BUY", "price": "100.5", "size": "1", "createdAt": "2024-01-01T00:00:00.000Z"},
            ]}},
            {"type": "channel_data", "channel": "v4_candles", "id": "BTC-USD/15MINS", "contents": {
                "startedAt": "2024-01-01T00:00:00.000Z", "open": "1", "high": "2",
                "low": "1", "close": "2", "baseTokenVolume": "3",
            }},
        ]
        ws = FakeSocket(frames)
        feed = DydxFeed(
            "BTC", "15m",
            client=FakeDydxClient(),
            connect=FakeConnector(ws),
            backfill=False,
        )
        await feed.start()
        await wait_until(lambda: len(feed.candles) == 1)

        assert [orjson.loads(m)["channel"] for m in ws.sent] == ["v4_orderbook", "v4_trades", "v4_candles"]
        assert [l.price for l in feed.order_book.bids] == [99.0, 98.0]
        assert feed.order_book.bids[-1].total == 7.0
        assert feed.tape.trades[0].id == "t1"
        assert feed.candles.last.volume == 3.0

        await feed.close()


# ============================================================
# D. POLLED FEEDS
# ============================================================

class FakeGmxClient:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def candles(self, token_symbol, period, limit=100):
        self.calls.append((token_symbol, period, limit))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


GMX_CANDLES = {"period": "15m", "candles": [
    [1700001800, 102, 104, 101, 103],
    [1700000900, 101, 103, 100, 102],
    [1700000000, 100, 102, 99, 101],
]}


class TestGmxFeed:
    """Real candles, simulated book and tape"""

    @pytest.mark.asyncio
    async def test_open_with_simulated_data(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.gmx import GmxFeed

        client = FakeGmxClient([GMX_CANDLES])
        feed = GmxFeed("ETH/USD", "15m", client=client, rng=random.Random(42), poll_interval_s=60)
        await feed.start()

        assert feed.connection_state == ConnectionState.OPEN
        assert client.calls[0][:2] == ("ETH", "15m")
        assert [c.timestamp for c in feed.candles.candles] == [1700000000000, 1700000900000, 1700001800000]
        assert feed.order_book.simulated is True
        assert len(feed.order_book.bids) == 6
        assert feed.tape.trades and all(t.simulated for t in feed.tape.trades)

        await feed.close()

    @pytest.mark.asyncio
    async def test_no_data(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.base import NO_DATA_MESSAGE
        from perpfeed.feeds.gmx import GmxFeed

        feed = GmxFeed("BTC", "15m", client=FakeGmxClient([{"candles": []}]), poll_interval_s=60)
        await feed.start()

        assert feed.connection_state == ConnectionState.ERROR
        assert feed.connection_error == NO_DATA_MESSAGE
        await feed.close()

    @pytest.mark.asyncio
    async def test_request_failure(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.exchanges.http import ExchangeAPIError
        from perpfeed.feeds.gmx import GmxFeed

        feed = GmxFeed(
            "BTC", "15m",
            client=FakeGmxClient([ExchangeAPIError("gmx", 503, "unavailable")]),
            poll_interval_s=60,
        )
        await feed.start()

        assert feed.connection_state == ConnectionState.ERROR
        assert feed.connection_error == "Failed to load GMX data."
        await feed.close()

    @pytest.mark.asyncio
    async def test_later_poll_failure_keeps_state(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.exchanges.http import ExchangeAPIError
        from perpfeed.feeds.gmx import GmxFeed

        client = FakeGmxClient([GMX_CANDLES, ExchangeAPIError("gmx", 500)])
        feed = GmxFeed("BTC", "15m", client=client, rng=random.Random(1), poll_interval_s=60)
        await feed.start()
        await feed.poll_once()

        assert feed.connection_state == ConnectionState.OPEN
        assert feed.connection_error is None
        assert feed.health.error_count == 1
        assert client.calls[1][2] == 10
        await feed.close()

    @pytest.mark.asyncio
    async def test_reproducible_with_seed(self):
        from perpfeed.feeds.gmx import GmxFeed

        first = GmxFeed("BTC", "15m", client=FakeGmxClient([GMX_CANDLES]), rng=random.Random(9), poll_interval_s=60)
        second = GmxFeed("BTC", "15m", client=FakeGmxClient([GMX_CANDLES]), rng=random.Random(9), poll_interval_s=60)
        await first.start()
        await second.start()

        assert first.snapshot().to_dict() == second.snapshot().to_dict()
        await first.close()
        await second.close()


class FakeAsterClient:
    async def klines(self, symbol, interval, limit=100):
        return [[1700000000000, "1", "2", "0.5", "1.5", "10", 1700000899999]]

    async def depth(self, symbol, limit=50):
        return {"bids": [["100", "1"]], "asks": [["101", "2"]]}

    async def trades(self, symbol, limit=20):
        return [{"id": 1, "price": "100", "qty": "1", "time": 1700000000000, "isBuyerMaker": True}]


class FakeLighterClient:
    async def candles(self, market_id, resolution, start_s, end_s):
        return []

    async def order_book(self, market_id):
        return {"bids": [{"price": "100", "amount": "1"}], "asks": []}

    async def trades(self, market_id, limit=20):
        return []


class TestRestPolledFeeds:
    """Aster and Lighter"""

    @pytest.mark.asyncio
    async def test_aster(self):
        from perpfeed.core.models import ConnectionState, TradeSide
        from perpfeed.feeds.aster import AsterFeed

        feed = AsterFeed("BTC", "15m", client=FakeAsterClient(), poll_interval_s=60)
        await feed.start()

        assert feed.connection_state == ConnectionState.OPEN
        assert feed.order_book.best_ask == 101.0
        assert feed.tape.trades[0].side == TradeSide.SELL
        assert feed.candles.last.volume == 10.0
        await feed.close()

    @pytest.mark.asyncio
    async def test_lighter_book_only_counts_as_data(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.feeds.lighter import LighterFeed

        feed = LighterFeed("ETH", "1h", client=FakeLighterClient(), poll_interval_s=60)
        await feed.start()

        assert feed.market_id == 1
        assert feed.connection_state == ConnectionState.OPEN
        assert feed.order_book.best_bid == 100.0
        await feed.close()

    @pytest.mark.asyncio
    async def test_lighter_failed_book_keeps_other_endpoints(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.exchanges.http import ExchangeAPIError
        from perpfeed.feeds.lighter import LighterFeed

        class Client(FakeLighterClient):
            async def candles(self, market_id, resolution, start_s, end_s):
                return [{"timestamp": 1700000000, "open": "1", "high": "2", "low": "1", "close": "2", "volume": "3"}]

            async def order_book(self, market_id):
                raise ExchangeAPIError("lighter", 503, "unavailable")

            async def trades(self, market_id, limit=20):
                return [{"trade_id": "t1", "price": "100", "amount": "1", "side": "buy", "timestamp": 1700000000}]

        feed = LighterFeed("BTC", "15m", client=Client(), poll_interval_s=60)
        await feed.start()

        assert feed.connection_state == ConnectionState.OPEN
        assert feed.order_book is None
        assert len(feed.candles) == 1
        assert [t.id for t in feed.tape.trades] == ["t1"]
        assert feed.health.error_count == 1
        await feed.close()

    @pytest.mark.asyncio
    async def test_aster_every_endpoint_failing(self):
        from perpfeed.core.models import ConnectionState
        from perpfeed.exchanges.http import ExchangeAPIError
        from perpfeed.feeds.aster import AsterFeed

        class Client:
            async def klines(self, symbol, interval, limit=100):
                raise ExchangeAPIError("aster", 500, "down")

            async def depth(self, symbol, limit=50):
                raise ExchangeAPIError("aster", 200, "invalid JSON")

            async def trades(self, symbol, limit=20):
                raise asyncio.TimeoutError()

        feed = AsterFeed("BTC", "15m", client=Client(), poll_interval_s=60)
        await feed.start()

        assert feed.connection_state == ConnectionState.ERROR
        assert feed.connection_error == "Failed to load Aster data."
        assert feed.health.error_count == 3
        await feed.close()

    @pytest.mark.asyncio
    async def test_aster_poll_with_failed_trades(self):
        from perpfeed.exchanges.http import ExchangeAPIError
        from perpfeed.feeds.aster import AsterFeed

        class Client(FakeAsterClient):
            fail = False

            async def trades(self, symbol, limit=20):
                if self.fail:
                    raise ExchangeAPIError("aster", 429, "rate limited")
                return await super().trades(symbol, limit)

        client = Client()
        feed = AsterFeed("BTC", "15m", client=client, poll_interval_s=60)
        await feed.start()
        client.fail = True
        await feed.poll_once()

        assert len(feed.tape.trades) == 1
        assert feed.order_book.best_bid == 100.0
        assert feed.health.error_count == 1
        await feed.close()


# ============================================================
# E. FEED MANAGER
# ============================================================

class TestFeedManager:
    """Single active subscription with ordered teardown"""

    def _recording_factory(self, events):
        from perpfeed.feeds.base import MarketFeed

        class RecordingFeed(MarketFeed):
            def __init__(self, exchange, pair, interval):
                self.exchange = exchange
                super().__init__(pair, interval)

            async def start(self):
                events.append(("start", self.key))

            async def close(self):
                self.token.cancel()
                events.append(("close", self.key))

            async def reconnect(self):
                events.append(("reconnect", self.key))

        return RecordingFeed

    @pytest.mark.asyncio
    async def test_switch_tears_down_first(self):
        from perpfeed.core.models import CandleData
        from perpfeed.feeds.manager import FeedManager

        events = []
        manager = FeedManager(factory=self._recording_factory(events))

        first = await manager.subscribe("hyperliquid", "BTC", "15m")
        same = await manager.subscribe("hyperliquid", "BTC", "15m")
        second = await manager.subscribe("dydx", "ETH", "1h")

        assert same is first
        assert events == [
            ("start", "hyperliquid:BTC:15m"),
            ("close", "hyperliquid:BTC:15m"),
            ("start", "dydx:ETH:1h"),
        ]
        assert manager.feed is second

        first._apply_candle(CandleData(timestamp=1, open=1, high=1, low=1, close=1))
        assert len(first.candles) == 0

        await manager.reconnect()
        await manager.close()
        assert events[-2:] == [("reconnect", "dydx:ETH:1h"), ("close", "dydx:ETH:1h")]
        assert manager.feed is None

    def test_create_feed(self):
        from perpfeed.feeds.gmx import GmxFeed
        from perpfeed.feeds.manager import create_feed

        feed = create_feed("gmx", "BTC", "15m", client=FakeGmxClient([GMX_CANDLES]))

        assert isinstance(feed, GmxFeed)
        assert feed.key == "gmx:BTC:15m"
        with pytest.raises(ValueError):
            create_feed("binance", "BTC", "15m")
