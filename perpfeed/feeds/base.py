"""
MARKET FEED
Owned state for one (exchange, pair, interval) subscription

Each feed exclusively owns its order book, trade tape and candle series.
Every mutation goes through a `_apply_*` helper that checks the feed's
CancelToken first, so nothing written after `close()` is ever observed.
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import aiohttp
import orjson
import structlog

from config import settings
from perpfeed.core.models import (
    CandleData,
    ConnectionState,
    ExchangeType,
    MarketSnapshot,
    OrderBookLevel,
    OrderBookState,
    Trade,
)
from perpfeed.core.resilience import CancelToken, ConnectionHealth
from perpfeed.exchanges.http import ExchangeAPIError
from perpfeed.feeds.polling import Poller
from perpfeed.feeds.websocket import ConnectFn, ReconnectingWebSocket
from perpfeed.normalizers.common import newest_first
from perpfeed.processors.candles import CandleSeries
from perpfeed.processors.depth import build_order_book
from perpfeed.processors.tape import TradeTape

logger = structlog.get_logger(__name__)

UpdateListener = Callable[["MarketFeed"], None]

NO_DATA_MESSAGE = "No data available for this market."

POLL_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ExchangeAPIError, OSError)


class MarketFeed:
    """Base class; subclasses implement `start`, `close` and `reconnect`"""

    exchange: ExchangeType
    display_name = ""

    def __init__(
        self,
        pair: str,
        interval: str,
        on_update: Optional[UpdateListener] = None,
        max_trades: Optional[int] = None,
        max_candles: Optional[int] = None,
        max_levels: Optional[int] = None,
    ):
        self.pair = pair
        self.interval = interval
        self.on_update = on_update
        self.max_levels = settings.MAX_ORDER_LEVELS if max_levels is None else max_levels

        self.token = CancelToken(self.key)
        self.health = ConnectionHealth(name=self.key)
        self.order_book: Optional[OrderBookState] = None
        self.tape = TradeTape(settings.MAX_TRADES if max_trades is None else max_trades)
        self.candles = CandleSeries(
            max_length=settings.MAX_CANDLES if max_candles is None else max_candles,
            tolerance_ms=self.candle_tolerance_ms(),
        )
        self.connection_state = ConnectionState.LOADING
        self.connection_error: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.exchange.value}:{self.pair}:{self.interval}"

    @property
    def closed(self) -> bool:
        return self.token.cancelled

    def candle_tolerance_ms(self) -> int:
        """Proximity window for streaming candle replacement; 0 means exact"""
        return 0

    def snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(
            exchange=self.exchange.value,
            pair=self.pair,
            interval=self.interval,
            connection_state=self.connection_state,
            connection_error=self.connection_error,
            order_book=self.order_book,
            trades=list(self.tape.trades),
            candles=self.candles.candles,
        )

    def _notify(self) -> None:
        if self.on_update is None or self.token.cancelled:
            return
        try:
            self.on_update(self)
        except Exception as e:
            logger.error("feed_listener_failed", feed=self.key, error=str(e)[:200], error_type=type(e).__name__)

    def _set_connection(self, state: ConnectionState, error: Optional[str] = None) -> None:
        if self.token.cancelled:
            return
        if state == self.connection_state and error == self.connection_error:
            return
        self.connection_state = state
        self.connection_error = error
        logger.debug("feed_state_changed", feed=self.key, state=state.value, error=error)
        self._notify()

    def _apply_book(
        self,
        bids: Iterable[OrderBookLevel],
        asks: Iterable[OrderBookLevel],
        simulated: bool = False,
    ) -> None:
        if self.token.cancelled:
            return
        self.order_book = build_order_book(bids, asks, max_levels=self.max_levels, simulated=simulated)
        self._notify()

    def _apply_book_state(self, book: OrderBookState) -> None:
        if self.token.cancelled:
            return
        self.order_book = book
        self._notify()

    def _apply_trades(self, trades: List[Trade]) -> bool:
        if self.token.cancelled or not trades:
            return False
        changed = self.tape.merge(newest_first(trades))
        if changed:
            self._notify()
        return changed

    def _replace_trades(self, trades: List[Trade]) -> None:
        if self.token.cancelled:
            return
        self.tape.reset()
        self.tape.merge(trades)
        self._notify()

    def _apply_candle(self, candle: Optional[CandleData]) -> None:
        if self.token.cancelled or candle is None:
            return
        self.candles.update(candle)
        self._notify()

    def _apply_candles(self, candles: List[CandleData], keep_existing: bool = False) -> None:
        if self.token.cancelled or not candles:
            return
        self.candles.merge(candles, keep_existing=keep_existing)
        self._notify()

    async def start(self) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    async def reconnect(self) -> None:
        raise NotImplementedError


class StreamingFeed(MarketFeed):
    """
    WebSocket-backed feed.

    On every open the subscribe messages from `subscribe_messages()` are
    sent; frames are decoded with orjson and dispatched to `handle_message`.
    History is backfilled over REST once at start and merged without
    overriding candles that already arrived live.
    """

    ws_url = ""

    def __init__(
        self,
        pair: str,
        interval: str,
        on_update: Optional[UpdateListener] = None,
        connect: Optional[ConnectFn] = None,
        max_retries: Optional[int] = None,
        base_delay_s: Optional[float] = None,
        max_delay_s: Optional[float] = None,
        backfill: bool = True,
        **kwargs,
    ):
        super().__init__(pair, interval, on_update=on_update, **kwargs)
        self.backfill_enabled = backfill
        self._backfill_task: Optional[asyncio.Task] = None
        self.socket = ReconnectingWebSocket(
            url=self.ws_url,
            on_open=self._on_open,
            on_message=self._on_raw_message,
            max_retries=max_retries,
            base_delay_s=base_delay_s,
            max_delay_s=max_delay_s,
            connect=connect,
            on_state_change=self._set_connection,
            token=self.token,
            name=self.key,
        )

    def subscribe_messages(self) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def handle_message(self, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def fetch_history(self) -> List[CandleData]:
        return []

    async def _on_open(self, ws: Any) -> None:
        for message in self.subscribe_messages():
            if self.token.cancelled:
                return
            await ws.send(orjson.dumps(message).decode())

    def _on_raw_message(self, raw: Any) -> None:
        if self.token.cancelled:
            return
        self.health.record_message()
        try:
            payload = orjson.loads(raw)
        except orjson.JSONDecodeError:
            self.health.record_dropped()
            logger.warning("feed_message_undecodable", feed=self.key)
            return
        if not isinstance(payload, dict):
            self.health.record_dropped()
            return
        try:
            self.handle_message(payload)
        except Exception as e:
            self.health.record_dropped()
            logger.error("feed_message_failed", feed=self.key, error=str(e)[:200], error_type=type(e).__name__)

    async def _backfill(self) -> None:
        try:
            history = await self.fetch_history()
        except POLL_ERRORS as e:
            logger.warning("candle_backfill_failed", feed=self.key, error=str(e)[:200])
            return
        self._apply_candles(history, keep_existing=True)
        logger.info("candle_backfill_done", feed=self.key, candles=len(history))

    async def start(self) -> None:
        logger.info("feed_starting", feed=self.key)
        self.socket.start()
        if self.backfill_enabled:
            self._backfill_task = asyncio.create_task(self._backfill(), name=f"{self.key}-backfill")

    async def reconnect(self) -> None:
        await self.socket.reconnect()

    async def close(self) -> None:
        self.token.cancel()
        task = self._backfill_task
        self._backfill_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self.socket.close()
        await self.close_clients()
        logger.info("feed_closed", feed=self.key)

    async def close_clients(self) -> None:
        """Release REST clients owned by the feed"""


class PollingFeed(MarketFeed):
    """
    REST-polled feed.

    The first fetch decides the visible state: `open` when it returned any
    candles, book or trades, `error` otherwise. Later polls update data
    silently; their failures are logged only.
    """

    poll_interval_s = 5.0

    def __init__(
        self,
        pair: str,
        interval: str,
        on_update: Optional[UpdateListener] = None,
        poll_interval_s: Optional[float] = None,
        **kwargs,
    ):
        super().__init__(pair, interval, on_update=on_update, **kwargs)
        if poll_interval_s is not None:
            self.poll_interval_s = poll_interval_s
        self.poller: Optional[Poller] = None

    async def fetch(self, initial: bool) -> bool:
        """Fetch and apply one round of data; True when anything came back"""
        raise NotImplementedError

    async def _fetch_endpoints(self, **calls: Awaitable[Any]) -> Dict[str, Any]:
        """
        Await endpoint calls concurrently, keyed by endpoint name.

        A failed endpoint is logged and yields None so the others still
        apply. When every endpoint fails the first failure is raised.
        """
        names = list(calls)
        results = await asyncio.gather(*calls.values(), return_exceptions=True)

        settled: Dict[str, Any] = {}
        failures = []
        for name, result in zip(names, results):
            if isinstance(result, POLL_ERRORS):
                failures.append(result)
                self.health.record_error()
                logger.warning("feed_endpoint_failed", feed=self.key, endpoint=name, error=str(result)[:200])
                settled[name] = None
            elif isinstance(result, BaseException):
                raise result
            else:
                settled[name] = result

        if failures and len(failures) == len(names):
            raise failures[0]
        return settled

    async def _initial_fetch(self) -> None:
        self._set_connection(ConnectionState.LOADING)
        try:
            has_data = await self.fetch(initial=True)
        except POLL_ERRORS as e:
            logger.warning("feed_initial_fetch_failed", feed=self.key, error=str(e)[:200])
            self._set_connection(ConnectionState.ERROR, f"Failed to load {self.display_name} data.")
            return
        if has_data:
            self._set_connection(ConnectionState.OPEN)
        else:
            self._set_connection(ConnectionState.ERROR, NO_DATA_MESSAGE)

    async def poll_once(self) -> None:
        if self.token.cancelled:
            return
        try:
            await self.fetch(initial=False)
        except POLL_ERRORS as e:
            self.health.record_error()
            logger.warning("feed_poll_failed", feed=self.key, error=str(e)[:200])

    async def start(self) -> None:
        logger.info("feed_starting", feed=self.key, poll_interval_s=self.poll_interval_s)
        await self._initial_fetch()
        if self.token.cancelled:
            return
        self.poller = Poller(self.poll_interval_s, self.poll_once, name=self.key)
        self.poller.start()

    async def reconnect(self) -> None:
        if self.token.cancelled:
            return
        if self.poller is not None:
            await self.poller.close()
            self.poller = None
        await self.start()

    async def close(self) -> None:
        self.token.cancel()
        if self.poller is not None:
            await self.poller.close()
            self.poller = None
        await self.close_clients()
        logger.info("feed_closed", feed=self.key)

    async def close_clients(self) -> None:
        """Release REST clients owned by the feed"""
