"""
dYdX v4 live feed

The first `subscribed` message on v4_orderbook carries the whole book;
every later `channel_data` message is a delta against it. The book is
kept as price -> size maps per side and rebuilt after each message.
"""
from typing import Any, Dict, List, Optional

import structlog

from config import settings
from perpfeed.core.models import CandleData, ExchangeType
from perpfeed.exchanges.dydx import DydxClient
from perpfeed.feeds.base import StreamingFeed
from perpfeed.normalizers import dydx

logger = structlog.get_logger(__name__)


class DydxFeed(StreamingFeed):
    exchange = ExchangeType.DYDX
    display_name = "dYdX"

    def __init__(self, pair: str, interval: str, client: Optional[DydxClient] = None, **kwargs):
        self.ws_url = kwargs.pop("ws_url", None) or settings.DYDX_WS_URL
        self._owns_client = client is None
        self.client = client or DydxClient()
        self._bids: Dict[float, float] = {}
        self._asks: Dict[float, float] = {}
        super().__init__(pair, interval, **kwargs)

    @property
    def ticker(self) -> str:
        return dydx.market_ticker(self.pair)

    def subscribe_messages(self) -> List[Dict[str, Any]]:
        return dydx.subscribe_messages(self.pair, self.interval)

    def handle_message(self, payload: Dict[str, Any]) -> None:
        kind = payload.get("type")
        channel = payload.get("channel")
        contents = payload.get("contents")

        if kind == "connected":
            return
        if kind == "error":
            logger.warning("dydx_channel_error", feed=self.key, message=payload.get("message"))
            return
        if kind == "subscribed":
            self._handle_snapshot(channel, contents)
        elif kind == "channel_data":
            self._handle_update(channel, contents)
        elif kind == "channel_batch_data" and isinstance(contents, list):
            for item in contents:
                self._handle_update(channel, item)
        else:
            self.health.record_dropped()

    def _handle_snapshot(self, channel: Any, contents: Any) -> None:
        if not isinstance(contents, dict):
            return
        if channel == "v4_orderbook":
            self._bids = dydx.book_side_from_snapshot(contents.get("bids"))
            self._asks = dydx.book_side_from_snapshot(contents.get("asks"))
            self._publish_book()
        elif channel == "v4_trades":
            self._apply_trades(dydx.parse_trades(contents))
        elif channel == "v4_candles":
            self._apply_candles(dydx.parse_candles(contents), keep_existing=True)

    def _handle_update(self, channel: Any, contents: Any) -> None:
        if not isinstance(contents, dict):
            return
        if channel == "v4_orderbook":
            self._bids = dydx.apply_book_deltas(self._bids, contents.get("bids"))
            self._asks = dydx.apply_book_deltas(self._asks, contents.get("asks"))
            self._publish_book()
        elif channel == "v4_trades":
            self._apply_trades(dydx.parse_trades(contents))
        elif channel == "v4_candles":
            self._apply_candle(dydx.parse_candle(contents))

    def _publish_book(self) -> None:
        self._apply_book(dydx.side_to_levels(self._bids), dydx.side_to_levels(self._asks))

    async def _on_open(self, ws: Any) -> None:
        # Each connection starts from a fresh snapshot
        self._bids = {}
        self._asks = {}
        await super()._on_open(ws)

    async def fetch_history(self) -> List[CandleData]:
        payload = await self.client.candles(
            self.ticker,
            dydx.map_interval(self.interval),
            limit=self.candles.max_length,
        )
        return dydx.parse_candles(payload)

    async def close_clients(self) -> None:
        if self._owns_client:
            await self.client.close()
