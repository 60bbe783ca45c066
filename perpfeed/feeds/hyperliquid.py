"""
Hyperliquid live feed: l2Book, trades and candle over one WebSocket
"""
from typing import Any, Dict, List, Optional

import structlog

from config import settings
from perpfeed.core.models import CandleData, ExchangeType, interval_to_ms
from perpfeed.exchanges.hyperliquid import HyperliquidClient
from perpfeed.feeds.base import StreamingFeed
from perpfeed.normalizers import hyperliquid as hl
from perpfeed.normalizers.common import now_ms

logger = structlog.get_logger(__name__)


class HyperliquidFeed(StreamingFeed):
    exchange = ExchangeType.HYPERLIQUID
    display_name = "Hyperliquid"

    def __init__(self, pair: str, interval: str, client: Optional[HyperliquidClient] = None, **kwargs):
        self.ws_url = kwargs.pop("ws_url", None) or settings.HYPERLIQUID_WS_URL
        self._owns_client = client is None
        self.client = client or HyperliquidClient()
        super().__init__(pair, interval, **kwargs)

    def candle_tolerance_ms(self) -> int:
        # Live candle timestamps can drift inside the bucket
        return interval_to_ms(self.interval)

    def subscribe_messages(self) -> List[Dict[str, Any]]:
        return hl.subscribe_messages(self.pair, self.interval)

    def handle_message(self, payload: Dict[str, Any]) -> None:
        channel = hl.channel_of(payload)
        data = payload.get("data")

        if channel == "l2Book":
            bids, asks = hl.parse_book(data)
            self._apply_book(bids, asks)
        elif channel == "trades":
            self._apply_trades(hl.parse_trades(data))
        elif channel == "candle":
            self._apply_candle(hl.parse_candle(data))
        elif channel == "subscriptionResponse":
            logger.debug("hyperliquid_subscribed", feed=self.key, data=data)
        elif channel == "error":
            logger.warning("hyperliquid_channel_error", feed=self.key, data=data)
        else:
            self.health.record_dropped()

    async def fetch_history(self) -> List[CandleData]:
        end = now_ms()
        start = end - self.candles.max_length * interval_to_ms(self.interval)
        rows = await self.client.candle_snapshot(self.pair, hl.map_interval(self.interval), start, end)
        return hl.parse_candles(rows)

    async def close_clients(self) -> None:
        if self._owns_client:
            await self.client.close()
