"""
Lighter polled feed: candles, book and trades over REST
"""
from typing import Optional

from config import settings
from perpfeed.core.models import ExchangeType
from perpfeed.exchanges.lighter import LighterClient
from perpfeed.feeds.base import PollingFeed
from perpfeed.normalizers import lighter
from perpfeed.normalizers.common import now_ms

POLL_CANDLE_LIMIT = 10


class LighterFeed(PollingFeed):
    exchange = ExchangeType.LIGHTER
    display_name = "Lighter"
    poll_interval_s = settings.LIGHTER_POLL_INTERVAL_S

    def __init__(self, pair: str, interval: str, client: Optional[LighterClient] = None, **kwargs):
        self._owns_client = client is None
        self.client = client or LighterClient()
        super().__init__(pair, interval, **kwargs)

    @property
    def market_id(self) -> int:
        return lighter.market_id(self.pair)

    async def fetch(self, initial: bool) -> bool:
        resolution = lighter.map_interval(self.interval)
        count = self.candles.max_length if initial else POLL_CANDLE_LIMIT
        end_s = now_ms() // 1000
        start_s = end_s - count * lighter.RESOLUTION_MS.get(resolution, 15 * 60_000) // 1000

        raw = await self._fetch_endpoints(
            candles=self.client.candles(self.market_id, resolution, start_s, end_s),
            order_book=self.client.order_book(self.market_id),
            trades=self.client.trades(self.market_id, limit=self.tape.max_trades),
        )
        if self.token.cancelled:
            return False

        candles = lighter.parse_candles(raw["candles"])
        book = lighter.parse_book(raw["order_book"])
        trades = lighter.parse_trades(raw["trades"])

        self._apply_candles(candles)
        if book is not None:
            self._apply_book(*book)
        self._apply_trades(trades)
        return bool(candles) or bool(trades) or (book is not None and any(book))

    async def close_clients(self) -> None:
        if self._owns_client:
            await self.client.close()
