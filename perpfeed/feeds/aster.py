"""
Aster polled feed: klines, depth and trades fetched concurrently
"""
from typing import Optional

from config import settings
from perpfeed.core.models import ExchangeType
from perpfeed.exchanges.aster import AsterClient
from perpfeed.feeds.base import PollingFeed
from perpfeed.normalizers import aster

POLL_CANDLE_LIMIT = 10


class AsterFeed(PollingFeed):
    exchange = ExchangeType.ASTER
    display_name = "Aster"
    poll_interval_s = settings.ASTER_POLL_INTERVAL_S

    def __init__(self, pair: str, interval: str, client: Optional[AsterClient] = None, **kwargs):
        self._owns_client = client is None
        self.client = client or AsterClient()
        super().__init__(pair, interval, **kwargs)

    @property
    def symbol(self) -> str:
        return aster.symbol_for(self.pair)

    async def fetch(self, initial: bool) -> bool:
        limit = self.candles.max_length if initial else POLL_CANDLE_LIMIT
        raw = await self._fetch_endpoints(
            klines=self.client.klines(self.symbol, aster.map_interval(self.interval), limit=limit),
            depth=self.client.depth(self.symbol),
            trades=self.client.trades(self.symbol, limit=self.tape.max_trades),
        )
        if self.token.cancelled:
            return False

        candles = aster.parse_candles(raw["klines"])
        book = aster.parse_book(raw["depth"])
        parsed_trades = aster.parse_trades(raw["trades"])

        self._apply_candles(candles)
        if book is not None:
            self._apply_book(*book)
        self._apply_trades(parsed_trades)
        return bool(candles) or bool(parsed_trades) or (book is not None and any(book))

    async def close_clients(self) -> None:
        if self._owns_client:
            await self.client.close()
