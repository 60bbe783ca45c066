"""
GMX v2 polled feed

Candles are real. GMX has no order book or public tape, so both are
simulated around the latest close and tagged `simulated=True`.
"""
import random
from typing import Optional

from config import settings
from perpfeed.core.models import ExchangeType
from perpfeed.exchanges.gmx import GmxClient
from perpfeed.feeds.base import PollingFeed
from perpfeed.normalizers import gmx
from perpfeed.processors.simulated import simulate_order_book, simulate_trades

POLL_CANDLE_LIMIT = 10


class GmxFeed(PollingFeed):
    exchange = ExchangeType.GMX
    display_name = "GMX"
    poll_interval_s = settings.GMX_POLL_INTERVAL_S

    def __init__(
        self,
        pair: str,
        interval: str,
        client: Optional[GmxClient] = None,
        rng: Optional[random.Random] = None,
        **kwargs,
    ):
        self._owns_client = client is None
        self.client = client or GmxClient()
        self.rng = rng or random.Random()
        super().__init__(pair, interval, **kwargs)

    async def fetch(self, initial: bool) -> bool:
        limit = self.candles.max_length if initial else POLL_CANDLE_LIMIT
        payload = await self.client.candles(
            gmx.token_symbol(self.pair),
            gmx.map_interval(self.interval),
            limit=limit,
        )
        candles = gmx.parse_candles(payload)
        if self.token.cancelled or not candles:
            return False

        self._apply_candles(candles)
        latest = self.candles.last
        self._apply_book_state(
            simulate_order_book(latest.close, levels=self.max_levels, rng=self.rng)
        )
        self._replace_trades(
            simulate_trades(self.candles.candles, rng=self.rng, max_trades=self.tape.max_trades)
        )
        return True

    async def close_clients(self) -> None:
        if self._owns_client:
            await self.client.close()
