"""
FEED MANAGER
Keeps exactly one live feed; switching the key tears the old one down first
"""
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union

import structlog

from perpfeed.core.models import ExchangeType
from perpfeed.feeds.aster import AsterFeed
from perpfeed.feeds.base import MarketFeed
from perpfeed.feeds.dydx import DydxFeed
from perpfeed.feeds.gmx import GmxFeed
from perpfeed.feeds.hyperliquid import HyperliquidFeed
from perpfeed.feeds.lighter import LighterFeed

logger = structlog.get_logger(__name__)

FEED_TYPES: Dict[ExchangeType, Type[MarketFeed]] = {
    ExchangeType.HYPERLIQUID: HyperliquidFeed,
    ExchangeType.DYDX: DydxFeed,
    ExchangeType.GMX: GmxFeed,
    ExchangeType.LIGHTER: LighterFeed,
    ExchangeType.ASTER: AsterFeed,
}

FeedFactory = Callable[[ExchangeType, str, str], MarketFeed]


def create_feed(
    exchange: Union[ExchangeType, str],
    pair: str,
    interval: str,
    **kwargs: Any,
) -> MarketFeed:
    """Instantiate the feed class for `exchange`; extra kwargs go to the feed"""
    exchange = ExchangeType(exchange)
    return FEED_TYPES[exchange](pair, interval, **kwargs)


class FeedManager:
    """
    Owns the single active subscription.

    `subscribe` with the same (exchange, pair, interval) returns the live
    feed; a different key closes the current feed before the next starts,
    so two feeds never write concurrently.
    """

    def __init__(self, factory: Optional[FeedFactory] = None, **feed_kwargs: Any):
        self._factory = factory
        self._feed_kwargs = feed_kwargs
        self._feed: Optional[MarketFeed] = None
        self._key: Optional[Tuple[ExchangeType, str, str]] = None

    @property
    def feed(self) -> Optional[MarketFeed]:
        return self._feed

    def _build(self, exchange: ExchangeType, pair: str, interval: str) -> MarketFeed:
        if self._factory is not None:
            return self._factory(exchange, pair, interval)
        return create_feed(exchange, pair, interval, **self._feed_kwargs)

    async def subscribe(self, exchange: Union[ExchangeType, str], pair: str, interval: str) -> MarketFeed:
        exchange = ExchangeType(exchange)
        key = (exchange, pair, interval)
        if self._feed is not None and self._key == key and not self._feed.closed:
            return self._feed

        if self._feed is not None:
            logger.info("feed_switching", previous=self._feed.key, exchange=exchange.value, pair=pair, interval=interval)
            await self._feed.close()
            self._feed = None
            self._key = None

        feed = self._build(exchange, pair, interval)
        self._feed = feed
        self._key = key
        await feed.start()
        return feed

    async def reconnect(self) -> None:
        if self._feed is not None:
            await self._feed.reconnect()

    async def close(self) -> None:
        if self._feed is not None:
            await self._feed.close()
        self._feed = None
        self._key = None
