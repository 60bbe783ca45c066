"""
Aster REST (Binance futures compatible paths)
"""
import asyncio
from typing import Any, List, Optional, Tuple

import aiohttp
import structlog

from config import settings
from perpfeed.exchanges.http import ExchangeAPIError, RestClient

logger = structlog.get_logger(__name__)


class AsterClient(RestClient):
    exchange = "aster"

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, base_url: Optional[str] = None):
        super().__init__(base_url or settings.ASTER_API_URL, session)

    async def depth(self, symbol: str, limit: int = 50) -> Any:
        return await self.get("/fapi/v1/depth", params={"symbol": symbol, "limit": limit})

    async def trades(self, symbol: str, limit: int = 20) -> Any:
        return await self.get("/fapi/v1/trades", params={"symbol": symbol, "limit": limit})

    async def klines(self, symbol: str, interval: str, limit: int = 100) -> Any:
        return await self.get(
            "/fapi/v1/klines",
            params={"symbol": symbol, "interval": interval, "limit": limit},
        )

    async def open_positions(self, address: str) -> List[Any]:
        data = await self.get("/fapi/v1/openPositions", params={"address": address})
        return data if isinstance(data, list) else []

    async def tickers_24h(self) -> Any:
        return await self.get("/fapi/v1/ticker/24hr")

    async def premium_index(self) -> Any:
        return await self.get("/fapi/v1/premiumIndex")

    async def markets(self) -> Tuple[Any, Any]:
        """(24h tickers, premium index); the premium index is optional and None when it fails"""
        tickers, funding = await asyncio.gather(self.tickers_24h(), self.premium_index(), return_exceptions=True)
        if isinstance(tickers, BaseException):
            raise tickers
        if isinstance(funding, (aiohttp.ClientError, asyncio.TimeoutError, ExchangeAPIError)):
            logger.warning("premium_index_failed", exchange=self.exchange, error=str(funding)[:200])
            funding = None
        elif isinstance(funding, BaseException):
            raise funding
        return tickers, funding
