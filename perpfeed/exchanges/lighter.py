"""
Lighter REST
"""
from typing import Any, List, Optional

import aiohttp

from config import settings
from perpfeed.exchanges.http import RestClient


class LighterClient(RestClient):
    exchange = "lighter"

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, base_url: Optional[str] = None):
        super().__init__(base_url or settings.LIGHTER_API_URL, session)

    async def order_book(self, market_id: int) -> Any:
        return await self.get("/api/v1/market/orderbook", params={"market_id": market_id})

    async def trades(self, market_id: int, limit: int = 20) -> Any:
        return await self.get("/api/v1/market/trades", params={"market_id": market_id, "limit": limit})

    async def candles(self, market_id: int, resolution: str, start_s: int, end_s: int) -> Any:
        return await self.get(
            "/api/v1/candlesticks",
            params={
                "market_id": market_id,
                "resolution": resolution,
                "start_timestamp": start_s,
                "end_timestamp": end_s,
            },
        )

    async def positions(self, address: str) -> List[Any]:
        data = await self.get("/api/v1/positions", params={"address": address})
        return data if isinstance(data, list) else []

    async def markets(self) -> Any:
        return await self.get("/api/v1/market/list")
