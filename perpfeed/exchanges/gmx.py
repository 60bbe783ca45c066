"""
GMX v2 (Arbitrum) REST
"""
from typing import Any, List, Optional

import aiohttp

from config import settings
from perpfeed.exchanges.http import RestClient


class GmxClient(RestClient):
    exchange = "gmx"

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, base_url: Optional[str] = None):
        super().__init__(base_url or settings.GMX_API_URL, session)

    async def candles(self, token_symbol: str, period: str, limit: int = 100) -> Any:
        return await self.get(
            "/prices/candles",
            params={"tokenSymbol": token_symbol, "period": period, "limit": limit},
        )

    async def positions(self, account: str) -> List[Any]:
        data = await self.get("/positions", params={"account": account.lower()})
        return data if isinstance(data, list) else []

    async def markets(self) -> Any:
        return await self.get("/markets/info")
