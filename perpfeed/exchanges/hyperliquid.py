"""
Hyperliquid REST: every read is a POST to /info with a `type` discriminator
"""
from typing import Any, Dict, List, Optional

import aiohttp

from config import settings
from perpfeed.exchanges.http import RestClient


class HyperliquidClient(RestClient):
    exchange = "hyperliquid"

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, base_url: Optional[str] = None):
        super().__init__(base_url or settings.HYPERLIQUID_API_URL, session)

    async def info(self, payload: Dict[str, Any]) -> Any:
        return await self.post("/info", payload)

    async def candle_snapshot(self, coin: str, interval: str, start_ms: int, end_ms: int) -> List[Any]:
        data = await self.info({
            "type": "candleSnapshot",
            "req": {"coin": coin, "interval": interval, "startTime": start_ms, "endTime": end_ms},
        })
        return data if isinstance(data, list) else []

    async def clearinghouse_state(self, user: str) -> Dict[str, Any]:
        data = await self.info({"type": "clearinghouseState", "user": user})
        return data if isinstance(data, dict) else {}

    async def all_mids(self) -> Dict[str, str]:
        data = await self.info({"type": "allMids"})
        return data if isinstance(data, dict) else {}

    async def open_orders(self, user: str) -> List[Any]:
        data = await self.info({"type": "openOrders", "user": user})
        return data if isinstance(data, list) else []

    async def user_fills(self, user: str) -> List[Any]:
        data = await self.info({"type": "userFills", "user": user})
        return data if isinstance(data, list) else []

    async def meta(self) -> Dict[str, Any]:
        data = await self.info({"type": "meta"})
        return data if isinstance(data, dict) else {}

    async def exchange_action(self, payload: Dict[str, Any]) -> Any:
        return await self.post("/exchange", payload)
