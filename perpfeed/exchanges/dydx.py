"""
dYdX v4 indexer REST
"""
from typing import Any, Dict, List, Optional

import aiohttp

from config import settings
from perpfeed.exchanges.http import RestClient


class DydxClient(RestClient):
    exchange = "dydx"

    def __init__(self, session: Optional[aiohttp.ClientSession] = None, base_url: Optional[str] = None):
        super().__init__(base_url or settings.DYDX_API_URL, session)

    async def candles(self, ticker: str, resolution: str, limit: int = 100) -> Dict[str, Any]:
        data = await self.get(
            f"/v4/candles/perpetualMarkets/{ticker}",
            params={"resolution": resolution, "limit": limit},
        )
        return data if isinstance(data, dict) else {}

    async def subaccount_positions(self, address: str, subaccount: int = 0) -> List[Dict[str, Any]]:
        data = await self.get(f"/v4/addresses/{address}/subaccountNumber/{subaccount}")
        if not isinstance(data, dict):
            return []
        # The indexer nests positions under "subaccount"; older responses are flat
        container = data.get("subaccount") if isinstance(data.get("subaccount"), dict) else data
        positions = container.get("openPerpetualPositions") or container.get("positions") or []
        if isinstance(positions, dict):
            positions = list(positions.values())
        return positions if isinstance(positions, list) else []

    async def perpetual_markets(self) -> Dict[str, Dict[str, Any]]:
        data = await self.get("/v4/perpetualMarkets")
        markets = data.get("markets") if isinstance(data, dict) else None
        return markets if isinstance(markets, dict) else {}

    async def markets(self) -> Dict[str, Dict[str, Any]]:
        """Ticker -> market, every listed perpetual"""
        return await self.perpetual_markets()
