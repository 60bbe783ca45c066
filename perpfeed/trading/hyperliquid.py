"""
Hyperliquid order actions: build, sign, POST /exchange
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp
import structlog

from perpfeed.exchanges.hyperliquid import HyperliquidClient
from perpfeed.trading.signing import (
    HYPERLIQUID_AGENT_TYPES,
    HYPERLIQUID_L1_DOMAIN,
    MAINNET_SOURCE,
    Signer,
    float_to_wire,
    nonce_ms,
    split_signature,
)

logger = structlog.get_logger(__name__)


class UnknownAssetError(LookupError):
    pass


@dataclass(slots=True)
class HyperliquidOrder:
    """
    Exchange-level order.
    `order_type` is `{"limit": {"tif": ...}}` or `{"trigger": {...}}`.
    """
    asset: str
    is_buy: bool
    limit_px: float
    size: float
    reduce_only: bool
    order_type: Dict[str, Any] = field(default_factory=dict)


def order_type_wire(order_type: Dict[str, Any]) -> Dict[str, Any]:
    if "limit" in order_type:
        return {"limit": {"tif": order_type["limit"]["tif"]}}
    if "trigger" in order_type:
        trigger = order_type["trigger"]
        return {
            "trigger": {
                "isMarket": trigger["isMarket"],
                "triggerPx": float_to_wire(trigger["triggerPx"]),
                "tpsl": trigger["tpsl"],
            }
        }
    return {"limit": {"tif": "Gtc"}}


class HyperliquidExchange:
    """Signed trading calls against Hyperliquid"""

    def __init__(
        self,
        signer: Signer,
        session: Optional[aiohttp.ClientSession] = None,
        client: Optional[HyperliquidClient] = None,
    ):
        self.signer = signer
        self.client = client or HyperliquidClient(session=session)
        self._asset_index: Dict[str, int] = {}

    async def asset_index(self, asset: str) -> int:
        if asset in self._asset_index:
            return self._asset_index[asset]
        meta = await self.client.meta()
        for index, entry in enumerate(meta.get("universe") or []):
            if isinstance(entry, dict) and entry.get("name"):
                self._asset_index[entry["name"]] = index
        if asset not in self._asset_index:
            raise UnknownAssetError(f"Asset {asset} not found")
        return self._asset_index[asset]

    async def _post_action(self, action: Dict[str, Any]) -> Any:
        nonce = nonce_ms()
        signature = await self.signer.sign_typed_data(
            HYPERLIQUID_L1_DOMAIN,
            HYPERLIQUID_AGENT_TYPES,
            {"source": MAINNET_SOURCE, "action": action, "nonce": nonce, "vaultAddress": None},
        )
        payload = {
            "action": action,
            "nonce": nonce,
            "signature": split_signature(signature),
            "vaultAddress": None,
        }
        logger.info("hyperliquid_action_posted", action_type=action.get("type"), nonce=nonce)
        return await self.client.exchange_action(payload)

    async def place_order(self, order: HyperliquidOrder) -> Any:
        index = await self.asset_index(order.asset)
        action = {
            "type": "order",
            "orders": [{
                "a": index,
                "b": order.is_buy,
                "p": float_to_wire(order.limit_px),
                "s": float_to_wire(order.size),
                "r": order.reduce_only,
                "t": order_type_wire(order.order_type),
            }],
            "grouping": "na",
        }
        return await self._post_action(action)

    async def cancel_order(self, asset: str, oid: int) -> Any:
        index = await self.asset_index(asset)
        action = {"type": "cancel", "cancels": [{"a": index, "o": oid}]}
        return await self._post_action(action)

    async def close(self) -> None:
        await self.client.close()
