"""
ORDER ROUTER
Single entry point for placing, cancelling and closing across exchanges

Nothing raised below this boundary escapes it: every failure comes back
as `OrderResult(success=False, message=...)`.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import aiohttp
import structlog

from perpfeed.core.models import ExchangeType, PositionSide
from perpfeed.trading.hyperliquid import HyperliquidExchange, HyperliquidOrder
from perpfeed.trading.signing import Signer

logger = structlog.get_logger(__name__)

UNSUPPORTED_EXCHANGES = frozenset({
    ExchangeType.DYDX.value,
    ExchangeType.GMX.value,
    ExchangeType.LIGHTER.value,
    ExchangeType.ASTER.value,
})


class OrderSide(Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(Enum):
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"


@dataclass(slots=True)
class UnifiedOrderRequest:
    exchange: str
    asset: str
    side: OrderSide
    size: float
    price: float                 # Limit price; slippage-adjusted price for market orders
    type: OrderType
    leverage: float              # Informational; some venues set leverage per position
    reduce_only: bool = False
    tpsl: Optional[str] = None   # "tp" | "sl", trigger orders only


@dataclass(slots=True)
class OrderResult:
    success: bool
    message: str
    exchange: str
    order_id: Optional[str] = None
    raw: Any = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "exchange": self.exchange,
            "order_id": self.order_id,
        }


def unsupported(exchange: str) -> OrderResult:
    return OrderResult(
        success=False,
        message=f"Order placement on {exchange} is not yet supported. Coming soon!",
        exchange=exchange,
    )


def to_hyperliquid_order(order: UnifiedOrderRequest) -> HyperliquidOrder:
    """limit -> Gtc, market -> Ioc limit, stop -> trigger"""
    is_buy = order.side == OrderSide.BUY
    if order.type == OrderType.LIMIT:
        order_type = {"limit": {"tif": "Gtc"}}
    elif order.type == OrderType.STOP:
        order_type = {
            "trigger": {
                "triggerPx": order.price,
                "isMarket": False,
                "tpsl": order.tpsl or ("sl" if is_buy else "tp"),
            }
        }
    else:
        order_type = {"limit": {"tif": "Ioc"}}
    return HyperliquidOrder(
        asset=order.asset,
        is_buy=is_buy,
        limit_px=order.price,
        size=order.size,
        reduce_only=order.reduce_only,
        order_type=order_type,
    )


def parse_hyperliquid_response(response: Any, exchange: str = ExchangeType.HYPERLIQUID.value) -> OrderResult:
    if not response:
        return OrderResult(success=False, message="No response from server", exchange=exchange)
    if not isinstance(response, dict) or response.get("status") != "ok":
        return OrderResult(success=False, message="Failed to place order", exchange=exchange, raw=response)

    body = response.get("response")
    data = body.get("data") if isinstance(body, dict) else None
    statuses = data.get("statuses") if isinstance(data, dict) else None
    first = statuses[0] if isinstance(statuses, list) and statuses else None

    if isinstance(first, dict) and first.get("error"):
        return OrderResult(success=False, message=str(first["error"]), exchange=exchange, raw=response)

    oid = None
    if isinstance(first, dict):
        for key in ("resting", "filled"):
            if isinstance(first.get(key), dict) and first[key].get("oid") is not None:
                oid = first[key]["oid"]
                break
    return OrderResult(
        success=True,
        message="Order placed successfully",
        exchange=exchange,
        order_id=str(oid) if oid is not None else None,
        raw=response,
    )


def _failure(exchange: str, error: BaseException, fallback: str) -> OrderResult:
    logger.warning("order_route_failed", exchange=exchange, error=str(error)[:200])
    return OrderResult(success=False, message=str(error) or fallback, exchange=exchange, raw=error)


async def route_order(
    signer: Signer,
    order: UnifiedOrderRequest,
    session: Optional[aiohttp.ClientSession] = None,
    hyperliquid: Optional[HyperliquidExchange] = None,
) -> OrderResult:
    """Send `order` to its exchange; never raises"""
    exchange = order.exchange
    try:
        if exchange == ExchangeType.HYPERLIQUID.value:
            venue = hyperliquid or HyperliquidExchange(signer, session=session)
            try:
                response = await venue.place_order(to_hyperliquid_order(order))
            finally:
                if hyperliquid is None:
                    await venue.close()
            return parse_hyperliquid_response(response, exchange)
        if exchange in UNSUPPORTED_EXCHANGES:
            return unsupported(exchange)
        return OrderResult(success=False, message=f"Unknown exchange: {exchange}", exchange=exchange)
    except Exception as e:
        return _failure(exchange, e, "Order failed")


async def cancel_exchange_order(
    signer: Signer,
    exchange: str,
    asset: str,
    order_id: int,
    session: Optional[aiohttp.ClientSession] = None,
    hyperliquid: Optional[HyperliquidExchange] = None,
) -> OrderResult:
    try:
        if exchange == ExchangeType.HYPERLIQUID.value:
            venue = hyperliquid or HyperliquidExchange(signer, session=session)
            try:
                response = await venue.cancel_order(asset, order_id)
            finally:
                if hyperliquid is None:
                    await venue.close()
            return parse_hyperliquid_response(response, exchange)
        return unsupported(exchange)
    except Exception as e:
        return _failure(exchange, e, "Cancel failed")


async def close_position(
    signer: Signer,
    exchange: str,
    asset: str,
    side: PositionSide,
    size: float,
    price: float,
    session: Optional[aiohttp.ClientSession] = None,
    hyperliquid: Optional[HyperliquidExchange] = None,
) -> OrderResult:
    """Reduce-only market order on the opposite side of the position"""
    close_side = OrderSide.SELL if side == PositionSide.LONG else OrderSide.BUY
    return await route_order(
        signer,
        UnifiedOrderRequest(
            exchange=exchange,
            asset=asset,
            side=close_side,
            size=size,
            price=price,
            type=OrderType.MARKET,
            leverage=1,
            reduce_only=True,
        ),
        session=session,
        hyperliquid=hyperliquid,
    )
