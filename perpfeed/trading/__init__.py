"""Order placement boundary"""
from .signing import Signer, float_to_wire, split_signature
from .hyperliquid import HyperliquidExchange, HyperliquidOrder, UnknownAssetError
from .router import (
    OrderSide,
    OrderType,
    UnifiedOrderRequest,
    OrderResult,
    route_order,
    parse_hyperliquid_response,
    cancel_exchange_order,
    close_position,
)

__all__ = [
    "Signer",
    "float_to_wire",
    "split_signature",
    "HyperliquidExchange",
    "HyperliquidOrder",
    "UnknownAssetError",
    "OrderSide",
    "OrderType",
    "UnifiedOrderRequest",
    "OrderResult",
    "route_order",
    "parse_hyperliquid_response",
    "cancel_exchange_order",
    "close_position",
]
