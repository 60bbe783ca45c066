"""Core models and resilience primitives"""
from .models import (
    TradeSide,
    ConnectionState,
    ExchangeType,
    PositionSide,
    OrderStatus,
    OrderBookLevel,
    OrderBookState,
    Trade,
    CandleData,
    UserPosition,
    UnifiedOrder,
    UnifiedFill,
    MarketSnapshot,
    MarketInfo,
    INTERVAL_MS,
    interval_to_ms,
)
from .resilience import ExponentialBackoff, CancelToken, ConnectionHealth, WebSocketConfig

__all__ = [
    "TradeSide",
    "ConnectionState",
    "ExchangeType",
    "PositionSide",
    "OrderStatus",
    "OrderBookLevel",
    "OrderBookState",
    "Trade",
    "CandleData",
    "UserPosition",
    "UnifiedOrder",
    "UnifiedFill",
    "MarketSnapshot",
    "MarketInfo",
    "INTERVAL_MS",
    "interval_to_ms",
    "ExponentialBackoff",
    "CancelToken",
    "ConnectionHealth",
    "WebSocketConfig",
]
