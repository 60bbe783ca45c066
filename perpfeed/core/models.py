"""
Unified market data and account models
Every exchange payload is normalized into these shapes before reaching consumers
"""
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any
from enum import Enum


class TradeSide(Enum):
    BUY = "buy"
    SELL = "sell"


class ConnectionState(Enum):
    LOADING = "loading"    # Initial subscribe or reconnect in flight
    OPEN = "open"          # Receiving data / last poll succeeded
    ERROR = "error"        # Transport failure or retries exhausted


class ExchangeType(Enum):
    HYPERLIQUID = "hyperliquid"
    DYDX = "dydx"
    GMX = "gmx"
    LIGHTER = "lighter"
    ASTER = "aster"


class PositionSide(Enum):
    LONG = "Long"
    SHORT = "Short"


class OrderStatus(Enum):
    OPEN = "open"
    FILLED = "filled"
    PARTIALLY_FILLED = "partially_filled"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


# Candle interval durations (milliseconds)
INTERVAL_MS: Dict[str, int] = {
    "1m": 60_000,
    "5m": 5 * 60_000,
    "15m": 15 * 60_000,
    "1h": 60 * 60_000,
    "4h": 4 * 60 * 60_000,
    "1D": 24 * 60 * 60_000,
}


def interval_to_ms(interval: str) -> int:
    """Duration of one candle; unknown intervals fall back to 15m"""
    return INTERVAL_MS.get(interval, INTERVAL_MS["15m"])


@dataclass(slots=True)
class OrderBookLevel:
    """
    Single price level in an order book.
    `total` is derived by the depth builder, never taken from the wire.
    """
    price: float
    size: float
    total: float = 0.0

    def to_dict(self) -> dict:
        return {"price": self.price, "size": self.size, "total": self.total}


@dataclass(slots=True)
class OrderBookState:
    """
    Both sides of a book
    Bids best first (descending price), asks best first (ascending price)
    """
    bids: List[OrderBookLevel] = field(default_factory=list)
    asks: List[OrderBookLevel] = field(default_factory=list)
    simulated: bool = False    # Synthesized around a real price (AMM venues)

    @property
    def best_bid(self) -> Optional[float]:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Optional[float]:
        return self.asks[0].price if self.asks else None

    @property
    def mid_price(self) -> Optional[float]:
        if self.best_bid and self.best_ask:
            return (self.best_bid + self.best_ask) / 2
        return None

    @property
    def spread(self) -> Optional[float]:
        if self.best_bid and self.best_ask:
            return self.best_ask - self.best_bid
        return None

    def to_dict(self) -> dict:
        return {
            "bids": [l.to_dict() for l in self.bids],
            "asks": [l.to_dict() for l in self.asks],
            "simulated": self.simulated,
        }


@dataclass(slots=True)
class Trade:
    """
    Single executed trade on the tape.
    Identity is `id`: two trades with the same id are the same event.
    """
    id: str
    price: float
    size: float
    side: TradeSide
    timestamp: int             # Epoch milliseconds
    simulated: bool = False

    @property
    def notional(self) -> float:
        return self.price * self.size

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "price": self.price,
            "size": self.size,
            "side": self.side.value,
            "timestamp": self.timestamp,
            "simulated": self.simulated,
        }


@dataclass(slots=True)
class CandleData:
    """OHLCV candle keyed by its open time"""
    timestamp: int             # Candle open time, epoch milliseconds
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(slots=True)
class UserPosition:
    """Open perp position, rebuilt from scratch on every aggregation fetch"""
    id: str
    symbol: str                # e.g. "BTC-USD"
    base_asset: str            # e.g. "BTC"
    side: PositionSide
    size: float                # Absolute size in base asset
    entry_price: float
    mark_price: float
    liquidation_price: float
    unrealized_pnl: float
    unrealized_pnl_percent: float
    leverage: float
    exchange: str

    @property
    def notional(self) -> float:
        return self.size * self.mark_price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "base_asset": self.base_asset,
            "side": self.side.value,
            "size": self.size,
            "entry_price": self.entry_price,
            "mark_price": self.mark_price,
            "liquidation_price": self.liquidation_price,
            "unrealized_pnl": self.unrealized_pnl,
            "unrealized_pnl_percent": self.unrealized_pnl_percent,
            "leverage": self.leverage,
            "exchange": self.exchange,
        }


@dataclass(slots=True)
class UnifiedOrder:
    """Resting or historical order, normalized across exchanges"""
    id: str
    exchange: str
    asset: str
    side: TradeSide
    type: str                  # "market" | "limit" | "stop"
    size: float
    price: float
    filled_size: float
    avg_fill_price: float
    status: OrderStatus
    created_at: int            # Epoch milliseconds
    updated_at: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "exchange": self.exchange,
            "asset": self.asset,
            "side": self.side.value,
            "type": self.type,
            "size": self.size,
            "price": self.price,
            "filled_size": self.filled_size,
            "avg_fill_price": self.avg_fill_price,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(slots=True)
class UnifiedFill:
    """Single fill of an order"""
    id: str
    order_id: str
    exchange: str
    asset: str
    side: TradeSide
    size: float
    price: float
    fee: float
    timestamp: int             # Epoch milliseconds

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "exchange": self.exchange,
            "asset": self.asset,
            "side": self.side.value,
            "size": self.size,
            "price": self.price,
            "fee": self.fee,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class MarketSnapshot:
    """Unified state of one (exchange, pair, interval) subscription"""
    exchange: str
    pair: str
    interval: str
    connection_state: ConnectionState
    connection_error: Optional[str]
    order_book: Optional[OrderBookState]
    trades: List[Trade]
    candles: List[CandleData]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exchange": self.exchange,
            "pair": self.pair,
            "interval": self.interval,
            "connection_state": self.connection_state.value,
            "connection_error": self.connection_error,
            "order_book": self.order_book.to_dict() if self.order_book else None,
            "trades": [t.to_dict() for t in self.trades],
            "candles": [c.to_dict() for c in self.candles],
        }


@dataclass(slots=True)
class MarketInfo:
    """One listed perpetual market from an exchange's market list"""
    exchange: str
    symbol: str                # Exchange-native id, e.g. "BTC-USD" or "BTCUSDT"
    base_asset: str
    price: float = 0.0
    change_24h_percent: float = 0.0
    funding_rate: float = 0.0

    def to_dict(self) -> dict:
        return {
            "exchange": self.exchange,
            "symbol": self.symbol,
            "base_asset": self.base_asset,
            "price": self.price,
            "change_24h_percent": self.change_24h_percent,
            "funding_rate": self.funding_rate,
        }
