"""
Lighter wire format (REST)

/api/v1/market/orderbook  -> {"bids": [{price, amount}], "asks": [...]}
/api/v1/market/trades     -> [{trade_id, price, amount, side, timestamp (s)}]
/api/v1/candlesticks      -> [{timestamp (s), open, high, low, close, volume}]
/api/v1/market/list       -> [{market_id, ticker, price, change24h, volume24h}]
"""
from typing import Any, Dict, List, Optional, Tuple

from perpfeed.core.models import CandleData, MarketInfo, OrderBookLevel, Trade
from perpfeed.normalizers import common

RESOLUTIONS = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "1h": "1h",
    "4h": "4h",
    "1D": "1d",
}

RESOLUTION_MS = {
    "1m": 60_000,
    "5m": 5 * 60_000,
    "15m": 15 * 60_000,
    "1h": 60 * 60_000,
    "4h": 4 * 60 * 60_000,
    "1d": 24 * 60 * 60_000,
}

# Static ticker -> market id table; unknown tickers fall back to market 0
MARKET_IDS: Dict[str, int] = {
    "BTC": 0,
    "ETH": 1,
    "HYPE": 2,
    "SOL": 3,
    "ARB": 4,
}


def map_interval(interval: str) -> str:
    return RESOLUTIONS.get(interval, "15m")


def market_id(ticker: str) -> int:
    return MARKET_IDS.get(ticker.upper(), 0)


def parse_book(payload: Any) -> Optional[Tuple[List[OrderBookLevel], List[OrderBookLevel]]]:
    """(bids, asks), or None when the payload is not a book"""
    if not isinstance(payload, dict):
        return None
    return (
        common.parse_order_book_side(payload.get("bids")),
        common.parse_order_book_side(payload.get("asks")),
    )


def parse_trades(payload: Any) -> List[Trade]:
    if not isinstance(payload, (list, tuple)):
        return []
    trades = []
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            continue
        price = common.to_number(raw.get("price"))
        size = common.to_number(raw.get("amount"))
        if price <= 0 or size <= 0:
            continue
        timestamp = int(common.to_number(raw.get("timestamp")) * 1000)
        trade_id = raw.get("trade_id")
        trades.append(Trade(
            id=str(trade_id) if trade_id is not None else f"{timestamp}-{price}-{size}-{index}",
            price=price,
            size=size,
            side=common.parse_trade_side(raw.get("side")),
            timestamp=timestamp,
        ))
    return trades


def parse_candles(payload: Any) -> List[CandleData]:
    if not isinstance(payload, (list, tuple)):
        return []
    candles = []
    for raw in payload:
        if not isinstance(raw, dict):
            continue
        timestamp = int(common.to_number(raw.get("timestamp")) * 1000)
        if timestamp <= 0:
            continue
        candles.append(CandleData(
            timestamp=timestamp,
            open=common.to_number(raw.get("open")),
            high=common.to_number(raw.get("high")),
            low=common.to_number(raw.get("low")),
            close=common.to_number(raw.get("close")),
            volume=common.to_number(raw.get("volume")),
        ))
    return candles


def parse_markets(payload: Any) -> List[MarketInfo]:
    rows = payload.get("markets") if isinstance(payload, dict) else payload
    if not isinstance(rows, (list, tuple)):
        return []
    parsed = []
    for raw in rows:
        if not isinstance(raw, dict) or not raw.get("ticker"):
            continue
        ticker = str(raw["ticker"])
        parsed.append(MarketInfo(
            exchange="lighter",
            symbol=ticker,
            base_asset=ticker.split("-")[0].split("/")[0],
            price=common.to_number(raw.get("price")),
            change_24h_percent=common.to_number(raw.get("change24h")),
        ))
    return parsed
