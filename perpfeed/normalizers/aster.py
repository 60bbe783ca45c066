"""
Aster wire format (Binance futures compatible REST)

/fapi/v1/depth   -> {"bids": [[price, qty]], "asks": [[price, qty]]}
/fapi/v1/trades  -> [{id, price, qty, quoteQty, time, isBuyerMaker}]  oldest first
/fapi/v1/klines  -> [[openTime, o, h, l, c, v, closeTime, ...]]
/fapi/v1/ticker/24hr   -> [{symbol, lastPrice, priceChangePercent}]
/fapi/v1/premiumIndex -> [{symbol, lastFundingRate}]
"""
from typing import Any, List, Optional, Tuple

from perpfeed.core.models import CandleData, MarketInfo, OrderBookLevel, Trade, TradeSide
from perpfeed.normalizers import common

INTERVALS = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "1h": "1h",
    "4h": "4h",
    "1D": "1d",
}


def map_interval(interval: str) -> str:
    return INTERVALS.get(interval, "15m")


def symbol_for(pair: str) -> str:
    return f"{pair.upper()}USDT"


def parse_book(payload: Any) -> Optional[Tuple[List[OrderBookLevel], List[OrderBookLevel]]]:
    if not isinstance(payload, dict):
        return None
    return (
        common.parse_order_book_side(payload.get("bids")),
        common.parse_order_book_side(payload.get("asks")),
    )


def parse_trades(payload: Any) -> List[Trade]:
    """Buyer-maker prints are aggressive sells"""
    if not isinstance(payload, (list, tuple)):
        return []
    trades = []
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            continue
        price = common.to_number(raw.get("price"))
        size = common.to_number(raw.get("qty"))
        if price <= 0 or size <= 0:
            continue
        timestamp = int(common.to_number(raw.get("time")))
        trade_id = raw.get("id")
        trades.append(Trade(
            id=str(trade_id) if trade_id is not None else f"{timestamp}-{price}-{size}-{index}",
            price=price,
            size=size,
            side=TradeSide.SELL if raw.get("isBuyerMaker") is True else TradeSide.BUY,
            timestamp=timestamp,
        ))
    return trades


def parse_candles(payload: Any) -> List[CandleData]:
    return [c for c in common.parse_candles(payload) if c.timestamp > 0]


def parse_markets(tickers: Any, funding: Any = None) -> List[MarketInfo]:
    """USDT-margined tickers only; funding defaults to 0 when the premium index is missing"""
    if not isinstance(tickers, (list, tuple)):
        return []
    funding_by_symbol = {}
    if isinstance(funding, (list, tuple)):
        for item in funding:
            if isinstance(item, dict) and item.get("symbol"):
                funding_by_symbol[item["symbol"]] = common.to_number(item.get("lastFundingRate"))
    parsed = []
    for raw in tickers:
        if not isinstance(raw, dict):
            continue
        symbol = raw.get("symbol")
        if not isinstance(symbol, str) or not symbol.endswith("USDT"):
            continue
        parsed.append(MarketInfo(
            exchange="aster",
            symbol=symbol,
            base_asset=symbol[:-4],
            price=common.to_number(raw.get("lastPrice")),
            change_24h_percent=common.to_number(raw.get("priceChangePercent")),
            funding_rate=funding_by_symbol.get(symbol, 0.0),
        ))
    return parsed
