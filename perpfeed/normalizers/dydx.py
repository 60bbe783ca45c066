"""
dYdX v4 indexer wire format

WebSocket envelope: {"type": "subscribed"|"channel_data"|"error", "channel", "id", "contents"}
    v4_orderbook  subscribed   -> {"bids": [{price, size}], "asks": [...]}   full book
                  channel_data -> {"bids": [[price, size]], "asks": [...]}   deltas, size "0" removes
    v4_trades     -> {"trades": [{id, side: "BUY"|"SELL", price, size, createdAt}]}
    v4_candles    -> {startedAt, ticker, resolution, open, high, low, close, baseTokenVolume}
REST /v4/candles/perpetualMarkets/{ticker} returns {"candles": [...]} newest first.
REST /v4/perpetualMarkets returns {"markets": {ticker: {oraclePrice, priceChange24H, nextFundingRate}}}.
"""
from typing import Any, Dict, Iterable, List, Optional

from perpfeed.core.models import CandleData, MarketInfo, OrderBookLevel, Trade
from perpfeed.normalizers import common

RESOLUTIONS = {
    "1m": "1MIN",
    "5m": "5MINS",
    "15m": "15MINS",
    "1h": "1HOUR",
    "4h": "4HOURS",
    "1D": "1DAY",
}


def market_ticker(pair: str) -> str:
    return f"{pair.upper()}-USD"


def map_interval(interval: str) -> str:
    return RESOLUTIONS.get(interval, "15MINS")


def candle_channel_id(pair: str, interval: str) -> str:
    return f"{market_ticker(pair)}/{map_interval(interval)}"


def subscribe_messages(pair: str, interval: str) -> List[Dict[str, Any]]:
    ticker = market_ticker(pair)
    return [
        {"type": "subscribe", "channel": "v4_orderbook", "id": ticker},
        {"type": "subscribe", "channel": "v4_trades", "id": ticker},
        {"type": "subscribe", "channel": "v4_candles", "id": candle_channel_id(pair, interval)},
    ]


def _raw_level(level: Any):
    """(price, size) from `[price, size]` or `{price, size}`, None if unreadable"""
    if isinstance(level, (list, tuple)) and len(level) >= 2:
        return common.to_number(level[0]), common.to_number(level[1])
    if isinstance(level, dict):
        return common.to_number(level.get("price")), common.to_number(level.get("size"))
    return None


def book_side_from_snapshot(levels: Any) -> Dict[float, float]:
    """Price -> size map for one side of a full book snapshot"""
    side: Dict[float, float] = {}
    if not isinstance(levels, (list, tuple)):
        return side
    for level in levels:
        raw = _raw_level(level)
        if raw is None:
            continue
        price, size = raw
        if price > 0 and size > 0:
            side[price] = size
    return side


def apply_book_deltas(side: Dict[float, float], updates: Any) -> Dict[float, float]:
    """
    Apply incremental updates to a price -> size map.
    Returns a new map; a size of 0 removes the level.
    """
    merged = dict(side)
    if not isinstance(updates, (list, tuple)):
        return merged
    for level in updates:
        raw = _raw_level(level)
        if raw is None:
            continue
        price, size = raw
        if price <= 0:
            continue
        if size <= 0:
            merged.pop(price, None)
        else:
            merged[price] = size
    return merged


def side_to_levels(side: Dict[float, float]) -> List[OrderBookLevel]:
    return [OrderBookLevel(price=p, size=s, total=p * s) for p, s in side.items()]


def parse_trade(raw: Any, index: int = 0) -> Optional[Trade]:
    if not isinstance(raw, dict):
        return None
    price = common.to_number(raw.get("price"))
    size = common.to_number(raw.get("size"))
    if price <= 0 or size <= 0:
        return None
    timestamp = common.parse_iso_ms(raw.get("createdAt")) or common.now_ms()
    trade_id = raw.get("id")
    return Trade(
        id=str(trade_id) if trade_id else f"{timestamp}-{index}",
        price=price,
        size=size,
        side=common.parse_trade_side(raw.get("side")),
        timestamp=timestamp,
    )


def parse_trades(contents: Any) -> List[Trade]:
    records = contents.get("trades") if isinstance(contents, dict) else contents
    if not isinstance(records, (list, tuple)):
        return []
    trades = []
    for index, raw in enumerate(records):
        trade = parse_trade(raw, index)
        if trade is not None:
            trades.append(trade)
    return trades


def parse_candle(raw: Any) -> Optional[CandleData]:
    if not isinstance(raw, dict):
        return None
    timestamp = common.parse_iso_ms(raw.get("startedAt"))
    if timestamp <= 0:
        return None
    return CandleData(
        timestamp=timestamp,
        open=common.to_number(raw.get("open")),
        high=common.to_number(raw.get("high")),
        low=common.to_number(raw.get("low")),
        close=common.to_number(raw.get("close")),
        volume=common.to_number(raw.get("baseTokenVolume")),
    )


def parse_candles(payload: Any) -> List[CandleData]:
    """REST candles arrive newest first; returned oldest first"""
    records: Iterable = payload.get("candles", []) if isinstance(payload, dict) else payload
    if not isinstance(records, (list, tuple)):
        return []
    candles = [c for c in (parse_candle(r) for r in records) if c is not None]
    candles.sort(key=lambda c: c.timestamp)
    return candles


def parse_markets(markets: Any) -> List[MarketInfo]:
    """`priceChange24H` is absolute; the percent is taken against the price 24h ago"""
    if not isinstance(markets, dict):
        return []
    parsed = []
    for ticker, raw in markets.items():
        if not isinstance(raw, dict):
            continue
        ticker = str(raw.get("ticker") or ticker)
        price = common.to_number(raw.get("oraclePrice"))
        change = common.to_number(raw.get("priceChange24H"))
        previous = price - change
        parsed.append(MarketInfo(
            exchange="dydx",
            symbol=ticker,
            base_asset=ticker.split("-")[0],
            price=price,
            change_24h_percent=change / previous * 100 if previous > 0 else 0.0,
            funding_rate=common.to_number(raw.get("nextFundingRate")),
        ))
    return parsed
