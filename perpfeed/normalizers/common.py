"""
Shared decoding helpers for exchange payloads.

All functions here are pure and never raise on malformed input:
numeric fields coerce to 0, unknown sides default to buy, and order book
levels or trades with a non-positive price or size are dropped.
"""
import math
import time
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional

from perpfeed.core.models import CandleData, OrderBookLevel, Trade, TradeSide

BUY_ALIASES = frozenset({"buy", "b", "bid", "long", "takerbuy", "buyer", "bull"})
SELL_ALIASES = frozenset({"sell", "s", "a", "ask", "short", "takersell", "seller", "bear"})


def now_ms() -> int:
    return int(time.time() * 1000)


def to_number(value: Any) -> float:
    """Coerce a wire value to float; anything non-numeric becomes 0.0"""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def first_present(record: dict, *keys: str) -> Any:
    """First value under `keys` that is not None (mirrors `a ?? b ?? c`)"""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def parse_trade_side(value: Any) -> TradeSide:
    """
    Map string / boolean side encodings to buy or sell.

    Booleans map True -> buy. Callers holding Binance-style `isBuyerMaker`
    must invert before calling. Unrecognized input defaults to buy.
    """
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in BUY_ALIASES:
            return TradeSide.BUY
        if normalized in SELL_ALIASES:
            return TradeSide.SELL
    if isinstance(value, bool):
        return TradeSide.BUY if value else TradeSide.SELL
    return TradeSide.BUY


def parse_iso_ms(value: Any) -> int:
    """ISO-8601 timestamp (e.g. "2024-01-01T00:00:00.000Z") to epoch ms, 0 on failure"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(to_number(value))
    if not isinstance(value, str) or not value:
        return 0
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def parse_level(level: Any) -> Optional[OrderBookLevel]:
    """
    Decode one book level from `[price, size]` or `{px|price, sz|size|amount}`.

    `total` carries the level notional (price * size); the depth builder
    replaces it with cumulative size once the side is sorted.
    """
    if isinstance(level, (list, tuple)):
        if len(level) < 2:
            return None
        price = to_number(level[0])
        size = to_number(level[1])
    elif isinstance(level, dict):
        price = to_number(first_present(level, "px", "price"))
        size = to_number(first_present(level, "sz", "size", "amount"))
    else:
        return None
    if price <= 0 or size <= 0:
        return None
    return OrderBookLevel(price=price, size=size, total=price * size)


def parse_order_book_side(levels: Any) -> List[OrderBookLevel]:
    if not isinstance(levels, (list, tuple)):
        return []
    parsed = []
    for level in levels:
        normalized = parse_level(level)
        if normalized is not None:
            parsed.append(normalized)
    return parsed


def parse_trades(payload: Any, id_keys: tuple = ("hash", "id")) -> List[Trade]:
    """
    Decode a batch of trades.

    Tuple form: `[price, size, timestamp, side]`.
    Object form: `{px|price, sz|size, time|timestamp, side|dir|isBuyerMaker, hash|id}`.
    The id is read from the first present key in `id_keys`; trades without one
    get `"{timestamp}-{price}-{size}-{index}"`.
    """
    if not isinstance(payload, (list, tuple)):
        return []

    trades: List[Trade] = []
    for index, raw in enumerate(payload):
        if not raw:
            continue
        if isinstance(raw, (list, tuple)):
            padded = list(raw) + [None] * (4 - len(raw))
            price = to_number(padded[0])
            size = to_number(padded[1])
            timestamp = int(to_number(padded[2] if padded[2] is not None else now_ms()))
            side = parse_trade_side(padded[3])
            trade_id = f"{timestamp}-{price}-{size}-{index}"
        elif isinstance(raw, dict):
            price = to_number(first_present(raw, "px", "price"))
            size = to_number(first_present(raw, "sz", "size"))
            ts_value = first_present(raw, "time", "timestamp")
            timestamp = int(to_number(ts_value if ts_value is not None else now_ms()))
            side = parse_trade_side(first_present(raw, "side", "dir", "isBuyerMaker"))
            raw_id = first_present(raw, *id_keys)
            trade_id = str(raw_id) if raw_id is not None else f"{timestamp}-{price}-{size}-{index}"
        else:
            continue

        if price <= 0 or size <= 0:
            continue
        trades.append(Trade(id=trade_id, price=price, size=size, side=side, timestamp=timestamp))
    return trades


def parse_candle(record: Any) -> Optional[CandleData]:
    """Decode `{t|T|timestamp, o|open, ...}` or `[ts, o, h, l, c, v?]`"""
    if isinstance(record, (list, tuple)):
        if len(record) < 5:
            return None
        volume = to_number(record[5]) if len(record) > 5 else None
        return CandleData(
            timestamp=int(to_number(record[0])),
            open=to_number(record[1]),
            high=to_number(record[2]),
            low=to_number(record[3]),
            close=to_number(record[4]),
            volume=volume,
        )
    if isinstance(record, dict):
        ts_value = first_present(record, "t", "T", "timestamp")
        return CandleData(
            timestamp=int(to_number(ts_value if ts_value is not None else now_ms())),
            open=to_number(first_present(record, "o", "open")),
            high=to_number(first_present(record, "h", "high")),
            low=to_number(first_present(record, "l", "low")),
            close=to_number(first_present(record, "c", "close")),
            volume=to_number(first_present(record, "v", "volume")),
        )
    return None


def parse_candles(payload: Any) -> List[CandleData]:
    if not isinstance(payload, (list, tuple)):
        return []
    candles = []
    for record in payload:
        candle = parse_candle(record)
        if candle is not None:
            candles.append(candle)
    return candles


def newest_first(trades: Iterable[Trade]) -> List[Trade]:
    """Stable sort by timestamp descending"""
    return sorted(trades, key=lambda t: t.timestamp, reverse=True)
