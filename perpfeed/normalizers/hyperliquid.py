"""
Hyperliquid wire format

WebSocket channels:
    l2Book  -> {"coin", "time", "levels": [[{px, sz, n}, ...bids], [...asks]]}
    trades  -> [{"coin", "side": "A"|"B", "px", "sz", "time", "hash", "tid"}, ...]
    candle  -> {"t", "T", "s", "i", "o", "c", "h", "l", "v", "n"}
REST /info candleSnapshot returns a list of candle objects, oldest first.
"""
from typing import Any, Dict, List, Optional, Tuple

from perpfeed.core.models import CandleData, OrderBookLevel, Trade
from perpfeed.normalizers import common


def channel_of(payload: Dict[str, Any]) -> Any:
    return payload.get("channel") or payload.get("type")


def parse_book(data: Any) -> Tuple[List[OrderBookLevel], List[OrderBookLevel]]:
    """Split an l2Book payload into (bids, asks)"""
    if not isinstance(data, dict):
        return [], []
    levels = common.first_present(data, "levels", "book")
    if levels is None and isinstance(data.get("l2Book"), dict):
        levels = data["l2Book"].get("levels")
    if not isinstance(levels, (list, tuple)) or len(levels) < 2:
        return [], []
    return common.parse_order_book_side(levels[0]), common.parse_order_book_side(levels[1])


def parse_trades(data: Any) -> List[Trade]:
    """
    Trades sharing one transaction share a `hash`, so `tid` is preferred
    as the identity key.
    """
    payload = data.get("trades") if isinstance(data, dict) else data
    return common.parse_trades(payload, id_keys=("tid", "hash", "id"))


def parse_candle(data: Any) -> Optional[CandleData]:
    if not isinstance(data, dict):
        return None
    return common.parse_candle(data)


def parse_candles(data: Any) -> List[CandleData]:
    return common.parse_candles(data)


def map_interval(interval: str) -> str:
    """Hyperliquid accepts the UI intervals verbatim, except daily is `1d`"""
    return "1d" if interval == "1D" else interval


def subscribe_messages(coin: str, interval: str) -> List[Dict[str, Any]]:
    """One subscribe envelope per stream: book, trades, candles"""
    return [
        {"method": "subscribe", "subscription": {"type": "l2Book", "coin": coin}},
        {"method": "subscribe", "subscription": {"type": "trades", "coin": coin}},
        {
            "method": "subscribe",
            "subscription": {"type": "candle", "coin": coin, "interval": map_interval(interval)},
        },
    ]
