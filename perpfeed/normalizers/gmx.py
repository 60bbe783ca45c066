"""
GMX v2 wire format

GMX is a pool-based AMM: there is no order book and no public trade tape.
Only candles are real; book and trades are simulated downstream.

REST /prices/candles -> {"period": "15m", "candles": [[ts_seconds, o, h, l, c], ...]} newest first
REST /markets/info    -> {"markets": [{marketToken, name, indexTokenPrice, fundingRatePerHour, priceChange24h}]}
"""
from typing import Any, List

from perpfeed.core.models import CandleData, MarketInfo
from perpfeed.normalizers import common

PERIODS = {
    "1m": "1m",
    "5m": "5m",
    "15m": "15m",
    "1h": "1h",
    "4h": "4h",
    "1D": "1d",
}


def map_interval(interval: str) -> str:
    return PERIODS.get(interval, "15m")


def token_symbol(pair: str) -> str:
    """`BTC/USD` -> `BTC`"""
    return pair[:-4] if pair.endswith("/USD") else pair


def parse_candles(payload: Any) -> List[CandleData]:
    """Returned oldest first, timestamps in ms, no volume"""
    rows = payload.get("candles") if isinstance(payload, dict) else payload
    if not isinstance(rows, (list, tuple)):
        return []
    candles = []
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) < 5:
            continue
        timestamp = int(common.to_number(row[0])) * 1000
        if timestamp <= 0:
            continue
        candles.append(CandleData(
            timestamp=timestamp,
            open=common.to_number(row[1]),
            high=common.to_number(row[2]),
            low=common.to_number(row[3]),
            close=common.to_number(row[4]),
            volume=None,
        ))
    candles.sort(key=lambda c: c.timestamp)
    return candles


def parse_markets(payload: Any) -> List[MarketInfo]:
    """Markets are named like `BTC/USD [WBTC-USDC]`; the base is the part before the slash"""
    rows = payload.get("markets") if isinstance(payload, dict) else payload
    if not isinstance(rows, (list, tuple)):
        return []
    parsed = []
    for raw in rows:
        if not isinstance(raw, dict):
            continue
        symbol = common.first_present(raw, "marketSymbol", "name", "marketToken")
        if not symbol:
            continue
        symbol = str(symbol)
        parsed.append(MarketInfo(
            exchange="gmx",
            symbol=symbol,
            base_asset=symbol.split("/")[0].strip(),
            price=common.to_number(raw.get("indexTokenPrice")),
            change_24h_percent=common.to_number(raw.get("priceChange24h")),
            funding_rate=common.to_number(raw.get("fundingRatePerHour")),
        ))
    return parsed
