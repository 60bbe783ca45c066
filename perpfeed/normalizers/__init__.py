"""Per-exchange wire normalizers"""
from . import common, hyperliquid, dydx, gmx, lighter, aster
from .common import to_number, parse_trade_side, parse_order_book_side, parse_trades, parse_candles

__all__ = [
    "common",
    "hyperliquid",
    "dydx",
    "gmx",
    "lighter",
    "aster",
    "to_number",
    "parse_trade_side",
    "parse_order_book_side",
    "parse_trades",
    "parse_candles",
]
