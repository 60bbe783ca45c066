"""Stateful and pure transforms over normalized market data"""
from .depth import cumulative_depth, build_order_book, depth_chart
from .candles import CandleSeries
from .tape import TradeTape
from .simulated import simulate_order_book, simulate_trades

__all__ = [
    "cumulative_depth",
    "build_order_book",
    "depth_chart",
    "CandleSeries",
    "TradeTape",
    "simulate_order_book",
    "simulate_trades",
]
