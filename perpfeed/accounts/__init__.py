"""Wallet positions, open orders and fills across exchanges"""
from .adapters import (
    ExchangeAdapter,
    HyperliquidAdapter,
    DydxAdapter,
    GmxAdapter,
    LighterAdapter,
    AsterAdapter,
    EXCHANGE_ADAPTERS,
    enabled_adapters,
    pnl_percent,
)
from .aggregator import (
    fetch_all_positions,
    fetch_all_open_orders,
    fetch_all_fills,
    fetch_all_markets,
    summarize_portfolio,
    ExchangeSummary,
    PortfolioSummary,
    PositionAggregator,
    OrderHistory,
)

__all__ = [
    "ExchangeAdapter",
    "HyperliquidAdapter",
    "DydxAdapter",
    "GmxAdapter",
    "LighterAdapter",
    "AsterAdapter",
    "EXCHANGE_ADAPTERS",
    "enabled_adapters",
    "pnl_percent",
    "fetch_all_positions",
    "fetch_all_open_orders",
    "fetch_all_fills",
    "fetch_all_markets",
    "summarize_portfolio",
    "ExchangeSummary",
    "PortfolioSummary",
    "PositionAggregator",
    "OrderHistory",
]
