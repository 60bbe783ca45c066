"""
POSITION AGGREGATOR
Fan out account reads to every adapter concurrently and merge the results

All adapters run under asyncio.gather(..., return_exceptions=True), so one
exchange failing never cancels or empties the others. Failures are logged
with the exchange name and left out of the merged result.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import structlog

from config import settings
from perpfeed.accounts.adapters import ExchangeAdapter, enabled_adapters
from perpfeed.core.models import MarketInfo, UnifiedFill, UnifiedOrder, UserPosition

logger = structlog.get_logger(__name__)

# Display colour per exchange; unknown exchanges get NEUTRAL_COLOR
EXCHANGE_COLORS: Dict[str, str] = {
    "Hyperliquid": "#60D5F0",
    "dYdX": "#6966FF",
    "GMX": "#00D1FF",
    "Lighter": "#F7931A",
    "Aster": "#22C55E",
}
NEUTRAL_COLOR = "#9CA3AF"


async def _gather(
    adapters: Sequence[ExchangeAdapter],
    call: Callable[[ExchangeAdapter], Awaitable[List[Any]]],
    what: str,
) -> Tuple[List[Any], int]:
    """Returns (merged results, adapters failed)"""
    results = await asyncio.gather(*(call(adapter) for adapter in adapters), return_exceptions=True)

    merged: List[Any] = []
    failed = 0
    for adapter, result in zip(adapters, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, BaseException):
            failed += 1
            logger.warning(
                f"{what}_fetch_failed",
                exchange=adapter.exchange_name,
                error=str(result)[:200],
                error_type=type(result).__name__,
            )
            continue
        merged.extend(result)
    return merged, failed


async def _fan_out(
    address: Optional[str],
    adapters: Optional[Sequence[ExchangeAdapter]],
    call: Callable[[ExchangeAdapter, str], Awaitable[List[Any]]],
    what: str,
) -> Tuple[List[Any], int, int]:
    """Returns (merged results, adapters tried, adapters failed)"""
    if not address:
        return [], 0, 0
    if adapters is None:
        adapters = enabled_adapters(settings.ENABLED_EXCHANGES)
    if not adapters:
        return [], 0, 0
    merged, failed = await _gather(adapters, lambda adapter: call(adapter, address), what)
    return merged, len(adapters), failed


async def fetch_all_positions(
    address: Optional[str],
    adapters: Optional[Sequence[ExchangeAdapter]] = None,
) -> List[UserPosition]:
    """Positions from every adapter, concatenated in adapter order"""
    positions, _, _ = await _fan_out(address, adapters, lambda a, addr: a.fetch_user_positions(addr), "positions")
    return positions


async def fetch_all_open_orders(
    address: Optional[str],
    adapters: Optional[Sequence[ExchangeAdapter]] = None,
) -> List[UnifiedOrder]:
    orders, _, _ = await _fan_out(address, adapters, lambda a, addr: a.fetch_open_orders(addr), "orders")
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


async def fetch_all_fills(
    address: Optional[str],
    adapters: Optional[Sequence[ExchangeAdapter]] = None,
) -> List[UnifiedFill]:
    fills, _, _ = await _fan_out(address, adapters, lambda a, addr: a.fetch_fills(addr), "fills")
    return sorted(fills, key=lambda f: f.timestamp, reverse=True)


async def fetch_all_markets(adapters: Optional[Sequence[ExchangeAdapter]] = None) -> List[MarketInfo]:
    """Listed markets from every adapter; a failing exchange contributes none"""
    if adapters is None:
        adapters = enabled_adapters(settings.ENABLED_EXCHANGES)
    markets, _ = await _gather(adapters, lambda adapter: adapter.fetch_markets(), "markets")
    return markets


@dataclass(slots=True)
class ExchangeSummary:
    """Open-position rollup for one exchange"""
    id: str
    name: str
    color: str
    active_positions: int
    total_pnl: float
    status: str                # "active" with open positions, else "idle"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "active_positions": self.active_positions,
            "total_pnl": self.total_pnl,
            "status": self.status,
        }


@dataclass(slots=True)
class PortfolioSummary:
    positions: List[UserPosition]
    exchanges: List[ExchangeSummary]
    total_pnl: float
    is_loading: bool
    error: Optional[str]

    def to_dict(self) -> dict:
        return {
            "positions": [p.to_dict() for p in self.positions],
            "exchanges": [e.to_dict() for e in self.exchanges],
            "total_pnl": self.total_pnl,
            "is_loading": self.is_loading,
            "error": self.error,
        }


def summarize_portfolio(
    positions: Sequence[UserPosition],
    exchange_names: Sequence[str],
    is_loading: bool = False,
    error: Optional[str] = None,
) -> PortfolioSummary:
    """
    Per-exchange rollup of open positions.

    Every name in `exchange_names` gets a row, idle when it has no
    positions. Positions from exchanges outside that list are appended
    after them in first-seen order.
    """
    by_exchange: Dict[str, List[UserPosition]] = {name: [] for name in exchange_names}
    for position in positions:
        by_exchange.setdefault(position.exchange, []).append(position)

    exchanges = []
    for name, held in by_exchange.items():
        exchanges.append(ExchangeSummary(
            id=name.lower(),
            name=name,
            color=EXCHANGE_COLORS.get(name, NEUTRAL_COLOR),
            active_positions=len(held),
            total_pnl=sum(p.unrealized_pnl for p in held),
            status="active" if held else "idle",
        ))

    return PortfolioSummary(
        positions=list(positions),
        exchanges=exchanges,
        total_pnl=sum(p.unrealized_pnl for p in positions),
        is_loading=is_loading,
        error=error,
    )


class PositionAggregator:
    """
    Pull-based position state for one wallet.

    A fetch runs on `load()`. Changing the address or calling `refresh()`
    bumps `refresh_key`; `load()` results that finish after a newer key was
    issued are discarded.
    """

    ALL_FAILED_MESSAGE = "Failed to load positions."

    def __init__(self, adapters: Optional[Sequence[ExchangeAdapter]] = None):
        self.adapters = adapters
        self.address: Optional[str] = None
        self.refresh_key = 0
        self.positions: List[UserPosition] = []
        self.is_loading = False
        self.error: Optional[str] = None

    def set_address(self, address: Optional[str]) -> None:
        if address == self.address:
            return
        self.address = address
        self.positions = []
        self.error = None
        self.refresh_key += 1

    def refresh(self) -> None:
        self.refresh_key += 1

    async def load(self) -> List[UserPosition]:
        key = self.refresh_key
        address = self.address
        if not address:
            self.positions = []
            self.error = None
            return self.positions

        self.is_loading = True
        try:
            positions, tried, failed = await _fan_out(
                address,
                self.adapters,
                lambda a, addr: a.fetch_user_positions(addr),
                "positions",
            )
        finally:
            if key == self.refresh_key:
                self.is_loading = False

        if key != self.refresh_key:
            logger.debug("positions_result_stale", key=key, current=self.refresh_key)
            return self.positions

        self.positions = positions
        self.error = self.ALL_FAILED_MESSAGE if tried and failed == tried else None
        logger.info("positions_loaded", address=address, count=len(positions), failed=failed)
        return self.positions

    def summary(self) -> PortfolioSummary:
        adapters = self.adapters
        if adapters is None:
            adapters = enabled_adapters(settings.ENABLED_EXCHANGES)
        return summarize_portfolio(
            self.positions,
            [adapter.exchange_name for adapter in adapters],
            is_loading=self.is_loading,
            error=self.error,
        )


class OrderHistory:
    """Pull-based open orders and fills for one wallet"""

    def __init__(self, adapters: Optional[Sequence[ExchangeAdapter]] = None):
        self.adapters = adapters
        self.address: Optional[str] = None
        self.refresh_key = 0
        self.open_orders: List[UnifiedOrder] = []
        self.fills: List[UnifiedFill] = []
        self.is_loading = False

    def set_address(self, address: Optional[str]) -> None:
        if address == self.address:
            return
        self.address = address
        self.open_orders = []
        self.fills = []
        self.refresh_key += 1

    def refresh(self) -> None:
        self.refresh_key += 1

    async def load(self) -> None:
        key = self.refresh_key
        address = self.address
        if not address:
            self.open_orders = []
            self.fills = []
            return

        self.is_loading = True
        try:
            orders, fills = await asyncio.gather(
                fetch_all_open_orders(address, self.adapters),
                fetch_all_fills(address, self.adapters),
            )
        finally:
            if key == self.refresh_key:
                self.is_loading = False

        if key != self.refresh_key:
            return
        self.open_orders = orders
        self.fills = fills
