"""
Exchange account adapters

One adapter per exchange behind a common interface. Adapters hold no
state between calls: each call uses the injected REST client or opens a
short-lived one. Failures propagate; the aggregator isolates them.
"""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from types import MappingProxyType
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Type

from perpfeed.core.models import (
    MarketInfo,
    OrderStatus,
    PositionSide,
    TradeSide,
    UnifiedFill,
    UnifiedOrder,
    UserPosition,
)
from perpfeed.exchanges.aster import AsterClient
from perpfeed.exchanges.dydx import DydxClient
from perpfeed.exchanges.gmx import GmxClient
from perpfeed.exchanges.http import RestClient
from perpfeed.exchanges.hyperliquid import HyperliquidClient
from perpfeed.exchanges.lighter import LighterClient
from perpfeed.normalizers import aster as aster_wire
from perpfeed.normalizers import dydx as dydx_wire
from perpfeed.normalizers import gmx as gmx_wire
from perpfeed.normalizers import lighter as lighter_wire
from perpfeed.normalizers.common import to_number

GMX_USD_SCALE = 1e30
GMX_TOKEN_SCALE = 1e18
GMX_LEVERAGE_SCALE = 1e4
DYDX_DEFAULT_IMF = 0.05

# GMX market token -> base asset
GMX_MARKET_SYMBOLS = {
    "0x47c031236e19d024b42f8ae6da7084a34512a5d2": "BTC",
    "0x70d95587d40a2cdd56194bbd7a8812e5849f3596": "ETH",
    "0x09400d9db990d5ed3f35d7be61dfaeb900af03c9": "SOL",
    "0xb686bceeb3c3d7ea2bb2017afdd23008ffbf570d": "ARB",
    "0xc25cef6061cf5de5eb761b50e4743c1f5d7e5407": "DOGE",
}


def pnl_percent(pnl: float, size: float, entry_price: float) -> float:
    """Unrealized PnL as a percent of entry notional; 0 when notional is 0"""
    notional = abs(size) * entry_price
    if notional <= 0:
        return 0.0
    return pnl / notional * 100


class ExchangeAdapter(ABC):
    """Read-only account access for one exchange"""

    exchange_name: str = ""
    client_cls: Type[RestClient] = RestClient

    def __init__(self, client: Optional[RestClient] = None):
        self.client = client

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[Any]:
        if self.client is not None:
            yield self.client
            return
        client = self.client_cls()
        try:
            yield client
        finally:
            await client.close()

    @abstractmethod
    async def fetch_user_positions(self, address: str) -> List[UserPosition]:
        ...

    async def fetch_open_orders(self, address: str) -> List[UnifiedOrder]:
        return []

    async def fetch_fills(self, address: str) -> List[UnifiedFill]:
        return []

    async def fetch_markets(self) -> List[MarketInfo]:
        """Listed perpetual markets; empty where the exchange has no market list"""
        return []


# -- Hyperliquid -------------------------------------------------------------

def parse_hyperliquid_positions(state: Dict[str, Any], mids: Dict[str, Any]) -> List[UserPosition]:
    positions = []
    for idx, item in enumerate(state.get("assetPositions") or []):
        pos = item.get("position") if isinstance(item, dict) else None
        if not isinstance(pos, dict):
            continue
        szi = to_number(pos.get("szi"))
        if szi == 0:
            continue
        coin = str(pos.get("coin", ""))
        entry = to_number(pos.get("entryPx"))
        pnl = to_number(pos.get("unrealizedPnl"))
        mark = to_number(mids.get(coin)) if coin in mids else entry
        leverage = pos.get("leverage")
        positions.append(UserPosition(
            id=f"hl-{coin}-{idx}",
            symbol=f"{coin}-USD",
            base_asset=coin,
            side=PositionSide.LONG if szi > 0 else PositionSide.SHORT,
            size=abs(szi),
            entry_price=entry,
            mark_price=mark,
            liquidation_price=to_number(pos.get("liquidationPx")),
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent(pnl, szi, entry),
            leverage=to_number(leverage.get("value")) if isinstance(leverage, dict) else 1.0,
            exchange="Hyperliquid",
        ))
    return positions


def parse_hyperliquid_orders(rows: List[Any]) -> List[UnifiedOrder]:
    """`openOrders` rows are flat orders; `frontendOpenOrders`-style rows nest under `order`"""
    orders = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        order = row.get("order") if isinstance(row.get("order"), dict) else row
        orig_size = to_number(order.get("origSz", order.get("sz")))
        remaining = to_number(order.get("sz"))
        filled = max(orig_size - remaining, 0.0)
        price = to_number(order.get("limitPx"))
        created = int(to_number(order.get("timestamp")))
        orders.append(UnifiedOrder(
            id=f"hl-{order.get('oid')}",
            exchange="hyperliquid",
            asset=str(order.get("coin", "")),
            side=TradeSide.BUY if order.get("side") == "B" else TradeSide.SELL,
            type="limit",
            size=orig_size,
            price=price,
            filled_size=filled,
            avg_fill_price=price,
            status=OrderStatus.PARTIALLY_FILLED if filled > 0 else OrderStatus.OPEN,
            created_at=created,
            updated_at=int(to_number(row.get("statusTimestamp"))) or created,
        ))
    return orders


def parse_hyperliquid_fills(rows: List[Any]) -> List[UnifiedFill]:
    fills = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        fills.append(UnifiedFill(
            id=f"hl-fill-{row.get('tid')}",
            order_id=f"hl-{row.get('oid')}",
            exchange="hyperliquid",
            asset=str(row.get("coin", "")),
            side=TradeSide.BUY if row.get("side") == "B" else TradeSide.SELL,
            size=to_number(row.get("sz")),
            price=to_number(row.get("px")),
            fee=to_number(row.get("fee")),
            timestamp=int(to_number(row.get("time"))),
        ))
    return fills


class HyperliquidAdapter(ExchangeAdapter):
    exchange_name = "Hyperliquid"
    client_cls = HyperliquidClient

    async def fetch_user_positions(self, address: str) -> List[UserPosition]:
        async with self._client() as client:
            state = await client.clearinghouse_state(address)
            mids = await client.all_mids()
        return parse_hyperliquid_positions(state, mids)

    async def fetch_open_orders(self, address: str) -> List[UnifiedOrder]:
        async with self._client() as client:
            rows = await client.open_orders(address)
        return parse_hyperliquid_orders(rows)

    async def fetch_fills(self, address: str) -> List[UnifiedFill]:
        async with self._client() as client:
            rows = await client.user_fills(address)
        return parse_hyperliquid_fills(rows)


# -- dYdX --------------------------------------------------------------------

def parse_dydx_positions(raw_positions: List[Any], markets: Dict[str, Any]) -> List[UserPosition]:
    """
    The indexer has no liquidation price per position; it is estimated
    from the market's initial margin fraction.
    """
    positions = []
    for idx, pos in enumerate(raw_positions):
        if not isinstance(pos, dict) or pos.get("status") != "OPEN":
            continue
        size = to_number(pos.get("size"))
        if size == 0:
            continue
        market = str(pos.get("market", ""))
        entry = to_number(pos.get("entryPrice"))
        pnl = to_number(pos.get("unrealizedPnl"))
        info = markets.get(market)
        mark = to_number(info.get("oraclePrice")) if isinstance(info, dict) else entry
        imf = to_number(info.get("initialMarginFraction")) if isinstance(info, dict) else DYDX_DEFAULT_IMF
        side = PositionSide.LONG if pos.get("side") == "LONG" else PositionSide.SHORT
        liquidation = entry * (1 - imf) if side == PositionSide.LONG else entry * (1 + imf)
        positions.append(UserPosition(
            id=f"dydx-{market}-{idx}",
            symbol=market,
            base_asset=market[:-4] if market.endswith("-USD") else market,
            side=side,
            size=abs(size),
            entry_price=entry,
            mark_price=mark,
            liquidation_price=liquidation,
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent(pnl, size, entry),
            leverage=float(round(1 / imf)) if imf > 0 else 1.0,
            exchange="dYdX",
        ))
    return positions


class DydxAdapter(ExchangeAdapter):
    exchange_name = "dYdX"
    client_cls = DydxClient

    async def fetch_user_positions(self, address: str) -> List[UserPosition]:
        async with self._client() as client:
            raw = await client.subaccount_positions(address)
            markets = await client.perpetual_markets()
        return parse_dydx_positions(raw, markets)

    async def fetch_markets(self) -> List[MarketInfo]:
        async with self._client() as client:
            markets = await client.markets()
        return dydx_wire.parse_markets(markets)


# -- GMX ---------------------------------------------------------------------

def gmx_base_asset(market: str) -> str:
    return GMX_MARKET_SYMBOLS.get(market.lower(), market[:6])


def parse_gmx_positions(raw_positions: List[Any]) -> List[UserPosition]:
    positions = []
    for idx, pos in enumerate(raw_positions):
        if not isinstance(pos, dict):
            continue
        size_usd = to_number(pos.get("sizeInUsd")) / GMX_USD_SCALE
        if size_usd <= 0:
            continue
        size_tokens = to_number(pos.get("sizeInTokens")) / GMX_TOKEN_SCALE
        entry = size_usd / size_tokens if size_tokens > 0 else 0.0
        mark = to_number(pos.get("markPrice")) / GMX_USD_SCALE if pos.get("markPrice") else entry
        pnl = to_number(pos.get("pnl")) / GMX_USD_SCALE
        leverage = to_number(pos.get("leverage")) / GMX_LEVERAGE_SCALE if pos.get("leverage") else 1.0
        base = gmx_base_asset(str(pos.get("market", "")))
        positions.append(UserPosition(
            id=f"gmx-{pos.get('key') or idx}",
            symbol=f"{base}-USD",
            base_asset=base,
            side=PositionSide.LONG if pos.get("isLong") else PositionSide.SHORT,
            size=size_tokens,
            entry_price=entry,
            mark_price=mark,
            liquidation_price=to_number(pos.get("liquidationPrice")) / GMX_USD_SCALE,
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl / size_usd * 100,
            leverage=leverage,
            exchange="GMX",
        ))
    return positions


class GmxAdapter(ExchangeAdapter):
    exchange_name = "GMX"
    client_cls = GmxClient

    async def fetch_user_positions(self, address: str) -> List[UserPosition]:
        async with self._client() as client:
            raw = await client.positions(address)
        return parse_gmx_positions(raw)

    async def fetch_markets(self) -> List[MarketInfo]:
        async with self._client() as client:
            raw = await client.markets()
        return gmx_wire.parse_markets(raw)


# -- Lighter -----------------------------------------------------------------

def parse_lighter_positions(raw_positions: List[Any]) -> List[UserPosition]:
    positions = []
    for idx, pos in enumerate(raw_positions):
        if not isinstance(pos, dict):
            continue
        size = to_number(pos.get("size"))
        if size == 0:
            continue
        entry = to_number(pos.get("entry_price"))
        pnl = to_number(pos.get("unrealized_pnl"))
        base = pos.get("ticker") or f"MKT-{pos.get('market_id')}"
        positions.append(UserPosition(
            id=f"lighter-{pos.get('market_id')}-{idx}",
            symbol=f"{base}-USD",
            base_asset=base,
            side=PositionSide.LONG if pos.get("side") == "long" else PositionSide.SHORT,
            size=abs(size),
            entry_price=entry,
            mark_price=to_number(pos.get("mark_price")),
            liquidation_price=to_number(pos.get("liquidation_price")),
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent(pnl, size, entry),
            leverage=to_number(pos.get("leverage")),
            exchange="Lighter",
        ))
    return positions


class LighterAdapter(ExchangeAdapter):
    exchange_name = "Lighter"
    client_cls = LighterClient

    async def fetch_user_positions(self, address: str) -> List[UserPosition]:
        async with self._client() as client:
            raw = await client.positions(address)
        return parse_lighter_positions(raw)

    async def fetch_markets(self) -> List[MarketInfo]:
        async with self._client() as client:
            raw = await client.markets()
        return lighter_wire.parse_markets(raw)


# -- Aster -------------------------------------------------------------------

def parse_aster_positions(raw_positions: List[Any]) -> List[UserPosition]:
    positions = []
    for idx, pos in enumerate(raw_positions):
        if not isinstance(pos, dict):
            continue
        amount = to_number(pos.get("positionAmt"))
        if amount == 0:
            continue
        entry = to_number(pos.get("entryPrice"))
        pnl = to_number(pos.get("unRealizedProfit"))
        position_side = pos.get("positionSide")
        is_short = position_side == "SHORT" or (position_side == "BOTH" and amount < 0)
        symbol = str(pos.get("symbol", ""))
        base = symbol[:-4] if symbol.endswith("USDT") else symbol
        positions.append(UserPosition(
            id=f"aster-{symbol}-{idx}",
            symbol=f"{base}-USD",
            base_asset=base,
            side=PositionSide.SHORT if is_short else PositionSide.LONG,
            size=abs(amount),
            entry_price=entry,
            mark_price=to_number(pos.get("markPrice")),
            liquidation_price=to_number(pos.get("liquidationPrice")),
            unrealized_pnl=pnl,
            unrealized_pnl_percent=pnl_percent(pnl, amount, entry),
            leverage=to_number(pos.get("leverage")),
            exchange="Aster",
        ))
    return positions


class AsterAdapter(ExchangeAdapter):
    exchange_name = "Aster"
    client_cls = AsterClient

    async def fetch_user_positions(self, address: str) -> List[UserPosition]:
        async with self._client() as client:
            raw = await client.open_positions(address)
        return parse_aster_positions(raw)

    async def fetch_markets(self) -> List[MarketInfo]:
        async with self._client() as client:
            tickers, funding = await client.markets()
        return aster_wire.parse_markets(tickers, funding)


EXCHANGE_ADAPTERS: Mapping[str, ExchangeAdapter] = MappingProxyType({
    "hyperliquid": HyperliquidAdapter(),
    "dydx": DydxAdapter(),
    "gmx": GmxAdapter(),
    "lighter": LighterAdapter(),
    "aster": AsterAdapter(),
})


def enabled_adapters(names: Optional[List[str]] = None) -> List[ExchangeAdapter]:
    """Registry adapters for `names` (default: all), in registry order"""
    if names is None:
        return list(EXCHANGE_ADAPTERS.values())
    wanted = {n.lower() for n in names}
    return [adapter for name, adapter in EXCHANGE_ADAPTERS.items() if name in wanted]
