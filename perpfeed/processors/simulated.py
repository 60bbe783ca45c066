"""
Simulated market microstructure for pool-based venues.

GMX quotes from an oracle-priced pool, so it has no resting orders and no
public tape. The ladder and tape built here exist only so the unified view
looks the same for every exchange; everything returned is tagged
`simulated=True`. Pass a seeded `random.Random` for reproducible output.
"""
import random
from typing import List, Optional, Sequence

from perpfeed.core.models import CandleData, OrderBookLevel, OrderBookState, Trade, TradeSide
from perpfeed.processors.depth import build_order_book


def simulate_order_book(
    price: float,
    levels: int = 6,
    spread: float = 0.0005,
    rng: Optional[random.Random] = None,
) -> OrderBookState:
    """Symmetric ladder stepping `spread` per level away from `price`"""
    rng = rng or random.Random()
    if price <= 0 or levels <= 0:
        return OrderBookState(simulated=True)

    bids = []
    asks = []
    for i in range(levels):
        step = spread * (i + 1)
        bids.append(OrderBookLevel(price=price * (1 - step), size=rng.uniform(1, 6)))
        asks.append(OrderBookLevel(price=price * (1 + step), size=rng.uniform(1, 6)))
    return build_order_book(bids, asks, simulated=True)


def simulate_trades(
    candles: Sequence[CandleData],
    rng: Optional[random.Random] = None,
    max_trades: int = 12,
) -> List[Trade]:
    """2-3 prints inside each of the last five candles, newest first"""
    rng = rng or random.Random()
    if len(candles) < 2:
        return []
    trades: List[Trade] = []
    recent = list(candles)[-5:]
    for idx, candle in enumerate(recent):
        low = min(candle.low, candle.high)
        high = max(candle.low, candle.high)
        if high <= 0:
            continue
        for i in range(rng.randint(2, 3)):
            price = rng.uniform(max(low, 0.0), high) if high > low else high
            if price <= 0:
                continue
            trades.append(Trade(
                id=f"{candle.timestamp}-{idx}-{i}",
                price=price,
                size=0.1 + rng.random() * 2,
                side=TradeSide.BUY if rng.random() > 0.5 else TradeSide.SELL,
                timestamp=candle.timestamp + i * 1000,
                simulated=True,
            ))
    trades.sort(key=lambda t: t.timestamp, reverse=True)
    return trades[:max_trades]
