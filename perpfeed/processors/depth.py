"""
Cumulative depth

One code path feeds both the order book ladder and the depth chart, so
the cumulative totals they show are identical for the same input.
"""
from typing import Iterable, List, Optional, Tuple

from perpfeed.core.models import OrderBookLevel, OrderBookState


def cumulative_depth(levels: Iterable[OrderBookLevel]) -> List[OrderBookLevel]:
    """
    Running sum of size over levels already in display order.
    Returns new levels; the input is not mutated.
    """
    result = []
    running = 0.0
    for level in levels:
        running += level.size
        result.append(OrderBookLevel(price=level.price, size=level.size, total=running))
    return result


def _dedupe(levels: Iterable[OrderBookLevel]) -> List[OrderBookLevel]:
    """Last occurrence of a price wins"""
    by_price = {}
    for level in levels:
        by_price[level.price] = level
    return list(by_price.values())


def build_order_book(
    bids: Iterable[OrderBookLevel],
    asks: Iterable[OrderBookLevel],
    max_levels: Optional[int] = None,
    simulated: bool = False,
) -> OrderBookState:
    """Sort, dedupe, truncate and accumulate both sides of a book"""
    sorted_bids = sorted(_dedupe(bids), key=lambda l: l.price, reverse=True)
    sorted_asks = sorted(_dedupe(asks), key=lambda l: l.price)
    if max_levels is not None:
        sorted_bids = sorted_bids[:max_levels]
        sorted_asks = sorted_asks[:max_levels]
    return OrderBookState(
        bids=cumulative_depth(sorted_bids),
        asks=cumulative_depth(sorted_asks),
        simulated=simulated,
    )


def depth_chart(
    book: Optional[OrderBookState],
) -> Tuple[List[Tuple[float, float]], List[Tuple[float, float]]]:
    """(price, cumulative size) points per side, best price first"""
    if book is None:
        return [], []
    bid_points = [(l.price, l.total) for l in cumulative_depth(book.bids)]
    ask_points = [(l.price, l.total) for l in cumulative_depth(book.asks)]
    return bid_points, ask_points
