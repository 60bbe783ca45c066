#!/usr/bin/env python3
"""
perpfeed command line

Usage:
  python run_feed.py stream hyperliquid BTC 15m      # Stream 30s, print final state
  python run_feed.py stream gmx BTC 1h --duration 60
  python run_feed.py positions 0xabc...             # Aggregated positions
  python run_feed.py orders 0xabc...                # Open orders and fills
"""
import argparse
import asyncio
import signal
import sys

import orjson
import structlog

from config import settings
from perpfeed.accounts import OrderHistory, fetch_all_positions
from perpfeed.core.models import ExchangeType
from perpfeed.feeds import FeedManager, MarketFeed

logger = structlog.get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Multi-exchange perpetuals market data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    stream = sub.add_parser("stream", help="Stream one market and print the final unified state")
    stream.add_argument("exchange", choices=[e.value for e in ExchangeType])
    stream.add_argument("pair", nargs="?", default=settings.DEFAULT_PAIR)
    stream.add_argument("interval", nargs="?", default=settings.DEFAULT_INTERVAL, choices=settings.TIME_INTERVALS)
    stream.add_argument("--duration", type=float, default=30.0, help="Seconds to stream (default: 30)")
    stream.add_argument("--quiet", action="store_true", help="Only print the final state")

    positions = sub.add_parser("positions", help="Print positions across all exchanges")
    positions.add_argument("address")

    orders = sub.add_parser("orders", help="Print open orders and fills across exchanges")
    orders.add_argument("address")
    return parser.parse_args(argv)


def print_json(obj) -> None:
    sys.stdout.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2).decode() + "\n")
    sys.stdout.flush()


def print_update(feed: MarketFeed) -> None:
    book = feed.order_book
    last = feed.candles.last
    print(
        f"[{feed.key}] {feed.connection_state.value:<7} "
        f"bid={book.best_bid if book else '-'} ask={book.best_ask if book else '-'} "
        f"trades={len(feed.tape)} candles={len(feed.candles)} "
        f"close={last.close if last else '-'}"
        + (f" ({feed.connection_error})" if feed.connection_error else "")
    )


async def run_stream(args) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            logger.debug("signal_handler_unsupported", signal=sig)

    manager = FeedManager(on_update=None if args.quiet else print_update)
    feed = await manager.subscribe(args.exchange, args.pair, args.interval)
    stopper = asyncio.create_task(stop.wait())
    await asyncio.wait({stopper}, timeout=args.duration)
    stopper.cancel()
    snapshot = feed.snapshot()
    await manager.close()
    print_json(snapshot.to_dict())


async def run_positions(args) -> None:
    positions = await fetch_all_positions(args.address)
    print_json([p.to_dict() for p in positions])


async def run_orders(args) -> None:
    history = OrderHistory()
    history.set_address(args.address)
    await history.load()
    print_json({
        "open_orders": [o.to_dict() for o in history.open_orders],
        "fills": [f.to_dict() for f in history.fills],
    })


def main(argv=None):
    args = parse_args(argv)
    runners = {"stream": run_stream, "positions": run_positions, "orders": run_orders}
    try:
        asyncio.run(runners[args.command](args))
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")


if __name__ == "__main__":
    main()
