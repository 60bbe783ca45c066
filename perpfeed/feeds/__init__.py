"""Live market feeds: WebSocket streams and REST pollers"""
from .websocket import ReconnectingWebSocket, reconnecting_message
from .polling import Poller
from .base import MarketFeed, StreamingFeed, PollingFeed
from .hyperliquid import HyperliquidFeed
from .dydx import DydxFeed
from .gmx import GmxFeed
from .lighter import LighterFeed
from .aster import AsterFeed
from .manager import FeedManager, create_feed, FEED_TYPES

__all__ = [
    "ReconnectingWebSocket",
    "reconnecting_message",
    "Poller",
    "MarketFeed",
    "StreamingFeed",
    "PollingFeed",
    "HyperliquidFeed",
    "DydxFeed",
    "GmxFeed",
    "LighterFeed",
    "AsterFeed",
    "FeedManager",
    "create_feed",
    "FEED_TYPES",
]
