"""REST clients, one per exchange"""
from .http import ExchangeAPIError, RestClient, create_session, get_json, post_json
from .hyperliquid import HyperliquidClient
from .dydx import DydxClient
from .gmx import GmxClient
from .lighter import LighterClient
from .aster import AsterClient

__all__ = [
    "ExchangeAPIError",
    "RestClient",
    "create_session",
    "get_json",
    "post_json",
    "HyperliquidClient",
    "DydxClient",
    "GmxClient",
    "LighterClient",
    "AsterClient",
]
