"""
perpfeed configuration
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    # Project paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent

    # Hyperliquid endpoints
    HYPERLIQUID_API_URL: str = "https://api.hyperliquid.xyz"
    HYPERLIQUID_WS_URL: str = "wss://api.hyperliquid.xyz/ws"

    # dYdX v4 indexer endpoints
    DYDX_API_URL: str = "https://indexer.dydx.trade"
    DYDX_WS_URL: str = "wss://indexer.dydx.trade/v4/ws"

    # REST-only exchanges
    GMX_API_URL: str = "https://arbitrum-api.gmxinfra.io"
    LIGHTER_API_URL: str = "https://mainnet.zklighter.elliot.ai"
    ASTER_API_URL: str = "https://fapi.asterdex.com"

    # Markets
    DEFAULT_PAIR: str = "BTC"
    DEFAULT_INTERVAL: str = "15m"
    TIME_INTERVALS: List[str] = ["1m", "5m", "15m", "1h", "4h", "1D"]

    # Unified state bounds
    MAX_TRADES: int = 12
    MAX_CANDLES: int = 100
    MAX_ORDER_LEVELS: int = 6

    # WebSocket reconnection (exponential backoff)
    WS_MAX_RETRIES: int = 10
    WS_BASE_DELAY_S: float = 1.0
    WS_MAX_DELAY_S: float = 30.0

    # REST polling intervals (seconds)
    GMX_POLL_INTERVAL_S: float = 10.0
    LIGHTER_POLL_INTERVAL_S: float = 5.0
    ASTER_POLL_INTERVAL_S: float = 5.0

    # HTTP
    REQUEST_TIMEOUT_S: float = 30.0
    CONNECT_TIMEOUT_S: float = 10.0

    # Exchanges queried by the position aggregator
    ENABLED_EXCHANGES: List[str] = Field(
        default_factory=lambda: ["hyperliquid", "dydx", "gmx", "lighter", "aster"]
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
