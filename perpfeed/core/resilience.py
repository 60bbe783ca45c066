"""
RESILIENCE MODULE
Reconnect backoff, liveness tokens and WebSocket tuning for live market feeds
"""
import time
from typing import Dict, Optional, Any
from dataclasses import dataclass
import structlog

logger = structlog.get_logger(__name__)


class ExponentialBackoff:
    """
    Deterministic exponential backoff.

    delay(attempt) = min(base * 2^attempt, max)

    No jitter. Delays are non-decreasing in `attempt` and capped at max.
    """

    def __init__(
        self,
        base_delay_s: float = 1.0,
        max_delay_s: float = 30.0,
    ):
        self.base_delay_s = base_delay_s
        self.max_delay_s = max_delay_s

    def delay(self, attempt: int) -> float:
        """Delay before reconnect attempt number `attempt` (0-based)"""
        if attempt < 0:
            attempt = 0
        # Avoid float overflow for absurd attempt numbers
        if attempt > 62:
            return self.max_delay_s
        return min(self.base_delay_s * (2 ** attempt), self.max_delay_s)

    def schedule(self, max_retries: int) -> list:
        """All delays for attempts 0..max_retries-1"""
        return [self.delay(i) for i in range(max_retries)]


class CancelToken:
    """
    Liveness flag owned by one subscription.

    Every async step checks `cancelled` before touching state, so a late
    callback that fires after teardown is a no-op.
    """

    __slots__ = ("_cancelled", "_cancelled_at", "name")

    def __init__(self, name: str = ""):
        self.name = name
        self._cancelled = False
        self._cancelled_at: float = 0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def alive(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        if not self._cancelled:
            self._cancelled = True
            self._cancelled_at = time.time()
            logger.debug("subscription_cancelled", subscription=self.name)


@dataclass
class ConnectionHealth:
    """Tracks health of a single data source"""
    name: str
    last_message_time: float = 0
    last_connect_time: float = 0
    message_count: int = 0
    error_count: int = 0
    reconnect_count: int = 0
    dropped_messages: int = 0
    is_connected: bool = False

    def record_message(self) -> None:
        self.last_message_time = time.time()
        self.message_count += 1

    def record_connect(self) -> None:
        self.last_connect_time = time.time()
        self.is_connected = True

    def record_disconnect(self) -> None:
        self.is_connected = False

    def record_reconnect(self) -> None:
        self.reconnect_count += 1

    def record_error(self) -> None:
        self.error_count += 1

    def record_dropped(self) -> None:
        self.dropped_messages += 1

    def silence_duration_s(self) -> float:
        """Time since last message"""
        if self.last_message_time == 0:
            return 0
        return time.time() - self.last_message_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "connected": self.is_connected,
            "message_count": self.message_count,
            "error_count": self.error_count,
            "reconnect_count": self.reconnect_count,
            "dropped_messages": self.dropped_messages,
            "silence_s": self.silence_duration_s(),
        }


@dataclass
class WebSocketConfig:
    """WebSocket settings passed through to websockets.connect"""
    ping_interval: Optional[float] = 20.0    # Keepalive ping
    ping_timeout: Optional[float] = 20.0
    close_timeout: float = 5.0
    max_size: int = 10_000_000               # 10MB max message
    compression: Optional[str] = None        # Disable for speed
    open_timeout: float = 15.0               # Handshake timeout

    def to_kwargs(self) -> Dict[str, Any]:
        """Convert to websockets.connect kwargs"""
        return {
            "ping_interval": self.ping_interval,
            "ping_timeout": self.ping_timeout,
            "close_timeout": self.close_timeout,
            "max_size": self.max_size,
            "compression": self.compression,
            "open_timeout": self.open_timeout,
        }
