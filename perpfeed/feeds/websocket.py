"""
RECONNECTING WEBSOCKET
One live socket per subscription with bounded exponential-backoff retries

States:
    loading  every connect attempt (first, or "Reconnecting (n/max)…")
    open     connected; retry counter reset, subscribe messages sent
    error    transport error, or retries exhausted (terminal until reconnect())

A transport error only sets `error`; the close that follows decides whether
to retry. A clean close goes straight to the retry decision.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional

import structlog
import websockets
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from config import settings
from perpfeed.core.models import ConnectionState
from perpfeed.core.resilience import CancelToken, ConnectionHealth, ExponentialBackoff, WebSocketConfig

logger = structlog.get_logger(__name__)

CONNECTION_ERROR_MESSAGE = "WebSocket connection error."
CONNECTION_LOST_MESSAGE = "Connection lost. Tap to reconnect."

TRANSPORT_ERRORS = (WebSocketException, OSError, asyncio.TimeoutError)

ConnectFn = Callable[[str], Awaitable[Any]]
StateCallback = Callable[[ConnectionState, Optional[str]], None]


def reconnecting_message(attempt: int, max_retries: int) -> str:
    return f"Reconnecting ({attempt}/{max_retries})…"


async def default_connect(url: str) -> Any:
    return await websockets.connect(url, **WebSocketConfig().to_kwargs())


class ReconnectingWebSocket:
    """
    Drives one socket through connect / listen / backoff.

    `on_open(ws)` is awaited after every successful connect and should send
    the subscribe messages. `on_message(raw)` is called for every frame in
    receipt order. `connect(url)` returns an object supporting `send`,
    `close` and async iteration; the default uses `websockets.connect`.
    """

    def __init__(
        self,
        url: str,
        on_open: Callable[[Any], Awaitable[None]],
        on_message: Callable[[Any], None],
        max_retries: Optional[int] = None,
        base_delay_s: Optional[float] = None,
        max_delay_s: Optional[float] = None,
        connect: Optional[ConnectFn] = None,
        on_state_change: Optional[StateCallback] = None,
        token: Optional[CancelToken] = None,
        name: str = "ws",
    ):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.max_retries = settings.WS_MAX_RETRIES if max_retries is None else max_retries
        self.backoff = ExponentialBackoff(
            base_delay_s=settings.WS_BASE_DELAY_S if base_delay_s is None else base_delay_s,
            max_delay_s=settings.WS_MAX_DELAY_S if max_delay_s is None else max_delay_s,
        )
        self.on_state_change = on_state_change
        self.token = token or CancelToken(name)
        self.name = name
        self.health = ConnectionHealth(name=name)

        self._connect = connect or default_connect
        self._ws: Any = None
        self._task: Optional[asyncio.Task] = None
        self.retry_count = 0
        self.connect_attempts = 0
        self.state = ConnectionState.LOADING
        self.error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_state(self, state: ConnectionState, error: Optional[str] = None) -> None:
        if self.token.cancelled:
            return
        self.state = state
        self.error = error
        if self.on_state_change is not None:
            self.on_state_change(state, error)

    def start(self) -> asyncio.Task:
        """Launch the connection loop in the background"""
        if not self.running:
            self._task = asyncio.create_task(self.run(), name=f"{self.name}-run")
        return self._task

    async def run(self) -> None:
        """Connect, listen and retry until cancelled or retries run out"""
        self._set_state(ConnectionState.LOADING)
        while not self.token.cancelled:
            await self._connect_and_listen()
            if self.token.cancelled:
                return

            if self.retry_count >= self.max_retries:
                logger.warning("ws_retries_exhausted", name=self.name, retries=self.retry_count)
                self._set_state(ConnectionState.ERROR, CONNECTION_LOST_MESSAGE)
                return

            delay = self.backoff.delay(self.retry_count)
            self.retry_count += 1
            self.health.record_reconnect()
            self._set_state(
                ConnectionState.LOADING,
                reconnecting_message(self.retry_count, self.max_retries),
            )
            logger.info(
                "ws_reconnect_scheduled",
                name=self.name,
                attempt=self.retry_count,
                max_retries=self.max_retries,
                delay_s=delay,
            )
            await asyncio.sleep(delay)

    async def _connect_and_listen(self) -> None:
        """One connection lifetime; returns when the socket is closed"""
        self.connect_attempts += 1
        try:
            ws = await self._connect(self.url)
        except TRANSPORT_ERRORS as e:
            self.health.record_error()
            logger.warning("ws_connect_failed", name=self.name, error=str(e)[:100])
            self._set_state(ConnectionState.ERROR, CONNECTION_ERROR_MESSAGE)
            return

        self._ws = ws
        try:
            if self.token.cancelled:
                return
            self.retry_count = 0
            self.health.record_connect()
            self._set_state(ConnectionState.OPEN)
            logger.info("ws_connected", name=self.name, url=self.url)
            await self.on_open(ws)

            async for raw in ws:
                if self.token.cancelled:
                    break
                self.health.record_message()
                self.on_message(raw)
        except ConnectionClosedOK:
            logger.info("ws_closed", name=self.name)
        except TRANSPORT_ERRORS as e:
            self.health.record_error()
            logger.warning("ws_disconnected", name=self.name, error=str(e)[:100])
            self._set_state(ConnectionState.ERROR, CONNECTION_ERROR_MESSAGE)
        finally:
            self.health.record_disconnect()
            self._ws = None
            await self._close_socket(ws)

    async def _close_socket(self, ws: Any) -> None:
        try:
            await ws.close()
        except TRANSPORT_ERRORS as e:
            logger.debug("ws_close_failed", name=self.name, error=str(e)[:100])

    async def _stop_task(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        if self._ws is not None:
            ws = self._ws
            self._ws = None
            await self._close_socket(ws)

    async def reconnect(self) -> None:
        """Reset retries and connect again immediately, whatever the state"""
        if self.token.cancelled:
            return
        logger.info("ws_manual_reconnect", name=self.name)
        await self._stop_task()
        self.retry_count = 0
        self.start()

    async def close(self) -> None:
        """Cancel the token first so no late callback can touch state"""
        self.token.cancel()
        await self._stop_task()
        logger.info("ws_stopped", name=self.name)
