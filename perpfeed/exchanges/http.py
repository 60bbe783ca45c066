"""
Shared aiohttp plumbing for exchange REST endpoints
"""
from typing import Any, Dict, Optional

import aiohttp
import orjson
import structlog
from aiohttp import ClientTimeout

from config import settings

logger = structlog.get_logger(__name__)


class ExchangeAPIError(RuntimeError):
    """Non-2xx response from an exchange REST endpoint"""

    def __init__(self, exchange: str, status: int, message: str = ""):
        self.exchange = exchange
        self.status = status
        self.message = message
        super().__init__(f"{exchange} API error: {status} {message}".rstrip())


def default_timeout() -> ClientTimeout:
    return ClientTimeout(
        total=settings.REQUEST_TIMEOUT_S,
        connect=settings.CONNECT_TIMEOUT_S,
    )


def create_session() -> aiohttp.ClientSession:
    return aiohttp.ClientSession(
        timeout=default_timeout(),
        json_serialize=lambda obj: orjson.dumps(obj).decode(),
    )


async def _decode(resp: aiohttp.ClientResponse, exchange: str) -> Any:
    body = await resp.read()
    if resp.status < 200 or resp.status >= 300:
        text = body[:200].decode(errors="replace")
        logger.warning("rest_request_failed", exchange=exchange, status=resp.status, url=str(resp.url))
        raise ExchangeAPIError(exchange, resp.status, text)
    if not body:
        return None
    try:
        return orjson.loads(body)
    except orjson.JSONDecodeError:
        logger.warning("rest_response_undecodable", exchange=exchange, status=resp.status, url=str(resp.url))
        raise ExchangeAPIError(exchange, resp.status, "invalid JSON")


async def get_json(
    session: aiohttp.ClientSession,
    url: str,
    exchange: str,
    params: Optional[Dict[str, Any]] = None,
) -> Any:
    async with session.get(url, params=params) as resp:
        return await _decode(resp, exchange)


async def post_json(
    session: aiohttp.ClientSession,
    url: str,
    exchange: str,
    payload: Dict[str, Any],
) -> Any:
    async with session.post(
        url,
        data=orjson.dumps(payload),
        headers={"Content-Type": "application/json"},
    ) as resp:
        return await _decode(resp, exchange)


class RestClient:
    """
    Base for per-exchange clients.

    Uses the session it is given, or lazily opens its own and closes it in
    `close()`.
    """

    exchange = ""

    def __init__(self, base_url: str, session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = create_session()
            self._owns_session = True
        return self._session

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await get_json(self.session, f"{self.base_url}{path}", self.exchange, params)

    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        return await post_json(self.session, f"{self.base_url}{path}", self.exchange, payload)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
