"""
TRADING TESTS
Order mapping, signed Hyperliquid actions and the router boundary

Run:
    python -m pytest tests/test_trading.py -v
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

SIGNATURE = "0x" + "11" * 32 + "22" * 32 + "1b"

OK_RESTING = {"status": "ok", "response": {"type": "order", "data": {"statuses": [{"resting": {"oid": 42}}]}}}


class FakeSigner:
    address = "0x0000000000000000000000000000000000000001"

    def __init__(self):
        self.calls = []

    async def sign_typed_data(self, domain, types, value):
        self.calls.append((domain, types, value))
        return SIGNATURE


class FakeClient:
    def __init__(self, response=None, error=None):
        self.response = OK_RESTING if response is None else response
        self.error = error
        self.payloads = []
        self.meta_calls = 0
        self.closed = False

    async def meta(self):
        self.meta_calls += 1
        return {"universe": [{"name": "BTC", "szDecimals": 5}, {"name": "ETH", "szDecimals": 4}]}

    async def exchange_action(self, payload):
        if self.error is not None:
            raise self.error
        self.payloads.append(payload)
        return self.response

    async def close(self):
        self.closed = True


def make_request(**overrides):
    from perpfeed.trading.router import OrderSide, OrderType, UnifiedOrderRequest

    fields = dict(
        exchange="hyperliquid",
        asset="ETH",
        side=OrderSide.BUY,
        size=0.5,
        price=2000.0,
        type=OrderType.LIMIT,
        leverage=5,
    )
    fields.update(overrides)
    return UnifiedOrderRequest(**fields)


# ============================================================
# A. SIGNING HELPERS
# ============================================================

class TestSigning:
    """Wire helpers"""

    def test_split_signature(self):
        from perpfeed.trading.signing import split_signature

        parts = split_signature(SIGNATURE)

        assert parts["r"] == "0x" + "11" * 32
        assert parts["s"] == "0x" + "22" * 32
        assert parts["v"] == 27

    def test_split_signature_low_v(self):
        from perpfeed.trading.signing import split_signature

        assert split_signature("0x" + "00" * 64 + "01")["v"] == 28

    def test_split_signature_bad_length(self):
        from perpfeed.trading.signing import split_signature

        with pytest.raises(ValueError):
            split_signature("0x1234")

    def test_float_to_wire(self):
        from perpfeed.trading.signing import float_to_wire

        assert float_to_wire(1.5) == "1500000"
        assert float_to_wire(0.1 + 0.2) == "300000"

    def test_signer_protocol(self):
        from perpfeed.trading.signing import Signer

        assert isinstance(FakeSigner(), Signer)


# ============================================================
# B. ORDER MAPPING
# ============================================================

class TestOrderMapping:
    """Unified request -> Hyperliquid order"""

    def test_limit_is_gtc(self):
        from perpfeed.trading.router import to_hyperliquid_order

        order = to_hyperliquid_order(make_request())

        assert order.is_buy is True
        assert order.order_type == {"limit": {"tif": "Gtc"}}

    def test_market_is_ioc(self):
        from perpfeed.trading.router import OrderSide, OrderType, to_hyperliquid_order

        order = to_hyperliquid_order(make_request(type=OrderType.MARKET, side=OrderSide.SELL))

        assert order.is_buy is False
        assert order.order_type == {"limit": {"tif": "Ioc"}}

    def test_stop_is_trigger(self):
        from perpfeed.trading.router import OrderSide, OrderType, to_hyperliquid_order

        buy_stop = to_hyperliquid_order(make_request(type=OrderType.STOP))
        sell_stop = to_hyperliquid_order(make_request(type=OrderType.STOP, side=OrderSide.SELL))
        explicit = to_hyperliquid_order(make_request(type=OrderType.STOP, tpsl="tp"))

        assert buy_stop.order_type["trigger"]["tpsl"] == "sl"
        assert sell_stop.order_type["trigger"]["tpsl"] == "tp"
        assert explicit.order_type["trigger"]["tpsl"] == "tp"
        assert buy_stop.order_type["trigger"]["triggerPx"] == 2000.0

    def test_trigger_wire(self):
        from perpfeed.trading.hyperliquid import order_type_wire

        wire = order_type_wire({"trigger": {"triggerPx": 1.25, "isMarket": False, "tpsl": "sl"}})

        assert wire == {"trigger": {"isMarket": False, "triggerPx": "1250000", "tpsl": "sl"}}


class TestResponseParsing:
    """Hyperliquid /exchange responses"""

    def test_resting(self):
        from perpfeed.trading.router import parse_hyperliquid_response

        result = parse_hyperliquid_response(OK_RESTING)

        assert result.success is True
        assert result.order_id == "42"

    def test_filled(self):
        from perpfeed.trading.router import parse_hyperliquid_response

        result = parse_hyperliquid_response({"status": "ok", "response": {"data": {"statuses": [
            {"filled": {"oid": 7, "totalSz": "0.5", "avgPx": "2001"}},
        ]}}})

        assert result.order_id == "7"

    def test_status_error(self):
        from perpfeed.trading.router import parse_hyperliquid_response

        result = parse_hyperliquid_response({"status": "ok", "response": {"data": {"statuses": [
            {"error": "Insufficient margin to place order."},
        ]}}})

        assert result.success is False
        assert result.message == "Insufficient margin to place order."

    def test_empty_and_err(self):
        from perpfeed.trading.router import parse_hyperliquid_response

        assert parse_hyperliquid_response(None).message == "No response from server"
        assert parse_hyperliquid_response({"status": "err", "response": "bad"}).success is False


# ============================================================
# C. SIGNED ACTIONS
# ============================================================

class TestHyperliquidExchange:
    """Action building and signing"""

    @pytest.mark.asyncio
    async def test_place_order_payload(self):
        from perpfeed.trading.hyperliquid import HyperliquidExchange, HyperliquidOrder

        signer = FakeSigner()
        client = FakeClient()
        venue = HyperliquidExchange(signer, client=client)
        await venue.place_order(HyperliquidOrder(
            asset="ETH", is_buy=True, limit_px=2000.0, size=0.5,
            reduce_only=False, order_type={"limit": {"tif": "Gtc"}},
        ))

        payload = client.payloads[0]
        assert payload["action"]["type"] == "order"
        assert payload["action"]["grouping"] == "na"
        assert payload["action"]["orders"][0] == {
            "a": 1, "b": True, "p": "2000000000", "s": "500000", "r": False, "t": {"limit": {"tif": "Gtc"}},
        }
        assert payload["signature"]["v"] == 27
        assert payload["vaultAddress"] is None

        domain, types, value = signer.calls[0]
        assert domain["chainId"] == 1337
        assert "Agent" in types
        assert value["nonce"] == payload["nonce"]
        assert value["action"] is payload["action"]

    @pytest.mark.asyncio
    async def test_asset_index_cached(self):
        from perpfeed.trading.hyperliquid import HyperliquidExchange

        client = FakeClient()
        venue = HyperliquidExchange(FakeSigner(), client=client)

        assert await venue.asset_index("BTC") == 0
        assert await venue.asset_index("ETH") == 1
        assert client.meta_calls == 1

    @pytest.mark.asyncio
    async def test_unknown_asset(self):
        from perpfeed.trading.hyperliquid import HyperliquidExchange, UnknownAssetError

        venue = HyperliquidExchange(FakeSigner(), client=FakeClient())

        with pytest.raises(UnknownAssetError):
            await venue.asset_index("DOGE")

    @pytest.mark.asyncio
    async def test_cancel(self):
        from perpfeed.trading.hyperliquid import HyperliquidExchange

        client = FakeClient()
        venue = HyperliquidExchange(FakeSigner(), client=client)
        await venue.cancel_order("BTC", 99)

        assert client.payloads[0]["action"] == {"type": "cancel", "cancels": [{"a": 0, "o": 99}]}


# ============================================================
# D. ROUTER BOUNDARY
# ============================================================

class TestRouter:
    """route_order never raises"""

    @pytest.mark.asyncio
    async def test_hyperliquid_success(self):
        from perpfeed.trading.hyperliquid import HyperliquidExchange
        from perpfeed.trading.router import route_order

        signer = FakeSigner()
        venue = HyperliquidExchange(signer, client=FakeClient())
        result = await route_order(signer, make_request(), hyperliquid=venue)

        assert result.success is True
        assert result.order_id == "42"
        assert result.exchange == "hyperliquid"

    @pytest.mark.asyncio
    async def test_unsupported_exchange(self):
        from perpfeed.trading.router import route_order

        result = await route_order(FakeSigner(), make_request(exchange="gmx"))

        assert result.success is False
        assert result.message == "Order placement on gmx is not yet supported. Coming soon!"

    @pytest.mark.asyncio
    async def test_unknown_exchange(self):
        from perpfeed.trading.router import route_order

        result = await route_order(FakeSigner(), make_request(exchange="binance"))

        assert result.success is False
        assert result.message == "Unknown exchange: binance"

    @pytest.mark.asyncio
    async def test_transport_failure_becomes_result(self):
        from perpfeed.exchanges.http import ExchangeAPIError
        from perpfeed.trading.hyperliquid import HyperliquidExchange
        from perpfeed.trading.router import route_order

        signer = FakeSigner()
        venue = HyperliquidExchange(signer, client=FakeClient(error=ExchangeAPIError("hyperliquid", 502, "gateway")))
        result = await route_order(signer, make_request(), hyperliquid=venue)

        assert result.success is False
        assert "502" in result.message

    @pytest.mark.asyncio
    async def test_unknown_asset_becomes_result(self):
        from perpfeed.trading.hyperliquid import HyperliquidExchange
        from perpfeed.trading.router import route_order

        signer = FakeSigner()
        venue = HyperliquidExchange(signer, client=FakeClient())
        result = await route_order(signer, make_request(asset="DOGE"), hyperliquid=venue)

        assert result.success is False
        assert result.message == "Asset DOGE not found"

    @pytest.mark.asyncio
    async def test_close_position_flips_side(self):
        from perpfeed.core.models import PositionSide
        from perpfeed.trading.hyperliquid import HyperliquidExchange
        from perpfeed.trading.router import close_position

        signer = FakeSigner()
        client = FakeClient()
        venue = HyperliquidExchange(signer, client=client)
        result = await close_position(signer, "hyperliquid", "BTC", PositionSide.LONG, 0.25, 59000.0, hyperliquid=venue)

        order = client.payloads[0]["action"]["orders"][0]
        assert result.success is True
        assert order["b"] is False
        assert order["r"] is True
        assert order["t"] == {"limit": {"tif": "Ioc"}}

    @pytest.mark.asyncio
    async def test_cancel_unsupported(self):
        from perpfeed.trading.router import cancel_exchange_order

        result = await cancel_exchange_order(FakeSigner(), "dydx", "BTC", 1)

        assert result.success is False
        assert "dydx" in result.message
