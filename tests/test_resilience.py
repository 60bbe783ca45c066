"""
RESILIENCE TESTS
Backoff schedule, cancel tokens, connection health

Run:
    python -m pytest tests/test_resilience.py -v
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class TestExponentialBackoff:
    """Test deterministic reconnect delays"""

    def test_first_delay_is_base(self):
        from perpfeed.core.resilience import ExponentialBackoff

        assert ExponentialBackoff(1.0, 30.0).delay(0) == 1.0

    def test_doubles_then_caps(self):
        from perpfeed.core.resilience import ExponentialBackoff

        backoff = ExponentialBackoff(base_delay_s=1.0, max_delay_s=30.0)

        assert backoff.schedule(7) == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    def test_non_decreasing_and_bounded(self):
        from perpfeed.core.resilience import ExponentialBackoff

        backoff = ExponentialBackoff(base_delay_s=0.25, max_delay_s=10.0)
        delays = [backoff.delay(n) for n in range(200)]

        assert delays == sorted(delays)
        assert max(delays) == 10.0

    def test_negative_attempt_clamped(self):
        from perpfeed.core.resilience import ExponentialBackoff

        assert ExponentialBackoff(2.0, 30.0).delay(-3) == 2.0


class TestCancelToken:
    """Test liveness flag"""

    def test_cancel_is_sticky(self):
        from perpfeed.core.resilience import CancelToken

        token = CancelToken("hyperliquid:BTC:15m")
        assert token.alive

        token.cancel()
        token.cancel()

        assert token.cancelled
        assert not token.alive


class TestConnectionHealth:
    """Test health counters"""

    def test_counters(self):
        from perpfeed.core.resilience import ConnectionHealth

        health = ConnectionHealth(name="ws")
        health.record_connect()
        health.record_message()
        health.record_dropped()
        health.record_reconnect()
        health.record_disconnect()

        stats = health.to_dict()
        assert stats["message_count"] == 1
        assert stats["dropped_messages"] == 1
        assert stats["reconnect_count"] == 1
        assert stats["connected"] is False

    def test_websocket_kwargs(self):
        from perpfeed.core.resilience import WebSocketConfig

        kwargs = WebSocketConfig(ping_interval=5.0).to_kwargs()

        assert kwargs["ping_interval"] == 5.0
        assert kwargs["compression"] is None
        assert "open_timeout" in kwargs
