"""
CANDLE SERIES
Bounded OHLCV series for one (market, interval) subscription

Streaming path (update):
    empty                      -> append
    same timestamp as last     -> replace last
    newer than last            -> append
    older than last            -> batch merge

Batch path (merge): deduplicated ascending union of existing and incoming.
The series is capped after every operation, evicting the oldest candles.
"""
from typing import Dict, Iterable, List, Optional

import structlog

from perpfeed.core.models import CandleData

logger = structlog.get_logger(__name__)


class CandleSeries:
    """
    Timestamp is the only identity key.

    `tolerance_ms` enables proximity matching for sources whose live candle
    timestamp can drift inside the bucket: an incoming candle strictly
    within `tolerance_ms` of the last one replaces it.
    """

    def __init__(self, max_length: int = 100, tolerance_ms: int = 0):
        if max_length <= 0:
            raise ValueError("max_length must be positive")
        self.max_length = max_length
        self.tolerance_ms = tolerance_ms
        self._candles: List[CandleData] = []

    def __len__(self) -> int:
        return len(self._candles)

    @property
    def candles(self) -> List[CandleData]:
        return list(self._candles)

    @property
    def last(self) -> Optional[CandleData]:
        return self._candles[-1] if self._candles else None

    def reset(self, candles: Iterable[CandleData] = ()) -> None:
        self._candles = []
        self.merge(candles)

    def update(self, candle: CandleData) -> None:
        """Apply one streaming candle"""
        if not self._candles:
            self._candles.append(candle)
            return

        last = self._candles[-1]
        if candle.timestamp == last.timestamp:
            self._candles[-1] = candle
        elif self.tolerance_ms > 0 and abs(candle.timestamp - last.timestamp) < self.tolerance_ms:
            self._candles[-1] = candle
        elif candle.timestamp > last.timestamp:
            self._candles.append(candle)
            self._cap()
        else:
            logger.debug(
                "candle_out_of_order",
                timestamp=candle.timestamp,
                last_timestamp=last.timestamp,
            )
            self.merge([candle])

    def merge(self, candles: Iterable[CandleData], keep_existing: bool = False) -> None:
        """
        Merge a batch in any order.

        Incoming values win on a timestamp collision unless `keep_existing`
        is set, in which case candles already in the series are kept.
        """
        by_ts: Dict[int, CandleData] = {c.timestamp: c for c in self._candles}
        for candle in candles:
            if keep_existing and candle.timestamp in by_ts:
                continue
            by_ts[candle.timestamp] = candle
        self._candles = [by_ts[ts] for ts in sorted(by_ts)]
        self._cap()

    def _cap(self) -> None:
        overflow = len(self._candles) - self.max_length
        if overflow > 0:
            del self._candles[:overflow]
