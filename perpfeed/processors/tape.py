"""
Trade tape: bounded, newest-first, deduplicated by trade id
"""
from typing import Iterable, List

from perpfeed.core.models import Trade


class TradeTape:

    def __init__(self, max_trades: int = 12):
        if max_trades <= 0:
            raise ValueError("max_trades must be positive")
        self.max_trades = max_trades
        self._trades: List[Trade] = []

    def __len__(self) -> int:
        return len(self._trades)

    @property
    def trades(self) -> List[Trade]:
        """Same list object until the tape changes; treat as read-only"""
        return self._trades

    def merge(self, batch: Iterable[Trade]) -> bool:
        """
        Prepend unseen trades, keeping the batch's relative order.
        Returns False and leaves the tape untouched when nothing is new.
        """
        seen = {t.id for t in self._trades}
        fresh = []
        for trade in batch:
            if trade.id in seen:
                continue
            seen.add(trade.id)
            fresh.append(trade)

        if not fresh:
            return False
        self._trades = (fresh + self._trades)[:self.max_trades]
        return True

    def reset(self) -> None:
        self._trades = []
