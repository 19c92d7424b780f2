"""
Trade flow history for the bar-chart panel.

record_trade() is called for every trade; advance_if_due() once per loop iteration.

Strategy:
1. Fixed-width window of HistoryRecord, one per display column
2. The newest record accumulates until the bucket period elapses,
   then the oldest is evicted and an empty bucket is appended
3. Bar normalisation is vectorised with numpy over the whole window
"""

from __future__ import annotations

import time
from collections import deque
from typing import Callable

import numpy as np

from ..types import HistoryBar, HistoryRecord

DEFAULT_PERIOD_SEC = 10.0


class HistoryBuffer:
    """
    Sliding window of time-bucketed buy/sell volume.

    Thread-safety: NOT thread-safe. Designed for single-threaded async use.
    """

    __slots__ = ('width', 'period_sec', 'height', '_records', '_clock')

    def __init__(
        self,
        width: int,
        period_sec: float = DEFAULT_PERIOD_SEC,
        height: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if width <= 0:
            raise ValueError(f"history width must be positive, got {width}")
        self.width = width
        self.period_sec = period_sec
        self.height = height
        self._clock = clock

        # Oldest first; only the last record is ever written to
        self._records: deque[HistoryRecord] = deque(
            (HistoryRecord() for _ in range(width)), maxlen=width
        )
        self._records[-1].bucket_start = clock()

    @property
    def current(self) -> HistoryRecord:
        """The bucket currently accumulating trades."""
        return self._records[-1]

    @property
    def records(self) -> list[HistoryRecord]:
        return list(self._records)

    @property
    def baseline(self) -> int:
        """Row the bars grow away from (half the display height)."""
        return self.height // 2

    def record_trade(self, amount: float) -> None:
        """Add a signed trade amount to the current bucket."""
        if amount > 0:
            self.current.buy_volume += amount
        else:
            self.current.sell_volume += amount

    def advance_if_due(self, period: float | None = None, now: float | None = None) -> bool:
        """
        Start a new bucket if the current one is older than `period` seconds.

        Returns True if the window was shifted.
        """
        if period is None:
            period = self.period_sec
        if now is None:
            now = self._clock()

        if now - self.current.bucket_start <= period:
            return False

        # maxlen evicts the oldest record on append
        self._records.append(HistoryRecord(bucket_start=now))
        return True

    def peak(self) -> float:
        """Largest single-direction volume over the window."""
        buys = np.fromiter((r.buy_volume for r in self._records), dtype=np.float64, count=self.width)
        sells = np.fromiter((r.sell_volume for r in self._records), dtype=np.float64, count=self.width)
        return float(np.max(np.maximum(buys, -sells)))

    def render_bars(self) -> list[HistoryBar]:
        """
        Bar lengths scaled so the peak bucket fills half the display height.

        Buy bars are positive (drawn upward), sell bars negative (drawn downward).
        An empty window renders as all-zero bars.
        """
        buys = np.fromiter((r.buy_volume for r in self._records), dtype=np.float64, count=self.width)
        sells = np.fromiter((r.sell_volume for r in self._records), dtype=np.float64, count=self.width)

        peak = float(np.max(np.maximum(buys, -sells)))
        baseline = self.baseline
        if peak <= 0 or baseline <= 0:
            return [HistoryBar(0.0, 0.0) for _ in range(self.width)]

        scale = peak / baseline
        return [HistoryBar(float(b), float(s)) for b, s in zip(buys / scale, sells / scale)]

    def clear(self) -> None:
        """Reset all buckets, keeping the window width."""
        now = self._clock()
        self._records = deque((HistoryRecord() for _ in range(self.width)), maxlen=self.width)
        self._records[-1].bucket_start = now
