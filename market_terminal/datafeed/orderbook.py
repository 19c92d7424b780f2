"""
Local order book for a single trading pair.

apply_delta() is called for every book message on the feed (human-visible rate).

Strategy:
1. dict[float, PriceLevel] per side for O(1) upsert/remove by price
2. Full re-sort of the touched side after every delta (book depth is tens of levels)
3. Cumulative depth via numpy cumsum over the truncated sorted view

The sorted arrays are always re-derived from the dicts, never patched.
"""

from __future__ import annotations

import numpy as np

from ..types import BookDeltaEvent, DepthLevel, PriceLevel, Side


class OrderBook:
    """
    Local order book built from price-level deltas.

    Thread-safety: NOT thread-safe. Designed for single-threaded async use.
    """

    __slots__ = (
        'symbol', 'depth', 'bids', 'asks',
        '_bids_sorted', '_asks_sorted'
    )

    def __init__(self, symbol: str, depth: int = 25) -> None:
        self.symbol = symbol
        self.depth = depth

        # Core data: price -> level
        self.bids: dict[float, PriceLevel] = {}
        self.asks: dict[float, PriceLevel] = {}

        self._bids_sorted: list[PriceLevel] = []  # Descending (best bid first)
        self._asks_sorted: list[PriceLevel] = []  # Ascending (best ask first)

    def _levels(self, side: Side) -> dict[float, PriceLevel]:
        return self.bids if side is Side.BID else self.asks

    def apply_delta(self, side: Side, price: float, size: float, count: int) -> None:
        """
        Apply a single price-level delta.

        count == 0 removes the level (no-op if the price is unknown),
        anything else replaces it. No sequence checks: last write wins.
        """
        levels = self._levels(side)
        if count == 0:
            levels.pop(price, None)
        else:
            levels[price] = PriceLevel(price, size, count)

        self._resort(side)

    def apply_event(self, event: BookDeltaEvent) -> Side:
        """Apply a wire book delta. The sign of the amount picks the side."""
        side = Side.from_amount(event.amount)
        self.apply_delta(side, event.price, event.amount, event.count)
        return side

    def _resort(self, side: Side) -> None:
        """Rebuild the sorted array for one side from its dict."""
        if side is Side.BID:
            self._bids_sorted = sorted(self.bids.values(), key=lambda l: l.price, reverse=True)
        else:
            self._asks_sorted = sorted(self.asks.values(), key=lambda l: l.price)

    def sorted_view(self, side: Side) -> list[PriceLevel]:
        """All resting levels on one side, best price first."""
        if side is Side.BID:
            return list(self._bids_sorted)
        return list(self._asks_sorted)

    def cumulative_depth(self, side: Side, limit: int | None = None) -> list[DepthLevel]:
        """
        Top `limit` levels with a running sum of absolute size.

        Used for the "total volume up to this level" column.
        """
        if limit is None:
            limit = self.depth
        levels = (self._bids_sorted if side is Side.BID else self._asks_sorted)[:max(limit, 0)]
        if not levels:
            return []

        sizes = np.abs(np.fromiter((l.size for l in levels), dtype=np.float64, count=len(levels)))
        totals = np.cumsum(sizes)
        return [DepthLevel(level, float(total)) for level, total in zip(levels, totals)]

    @staticmethod
    def unwind_side(size: float) -> Side:
        """Side a position of this signed size would be closed against."""
        return Side.ASK if size < 0 else Side.BID

    @property
    def best_bid(self) -> float:
        """Best bid price. Returns 0.0 if no bids."""
        return self._bids_sorted[0].price if self._bids_sorted else 0.0

    @property
    def best_ask(self) -> float:
        """Best ask price. Returns 0.0 if no asks."""
        return self._asks_sorted[0].price if self._asks_sorted else 0.0

    @property
    def mid_price(self) -> float:
        """Mid price. Returns 0.0 if no book."""
        bb, ba = self.best_bid, self.best_ask
        if bb > 0 and ba > 0:
            return (bb + ba) / 2.0
        return bb or ba

    @property
    def spread(self) -> float:
        bb, ba = self.best_bid, self.best_ask
        if bb > 0 and ba > 0:
            return ba - bb
        return 0.0

    def clear(self) -> None:
        self.bids.clear()
        self.asks.clear()
        self._bids_sorted = []
        self._asks_sorted = []
