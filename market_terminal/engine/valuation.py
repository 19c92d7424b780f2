"""
Position valuation against the local order book.

This is an estimator, not a matching engine: it simulates closing the whole
position by walking the side of the book the owner would trade into (a long
sells into bids, a short buys back from asks) and prices the result.
If the book runs out before the position is covered, only the liquidity
actually walked is counted and the leftover is reported as `unfilled`.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..types import Position, PositionValuation, PriceLevel

# Remaining size below this counts as fully unwound
UNWIND_EPSILON = 1e-5


def value_position(position: Position, levels: Iterable[PriceLevel]) -> PositionValuation:
    """
    Walk `levels` in priority order and estimate exit value and P&L.

    Args:
        position: Open position (signed size)
        levels: Sorted view of the unwind side, same sign as the position

    Returns PositionValuation. Zero-size positions value to all zeros.
    """
    remaining = position.size
    value = 0.0

    for level in levels:
        if abs(remaining) < UNWIND_EPSILON:
            break
        if abs(level.size) < abs(remaining):
            delta = level.size
        else:
            delta = remaining
        value += delta * level.price
        remaining -= delta

    base_value = position.size * position.entry_price
    pnl = value - base_value

    avg_price = value / position.size if position.size else 0.0
    pnl_pct = pnl / abs(base_value) * 100 if base_value else 0.0
    unfilled = remaining if abs(remaining) >= UNWIND_EPSILON else 0.0

    return PositionValuation(
        exit_value=value,
        average_exit_price=avg_price,
        unrealized_pnl=pnl,
        pnl_percent=pnl_pct,
        unfilled=unfilled,
    )
