"""
Dashboard driver: owns all market state and draws it onto panel surfaces.

One event is processed per step, then the history window is advanced if
its period elapsed and every surface is committed. All state lives in an
explicit DashboardState so each piece can be exercised in isolation.

Layout (top to bottom):
- Ticker line
- Bid book | Ask book | Last trades
- Trade flow history chart (optional, history_height > 0)
- Positions table
- Orders table
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable

from .config import DashboardConfig
from .datafeed.orderbook import OrderBook
from .engine.history import HistoryBuffer
from .engine.valuation import value_position
from .types import (
    BookDeltaEvent,
    HistoryBar,
    MarketEvent,
    Order,
    OrderUpdate,
    Position,
    PositionUpdate,
    Side,
    TickerEvent,
    TradeEvent,
)
from .ui.surface import Attr, Surface
from .ui.table import Column, Table

logger = logging.getLogger(__name__)

# Panel content widths (inside the borders)
SCREEN_WIDTH = 87
BOOK_WIDTH = 29
TRADES_WIDTH = 23

# Minimum seconds between full history chart redraws
HISTORY_REDRAW_SEC = 1.0

# Positions table columns that carry the P&L highlight
PNL_COLUMNS = (3, 4, 5)


def position_columns() -> list[Column]:
    return [
        Column("Status", -10, "s"),
        Column("Amount", -6, ".2f", Attr.BOLD),
        Column("Base price", -10, ".2f", Attr.BOLD),
        Column("Curr.price", -8, ".2f", Attr.BOLD),
        Column("P/L", -9, ".2f", Attr.BOLD),
        Column("P/L %", -6, ".2f", Attr.BOLD),
    ]


def order_columns() -> list[Column]:
    return [
        Column("Type", -14, "s"),
        Column("Orig.Amount", -6, ".2f", Attr.BOLD),
        Column("Amount", -6, ".2f", Attr.BOLD),
        Column("Price", -8, ".2f", Attr.BOLD),
        Column("Avg.Price", -8, ".2f", Attr.BOLD),
    ]


def pnl_attr(pnl: float) -> Attr:
    """Highlight for a P&L cell: green when non-negative, red otherwise."""
    return Attr.BOLD | (Attr.RED if pnl < 0 else Attr.GREEN)


@dataclass
class DashboardState:
    """All mutable market state, owned by the event-processing context."""
    book: OrderBook
    history: HistoryBuffer
    trades: deque[TradeEvent]
    positions: dict[str, Position] = field(default_factory=dict)
    orders: dict[int, Order] = field(default_factory=dict)
    ticker: TickerEvent | None = None

    @classmethod
    def from_config(cls, config: DashboardConfig, clock: Callable[[], float] = time.time) -> DashboardState:
        return cls(
            book=OrderBook(config.pair, depth=config.order_book_len),
            history=HistoryBuffer(
                width=config.history_width,
                period_sec=config.history_record_period,
                height=config.history_height,
                clock=clock,
            ),
            trades=deque(maxlen=config.order_book_len),
        )


class DashboardPanels:
    """One surface per panel, plus the two tables."""

    def __init__(self, config: DashboardConfig) -> None:
        width = max(SCREEN_WIDTH, config.history_width)
        depth = config.order_book_len

        self.ticker = Surface(1, width)
        self.book_bid = Surface(depth, BOOK_WIDTH)
        self.book_ask = Surface(depth, BOOK_WIDTH)
        self.trades = Surface(depth, TRADES_WIDTH)

        # Row 0 is the info line, the chart sits below it
        self.history = Surface(config.history_height + 1, config.history_width) if config.history_height else None

        self.positions = Table(
            Surface(config.positions_len + 1, width), position_columns(), max_rows=config.positions_len
        )
        self.orders = Table(
            Surface(config.orders_len + 1, width), order_columns(), max_rows=config.orders_len
        )

    def surfaces(self) -> list[Surface]:
        result = [self.ticker, self.book_bid, self.book_ask, self.trades]
        if self.history is not None:
            result.append(self.history)
        result.extend([self.positions.surface, self.orders.surface])
        return result

    def book(self, side: Side) -> Surface:
        return self.book_bid if side is Side.BID else self.book_ask


class Dashboard:
    """
    Event-driven dashboard.

    Thread-safety: NOT thread-safe. Designed for single-threaded async use.

    Usage:
        dashboard = Dashboard(config)
        dashboard.step(event)   # process, advance history, commit
    """

    def __init__(self, config: DashboardConfig, clock: Callable[[], float] = time.time) -> None:
        self.config = config
        self._clock = clock
        self.state = DashboardState.from_config(config, clock)
        self.panels = DashboardPanels(config)
        self._history_drawn_at: float | None = None

    # =========================================================
    # Event loop entry points
    # =========================================================

    def step(self, event: MarketEvent | None = None) -> None:
        """Process at most one event, then advance history and commit."""
        if event is not None:
            self.process_event(event)
        self.tick()
        self.commit()

    def process_event(self, event: MarketEvent) -> None:
        if isinstance(event, TickerEvent):
            self.on_ticker(event)
        elif isinstance(event, TradeEvent):
            self.on_trade(event)
        elif isinstance(event, BookDeltaEvent):
            self.on_book_delta(event)
        elif isinstance(event, PositionUpdate):
            self.on_position(event)
        elif isinstance(event, OrderUpdate):
            self.on_order(event)
        else:
            raise TypeError(f"unsupported event type: {type(event).__name__}")

    def tick(self, now: float | None = None) -> None:
        """Periodic time check: roll the history window when its bucket expires."""
        if now is None:
            now = self._clock()
        if self.state.history.advance_if_due(now=now):
            self._draw_history(now, force=True)

    def commit(self) -> None:
        for surface in self.panels.surfaces():
            surface.commit()

    # =========================================================
    # Handlers
    # =========================================================

    def on_ticker(self, event: TickerEvent) -> None:
        self.state.ticker = event
        surface = self.panels.ticker
        surface.clear_region()
        surface.write_cell(0, 0, f"Last: {event.last_price:<8.2f}", Attr.BLUE | Attr.BOLD)
        surface.write_cell(16, 0, f"Bid: {event.bid_size:6.2f} @ {event.bid:<8.2f}", Attr.RED)
        surface.write_cell(39, 0, f"Ask: {event.ask_size:6.2f} @ {event.ask:<8.2f}", Attr.GREEN)

    def on_trade(self, event: TradeEvent) -> None:
        self.state.trades.append(event)
        self.state.history.record_trade(event.amount)
        self._draw_trades()
        self._draw_history(self._clock())

    def on_book_delta(self, event: BookDeltaEvent) -> None:
        side = self.state.book.apply_event(event)
        self._draw_book(side)
        self._update_positions()

    def on_position(self, event: PositionUpdate) -> None:
        positions = self.state.positions
        table = self.panels.positions

        if event.closed:
            if positions.pop(event.symbol, None) is not None:
                logger.info("Position closed: %s", event.symbol)
            if event.symbol in table:
                table.delete_row(event.symbol)
            return

        if event.symbol not in positions:
            logger.info("Position opened: %s %.4f @ %.2f", event.symbol, event.amount, event.price)
        positions[event.symbol] = Position(
            symbol=event.symbol,
            status=event.status,
            size=event.amount,
            entry_price=event.price,
        )
        self._update_positions()

    def on_order(self, event: OrderUpdate) -> None:
        orders = self.state.orders
        table = self.panels.orders

        if event.closed:
            if orders.pop(event.order_id, None) is not None:
                logger.info("Order closed: %d (%s)", event.order_id, event.status)
            if event.order_id in table:
                table.delete_row(event.order_id)
            return

        if event.order_id not in orders:
            logger.info("Order opened: %d %s %.4f @ %.2f",
                        event.order_id, event.type, event.orig_amount, event.price)
        order = Order(
            id=event.order_id,
            symbol=event.symbol,
            type=event.type,
            orig_size=event.orig_amount,
            remaining_size=event.amount,
            price=event.price,
            avg_price=event.avg_price,
            status=event.status,
        )
        orders[order.id] = order
        table.upsert_row(order.id, order.type, order.orig_size, order.remaining_size,
                         order.price, order.avg_price)

    # =========================================================
    # Drawing
    # =========================================================

    def _update_positions(self) -> None:
        """Revalue every open position against the current book."""
        table = self.panels.positions
        book = self.state.book

        for position in self.state.positions.values():
            levels = book.sorted_view(book.unwind_side(position.size))
            valuation = value_position(position, levels)

            table.upsert_row(
                position.symbol,
                position.status,
                position.size,
                position.entry_price,
                valuation.average_exit_price,
                valuation.unrealized_pnl,
                valuation.pnl_percent,
            )
            attr = pnl_attr(valuation.unrealized_pnl)
            for column in PNL_COLUMNS:
                table.set_cell_attribute(position.symbol, column, attr)

    def _draw_book(self, side: Side) -> None:
        surface = self.panels.book(side)
        highlight = self.config.highlight_order_book_over
        surface.clear_region()

        for n, (level, cumulative) in enumerate(self.state.book.cumulative_depth(side)):
            amount = abs(level.size)
            attr = Attr.BOLD if amount > highlight else Attr.NONE
            if side is Side.BID:
                line = f"{level.count:2d} {amount:6.2f} @ {level.price:<6.2f} {cumulative:8.2f}"
            else:
                line = f"{cumulative:<8.2f} {level.price:6.2f} @ {amount:<6.2f} {level.count:<2d}"
            surface.write_cell(0, n, line, attr)

    def _draw_trades(self) -> None:
        surface = self.panels.trades
        trades = self.state.trades
        highlight = self.config.highlight_trades_over
        surface.clear_region()

        # Newest trade on the bottom row
        offset = surface.height - len(trades)
        for n, trade in enumerate(trades):
            attr = Attr.DIM
            if abs(trade.amount) > highlight:
                attr |= Attr.BOLD
            if trade.amount < 0:
                direction = "SELL"
                attr |= Attr.RED
            else:
                direction = "BUY"
                attr |= Attr.GREEN
            surface.write_cell(0, offset + n, f"{direction:<4s} {abs(trade.amount):6.2f} @ {trade.price:<8.2f}", attr)

    def _draw_history(self, now: float, force: bool = False) -> None:
        surface = self.panels.history
        if surface is None:
            return

        history = self.state.history
        current = history.current
        info = (f"Last {self.config.history_record_period:g} sec: "
                f"buy {current.buy_volume:<6.2f}, sell {current.sell_volume:<6.2f}")

        throttled = (
            self._history_drawn_at is not None
            and now - self._history_drawn_at < HISTORY_REDRAW_SEC
        )
        if throttled and not force:
            surface.clear_region(0, 1)
            surface.write_cell(0, 0, info)
            return

        surface.clear_region()
        baseline = history.baseline
        for n, bar in enumerate(history.render_bars()):
            self._draw_bar(surface, n, baseline, bar)
        surface.write_cell(0, 0, info)
        self._history_drawn_at = now

    @staticmethod
    def _draw_bar(surface: Surface, col: int, baseline: int, bar: HistoryBar) -> None:
        """Buy bar grows up from baseline - 1, sell bar down from baseline."""
        for origin, height, attr in ((baseline - 1, bar.buy, Attr.GREEN), (baseline, bar.sell, Attr.RED)):
            if height == 0:
                continue
            whole = int(height)
            step = 1 if height > 0 else -1
            # +1: row 0 of the surface is the info line
            for i in range(0, whole, step):
                surface.write_cell(col, 1 + origin - i, "*", attr)
            if abs(height) > abs(whole):
                surface.write_cell(col, 1 + origin - whole, "|", attr)
