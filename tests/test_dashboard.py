#!/usr/bin/env python3
"""
Integration tests for the dashboard driver: events in, committed panels out.

Run with:
    python -m pytest tests/test_dashboard.py -v
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for standalone execution
sys.path.insert(0, str(Path(__file__).parent.parent))

from market_terminal.config import DashboardConfig
from market_terminal.dashboard import SCREEN_WIDTH, Dashboard, pnl_attr
from market_terminal.types import (
    BookDeltaEvent,
    OrderUpdate,
    PositionUpdate,
    TickerEvent,
    TradeEvent,
)
from market_terminal.ui.surface import Attr

SYMBOL = "tBTCUSD"


@pytest.fixture
def config():
    return DashboardConfig(
        order_book_len=5,
        positions_len=3,
        orders_len=3,
        history_width=40,
        history_height=6,
        history_record_period=10.0,
        highlight_trades_over=1.0,
        highlight_order_book_over=10.0,
    )


@pytest.fixture
def dashboard(config, clock):
    return Dashboard(config, clock=clock)


def position_event(amount=10.0, price=100.0, term="pu"):
    return PositionUpdate(SYMBOL, "ACTIVE", amount, price, term)


def order_event(order_id, term="on", amount=1.0):
    return OrderUpdate(order_id, SYMBOL, "ACTIVE", "EXCHANGE LIMIT", 1.0, amount, 99.0, 0.0, term)


class TestTicker:

    def test_ticker_line(self, dashboard):
        dashboard.step(TickerEvent(100.5, 100.0, 2.0, 101.0, 3.0))
        line = dashboard.panels.ticker.line(0)
        assert line.startswith("Last: 100.50")
        assert "Bid:   2.00 @ 100.00" in line
        assert "Ask:   3.00 @ 101.00" in line
        assert dashboard.state.ticker.last_price == 100.5

    def test_ticker_colours(self, dashboard):
        """Last is blue, bid red, ask green."""
        dashboard.step(TickerEvent(100.5, 100.0, 2.0, 101.0, 3.0))
        ticker = dashboard.panels.ticker
        assert ticker.attr_at(0, 0) == Attr.BLUE | Attr.BOLD
        assert ticker.attr_at(16, 0) == Attr.RED
        assert ticker.attr_at(39, 0) == Attr.GREEN


class TestLayout:

    def test_narrow_history_does_not_clip_panels(self, clock):
        """A short history window only narrows the chart."""
        config = DashboardConfig(history_width=20, history_height=6, orders_len=3, positions_len=3)
        dashboard = Dashboard(config, clock=clock)
        panels = dashboard.panels
        assert panels.history.width == 20
        assert panels.ticker.width == SCREEN_WIDTH
        assert panels.orders.surface.width == SCREEN_WIDTH
        assert dashboard.state.history.width == 20

        dashboard.step(TickerEvent(100.5, 100.0, 2.0, 101.0, 3.0))
        dashboard.step(order_event(1))
        assert panels.ticker.line(0).endswith("Ask:   3.00 @ 101.00")
        assert panels.orders.surface.line(0).endswith("Avg.Price")
        assert panels.orders.surface.line(1).endswith("99.00     0.00")
        assert panels.positions.surface.line(0).endswith("P/L %")

    def test_wide_history_widens_panels(self, clock):
        dashboard = Dashboard(DashboardConfig(history_width=120, history_height=6), clock=clock)
        assert dashboard.panels.history.width == 120
        assert dashboard.panels.ticker.width == 120
        assert dashboard.panels.positions.surface.width == 120


class TestBookPanels:

    def test_bid_and_ask_lines(self, dashboard):
        dashboard.step(BookDeltaEvent(100.0, 2, 5.0))
        dashboard.step(BookDeltaEvent(99.0, 1, 20.0))
        dashboard.step(BookDeltaEvent(101.0, 1, -3.0))

        bid = dashboard.panels.book_bid
        assert bid.line(0) == " 2   5.00 @ 100.00     5.00"
        assert bid.line(1) == " 1  20.00 @ 99.00     25.00"
        assert bid.attr_at(0, 0) == Attr.NONE
        assert bid.attr_at(0, 1) == Attr.BOLD

        ask = dashboard.panels.book_ask
        assert ask.line(0) == "3.00     101.00 @ 3.00   1"

    def test_removal_redraws_side(self, dashboard):
        dashboard.step(BookDeltaEvent(100.0, 2, 5.0))
        dashboard.step(BookDeltaEvent(99.0, 1, 20.0))
        dashboard.step(BookDeltaEvent(100.0, 0, 1.0))

        bid = dashboard.panels.book_bid
        assert bid.line(0).startswith(" 1  20.00 @ 99.00")
        assert bid.line(1) == ""

    def test_depth_limited_to_panel(self, dashboard, config):
        for n in range(10):
            dashboard.step(BookDeltaEvent(100.0 - n, 1, 1.0))
        lines = dashboard.panels.book_bid.lines()
        assert len(lines) == config.order_book_len
        assert lines[-1].endswith("5.00")


class TestTrades:

    def test_newest_trade_on_bottom(self, dashboard):
        dashboard.step(TradeEvent(100.0, 0.5))
        dashboard.step(TradeEvent(101.0, -2.0))

        trades = dashboard.panels.trades
        assert trades.line(4) == "SELL   2.00 @ 101.00"
        assert trades.line(3) == "BUY    0.50 @ 100.00"
        assert trades.line(2) == ""
        assert trades.attr_at(0, 4) == Attr.DIM | Attr.BOLD | Attr.RED
        assert trades.attr_at(0, 3) == Attr.DIM | Attr.GREEN

    def test_trades_feed_history(self, dashboard):
        dashboard.step(TradeEvent(100.0, 0.5))
        dashboard.step(TradeEvent(101.0, -2.0))
        current = dashboard.state.history.current
        assert current.buy_volume == pytest.approx(0.5)
        assert current.sell_volume == pytest.approx(-2.0)

    def test_only_latest_trades_kept(self, dashboard, config):
        for n in range(config.order_book_len + 3):
            dashboard.step(TradeEvent(100.0 + n, 1.0))
        assert len(dashboard.state.trades) == config.order_book_len
        assert dashboard.panels.trades.line(0).endswith("103.00")


class TestHistoryPanel:

    def test_buy_bar_drawn_upward(self, dashboard):
        dashboard.step(TradeEvent(100.0, 3.0))
        history = dashboard.panels.history
        # baseline 3, scale 1: three '*' on rows 3, 2, 1 of the last column
        for row in (1, 2, 3):
            assert history.line(row) == " " * 39 + "*"
            assert history.attr_at(39, row) == Attr.GREEN
        assert history.line(4) == ""

    def test_sell_bar_drawn_downward(self, dashboard):
        dashboard.step(TradeEvent(100.0, -1.5))
        history = dashboard.panels.history
        for row in (4, 5, 6):
            assert history.line(row) == " " * 39 + "*"
            assert history.attr_at(39, row) == Attr.RED

    def test_fractional_bar_end(self, dashboard, clock):
        dashboard.step(TradeEvent(100.0, 3.0))
        clock.advance(2.0)
        dashboard.step(TradeEvent(100.0, 1.5))
        history = dashboard.panels.history
        # 4.5 / (4.5 / 3) = 3.0 for the last bucket; still whole
        assert history.line(1).endswith("*")

        clock.advance(20.0)
        dashboard.step()
        clock.advance(1.0)
        dashboard.step(TradeEvent(100.0, 2.25))
        # Previous bucket 4.5 -> 3 rows, new bucket 2.25 -> 1.5 rows
        assert history.line(3).endswith("**")
        assert history.line(2).endswith("*|")

    def test_info_line(self, dashboard):
        dashboard.step(TradeEvent(100.0, 0.5))
        assert dashboard.panels.history.line(0) == "Last 10 sec: buy 0.50  , sell 0.00"

    def test_chart_redraw_throttled(self, dashboard, clock):
        """Within a second only the info line follows new trades."""
        dashboard.step(TradeEvent(100.0, 3.0))
        clock.advance(0.5)
        dashboard.step(TradeEvent(100.0, -3.0))
        history = dashboard.panels.history

        assert history.line(0) == "Last 10 sec: buy 3.00  , sell -3.00"
        for row in (1, 2, 3):
            assert history.line(row) == " " * 39 + "*"
        for row in (4, 5, 6):
            assert history.line(row) == ""

        # A bucket roll always redraws; the finished bucket moves left
        clock.advance(10.0)
        dashboard.step()
        for row in range(1, 7):
            assert history.line(row) == " " * 38 + "*"
        assert history.attr_at(38, 2) == Attr.GREEN
        assert history.attr_at(38, 5) == Attr.RED

    def test_tick_rolls_bucket(self, dashboard, clock):
        dashboard.step(TradeEvent(100.0, 2.0))
        clock.advance(11.0)
        dashboard.step()

        assert dashboard.state.history.current.buy_volume == 0.0
        assert dashboard.state.history.records[-2].buy_volume == 2.0
        assert dashboard.panels.history.line(0).startswith("Last 10 sec: buy 0.00")

    def test_history_panel_optional(self, clock):
        dashboard = Dashboard(DashboardConfig(history_height=0), clock=clock)
        assert dashboard.panels.history is None
        assert len(dashboard.panels.surfaces()) == 6
        dashboard.step(TradeEvent(100.0, 1.0))


class TestPositions:

    def setup_book(self, dashboard):
        dashboard.step(BookDeltaEvent(101.0, 1, 6.0))
        dashboard.step(BookDeltaEvent(100.0, 1, 10.0))

    def test_position_valued_against_bids(self, dashboard):
        self.setup_book(dashboard)
        dashboard.step(position_event())

        values = dashboard.panels.positions.values(SYMBOL)
        assert values[:3] == ("ACTIVE", 10.0, 100.0)
        assert values[3] == pytest.approx(100.6)
        assert values[4] == pytest.approx(6.0)
        assert values[5] == pytest.approx(0.6)
        assert dashboard.panels.positions.cell_attribute(SYMBOL, 4) == Attr.BOLD | Attr.GREEN
        assert dashboard.panels.positions.cell_attribute(SYMBOL, 1) == Attr.BOLD
        assert dashboard.panels.positions.cell_attribute(SYMBOL, 0) == Attr.NONE

    def test_book_delta_revalues_position(self, dashboard):
        self.setup_book(dashboard)
        dashboard.step(position_event())
        dashboard.step(BookDeltaEvent(101.0, 0, 1.0))
        dashboard.step(BookDeltaEvent(100.0, 0, 1.0))
        dashboard.step(BookDeltaEvent(90.0, 1, 20.0))

        table = dashboard.panels.positions
        assert table.values(SYMBOL)[4] == pytest.approx(-100.0)
        for column in (3, 4, 5):
            assert table.cell_attribute(SYMBOL, column) == Attr.BOLD | Attr.RED

    def test_position_row_rendered(self, dashboard):
        self.setup_book(dashboard)
        dashboard.step(position_event())
        surface = dashboard.panels.positions.surface
        assert surface.line(0).startswith("Status")
        assert surface.line(1).startswith("ACTIVE")

    def test_close_removes_row(self, dashboard):
        self.setup_book(dashboard)
        dashboard.step(position_event())
        dashboard.step(position_event(term="pc"))

        assert SYMBOL not in dashboard.state.positions
        assert SYMBOL not in dashboard.panels.positions
        assert dashboard.panels.positions.surface.line(1) == ""

    def test_close_unknown_position_is_noop(self, dashboard):
        dashboard.step(position_event(term="pc"))
        assert dashboard.state.positions == {}

    def test_short_position_uses_asks(self, dashboard):
        dashboard.step(BookDeltaEvent(99.0, 1, -4.0))
        dashboard.step(BookDeltaEvent(100.0, 2, -10.0))
        dashboard.step(position_event(amount=-10.0))
        assert dashboard.panels.positions.values(SYMBOL)[4] == pytest.approx(4.0)

    def test_pnl_attr(self):
        assert pnl_attr(0.0) == Attr.BOLD | Attr.GREEN
        assert pnl_attr(-0.01) == Attr.BOLD | Attr.RED


class TestOrders:

    def test_orders_tracked_and_compacted(self, dashboard):
        dashboard.step(order_event(1))
        dashboard.step(order_event(2))
        dashboard.step(order_event(1, term="oc"))

        assert list(dashboard.state.orders) == [2]
        table = dashboard.panels.orders
        assert table.row_index(2) == 0
        assert table.surface.line(1).startswith("EXCHANGE LIMIT")
        assert table.surface.line(2) == ""

    def test_order_update_replaces_values(self, dashboard):
        dashboard.step(order_event(1))
        dashboard.step(order_event(1, term="ou", amount=0.25))
        assert dashboard.state.orders[1].remaining_size == 0.25
        assert dashboard.panels.orders.values(1)[2] == 0.25

    def test_close_unknown_order_is_noop(self, dashboard):
        dashboard.step(order_event(9, term="oc"))
        assert dashboard.state.orders == {}


class TestDispatch:

    def test_unknown_event_type(self, dashboard):
        with pytest.raises(TypeError):
            dashboard.process_event(object())

    def test_step_without_event_commits(self, dashboard):
        dashboard.on_ticker(TickerEvent(1.0, 1.0, 1.0, 1.0, 1.0))
        assert dashboard.panels.ticker.line(0) == ""
        dashboard.step()
        assert dashboard.panels.ticker.line(0).startswith("Last:")


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
