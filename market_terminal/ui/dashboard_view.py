"""
Market dashboard TUI using Textual.

Displays the dashboard panels, each a bordered Static rendering the
committed frame of its Surface:
- Top: ticker line
- Middle: bid book, ask book, last trades side by side
- Bottom: trade flow history, positions, orders

Notes:
- One event is processed per worker iteration, then all panels refresh
- The queue wait times out after 1s so history buckets roll without traffic
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from rich.console import RenderableType

from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.widgets import Footer, Static

if TYPE_CHECKING:
    from ..dashboard import Dashboard
    from ..types import MarketEvent
    from .surface import Surface

# Seconds to wait for an event before running the periodic time check
POLL_TIMEOUT_SEC = 1.0


class PanelView(Static):
    """One bordered dashboard panel."""

    DEFAULT_CSS = """
    PanelView {
        border: round #334155;
        border-title-color: #94a3b8;
        border-title-style: bold;
        height: auto;
        width: auto;
    }
    """

    def __init__(self, surface: Surface, title: str = "", **kwargs) -> None:
        super().__init__(**kwargs)
        self._surface = surface
        self._title = title

    def on_mount(self) -> None:
        if self._title:
            self.border_title = self._title

    def render(self) -> RenderableType:
        return self._surface.render()


class DashboardApp(App):
    """Main Market Terminal application."""

    CSS = """
    Screen {
        background: #0f172a;
    }

    #books {
        height: auto;
    }

    #ticker, #history {
        border: none;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(self, dashboard: Dashboard, event_queue: asyncio.Queue[MarketEvent]) -> None:
        super().__init__()
        self.dashboard = dashboard
        self.event_queue = event_queue
        self._views: list[PanelView] = []

    def compose(self) -> ComposeResult:
        panels = self.dashboard.panels

        ticker = PanelView(panels.ticker, id="ticker")
        books = [
            PanelView(panels.book_bid, "Bid", id="book-bid"),
            PanelView(panels.book_ask, "Ask", id="book-ask"),
            PanelView(panels.trades, "Last trades", id="trades"),
        ]
        self._views = [ticker, *books]

        yield ticker
        yield Horizontal(*books, id="books")
        if panels.history is not None:
            history = PanelView(panels.history, id="history")
            self._views.append(history)
            yield history

        positions = PanelView(panels.positions.surface, "Positions", id="positions")
        orders = PanelView(panels.orders.surface, "Orders", id="orders")
        self._views.extend([positions, orders])
        yield positions
        yield orders
        yield Footer()

    async def on_mount(self) -> None:
        """Start the event consumer task."""
        self.run_worker(self._consume_events(), exclusive=True)

    async def _consume_events(self) -> None:
        """Process events one at a time and redraw after each."""
        while True:
            try:
                event = await asyncio.wait_for(self.event_queue.get(), timeout=POLL_TIMEOUT_SEC)
            except asyncio.TimeoutError:
                event = None
            except asyncio.CancelledError:
                break

            self.dashboard.step(event)
            for view in self._views:
                view.refresh()

