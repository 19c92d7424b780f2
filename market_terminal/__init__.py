"""
Market Terminal - real-time market monitoring dashboard for a single trading pair.

Architecture:
- datafeed/: Bitfinex WebSocket connection and local order book maintenance
- engine/: Position valuation and trade flow history
- ui/: Drawing surfaces, keyed-row tables and the Textual TUI
- dashboard.py: Event-driven driver tying state to panels
"""

__version__ = "0.1.0"
