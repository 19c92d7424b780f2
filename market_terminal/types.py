"""
Data types for Market Terminal.

Notes:
- NamedTuple for immutable events and book levels
- The newest history bucket is mutated in place, so HistoryRecord is a dataclass
- Sizes keep the exchange sign convention: negative = ask / sell / short
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Union


class Side(str, Enum):
    """One half of the order book."""
    BID = "bid"
    ASK = "ask"

    @classmethod
    def from_amount(cls, amount: float) -> Side:
        """Positive amounts are bid liquidity, everything else is ask."""
        return cls.BID if amount > 0 else cls.ASK


class PriceLevel(NamedTuple):
    """Single resting price level on one side of the book."""
    price: float
    size: float   # Signed: negative on the ask side
    count: int    # Number of orders at this price


class DepthLevel(NamedTuple):
    """Price level plus running absolute volume from the top of book."""
    level: PriceLevel
    cumulative: float


class Position(NamedTuple):
    """Open position as reported by the account channel."""
    symbol: str
    status: str
    size: float          # Signed: negative = short
    entry_price: float

    @property
    def side(self) -> Side:
        return Side.from_amount(self.size)


class Order(NamedTuple):
    """Working order as reported by the account channel."""
    id: int
    symbol: str
    type: str
    orig_size: float
    remaining_size: float
    price: float
    avg_price: float
    status: str = ""


class PositionValuation(NamedTuple):
    """Result of walking the book to estimate a position's exit value."""
    exit_value: float
    average_exit_price: float
    unrealized_pnl: float
    pnl_percent: float
    unfilled: float      # Size left over when the book ran out of liquidity


@dataclass
class HistoryRecord:
    """One time bucket of trade flow. sell_volume accumulates negative amounts."""
    bucket_start: float = 0.0
    buy_volume: float = 0.0
    sell_volume: float = 0.0


class HistoryBar(NamedTuple):
    """Normalised bar lengths for one bucket (sell is negative = downward)."""
    buy: float
    sell: float


# =========================================================
# Inbound events
# =========================================================

class TickerEvent(NamedTuple):
    last_price: float
    bid: float
    bid_size: float
    ask: float
    ask_size: float


class TradeEvent(NamedTuple):
    price: float
    amount: float        # Negative = sell aggressor
    timestamp_ms: int = 0


class BookDeltaEvent(NamedTuple):
    price: float
    count: int           # 0 = remove the level
    amount: float        # Sign selects the side


class PositionUpdate(NamedTuple):
    symbol: str
    status: str
    amount: float
    price: float
    term: str = "pu"     # "pc" = position closed

    @property
    def closed(self) -> bool:
        return self.term == "pc"


class OrderUpdate(NamedTuple):
    order_id: int
    symbol: str
    status: str
    type: str
    orig_amount: float
    amount: float
    price: float
    avg_price: float
    term: str = "ou"     # "oc" = order closed

    @property
    def closed(self) -> bool:
        return self.term == "oc"


AccountEvent = Union[PositionUpdate, OrderUpdate]
MarketEvent = Union[TickerEvent, TradeEvent, BookDeltaEvent, AccountEvent]
