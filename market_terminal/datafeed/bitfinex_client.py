"""
Bitfinex v2 WebSocket client with async orchestration.

Handles:
1. Public subscriptions: ticker, trades, raw-precision book for one pair
2. Optional authentication for the account channel (positions, orders)
3. Translation of wire arrays into typed events on an asyncio.Queue

Notes:
- Uses orjson for JSON parsing
- Snapshots are expanded into individual events, so the dashboard only
  ever sees deltas
- No reconnection: connection errors propagate to the caller
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import time
from typing import Any

import aiohttp
import orjson

from ..config import DashboardConfig
from ..types import (
    AccountEvent,
    BookDeltaEvent,
    MarketEvent,
    OrderUpdate,
    PositionUpdate,
    TickerEvent,
    TradeEvent,
)

logger = logging.getLogger(__name__)

WS_URL = "wss://api.bitfinex.com/ws/2"

# Book subscription lengths accepted by the exchange
BOOK_LENGTHS = (1, 25, 100, 250)

POSITION_TERMS = ("pn", "pu", "pc")
ORDER_TERMS = ("on", "ou", "oc")


class FeedError(Exception):
    """The exchange rejected a request or the connection failed."""


# =========================================================
# Wire parsing
# =========================================================

def parse_ticker(data: list) -> TickerEvent:
    """[BID, BID_SIZE, ASK, ASK_SIZE, DAILY_CHANGE, DAILY_CHANGE_REL, LAST_PRICE, ...]"""
    return TickerEvent(
        last_price=float(data[6]),
        bid=float(data[0]),
        bid_size=float(data[1]),
        ask=float(data[2]),
        ask_size=float(data[3]),
    )


def parse_trade(data: list) -> TradeEvent:
    """[ID, MTS, AMOUNT, PRICE]"""
    return TradeEvent(price=float(data[3]), amount=float(data[2]), timestamp_ms=int(data[1]))


def parse_book_entry(data: list) -> BookDeltaEvent:
    """[PRICE, COUNT, AMOUNT]"""
    return BookDeltaEvent(price=float(data[0]), count=int(data[1]), amount=float(data[2]))


def parse_position(data: list, term: str) -> PositionUpdate:
    """[SYMBOL, STATUS, AMOUNT, BASE_PRICE, ...]"""
    return PositionUpdate(
        symbol=data[0],
        status=data[1],
        amount=float(data[2] or 0.0),
        price=float(data[3] or 0.0),
        term=term,
    )


def parse_order(data: list, term: str) -> OrderUpdate:
    """[ID, GID, CID, SYMBOL, MTS_CREATE, MTS_UPDATE, AMOUNT, AMOUNT_ORIG, TYPE, ..., STATUS(13), ..., PRICE(16), PRICE_AVG(17), ...]"""
    return OrderUpdate(
        order_id=int(data[0]),
        symbol=data[3],
        status=data[13] or "",
        type=data[8],
        orig_amount=float(data[7] or 0.0),
        amount=float(data[6] or 0.0),
        price=float(data[16] or 0.0),
        avg_price=float(data[17] or 0.0),
        term=term,
    )


def parse_account(term: str, payload: list | None) -> list[AccountEvent]:
    """
    Translate one account channel message into position/order updates.

    Snapshots ("ps", "os") expand to one opening update per entry.
    Unrelated terms (wallets, notifications, heartbeats) yield nothing.
    """
    if payload is None:
        return []
    if term == "ps":
        return [parse_position(entry, "pn") for entry in payload]
    if term in POSITION_TERMS:
        return [parse_position(payload, term)]
    if term == "os":
        return [parse_order(entry, "on") for entry in payload]
    if term in ORDER_TERMS:
        return [parse_order(payload, term)]
    return []


def book_length(levels: int) -> int:
    """Smallest subscription length covering `levels`."""
    for length in BOOK_LENGTHS:
        if length >= levels:
            return length
    return BOOK_LENGTHS[-1]


def auth_message(api_key: str, api_secret: str, nonce: int | None = None) -> dict[str, Any]:
    """Signed auth request (HMAC-SHA384 over "AUTH" + nonce)."""
    if nonce is None:
        nonce = int(time.time() * 1_000_000)
    payload = f"AUTH{nonce}"
    signature = hmac.new(api_secret.encode(), payload.encode(), hashlib.sha384).hexdigest()
    return {
        "event": "auth",
        "apiKey": api_key,
        "authSig": signature,
        "authPayload": payload,
        "authNonce": nonce,
    }


class BitfinexClient:
    """
    Async Bitfinex client pushing typed events to a queue.

    Usage:
        queue = asyncio.Queue()
        client = BitfinexClient(config, queue)
        await client.run()
    """

    def __init__(self, config: DashboardConfig, event_queue: asyncio.Queue[MarketEvent]) -> None:
        self.config = config
        self.pair = config.pair
        self.event_queue = event_queue

        # chanId -> channel name ("ticker", "trades", "book"); 0 is the account channel
        self._channels: dict[int, str] = {}
        self._running = False
        self._message_count = 0

    def subscribe_messages(self) -> list[dict[str, Any]]:
        return [
            {"event": "subscribe", "channel": "ticker", "symbol": self.pair},
            {"event": "subscribe", "channel": "trades", "symbol": self.pair},
            {
                "event": "subscribe",
                "channel": "book",
                "symbol": self.pair,
                "prec": self.config.order_book_precision,
                "len": str(book_length(self.config.order_book_len)),
            },
        ]

    def _emit(self, event: MarketEvent) -> None:
        self.event_queue.put_nowait(event)

    def handle_message(self, raw: str | bytes) -> None:
        """
        Handle one incoming WebSocket message.

        Called for every message (~10-100+ per second).
        """
        self._message_count += 1
        data = orjson.loads(raw)

        if isinstance(data, dict):
            self._handle_event(data)
        elif isinstance(data, list) and len(data) >= 2:
            self._handle_channel(data)
        else:
            logger.debug("Ignoring message: %r", data)

    def _handle_event(self, data: dict[str, Any]) -> None:
        event = data.get("event")

        if event == "subscribed":
            self._channels[data["chanId"]] = data["channel"]
            logger.info("Subscribed to %s (chanId=%s)", data["channel"], data["chanId"])
        elif event == "auth":
            if data.get("status") != "OK":
                raise FeedError(f"Authentication failed: {data.get('msg', data)}")
            self._channels[0] = "account"
            logger.info("Authenticated (userId=%s)", data.get("userId"))
        elif event == "error":
            raise FeedError(f"Exchange error {data.get('code')}: {data.get('msg')}")
        elif event == "info":
            logger.info("Exchange info: %s", data)
        else:
            logger.debug("Unhandled event: %r", data)

    def _handle_channel(self, data: list) -> None:
        chan_id, payload = data[0], data[1]
        if payload == "hb":
            return

        channel = self._channels.get(chan_id)
        if channel == "ticker":
            self._emit(parse_ticker(payload))
        elif channel == "trades":
            self._handle_trades(data)
        elif channel == "book":
            self._handle_book(payload)
        elif channel == "account":
            self._handle_account(payload, data[2] if len(data) > 2 else None)
        else:
            logger.debug("Message for unknown channel %s", chan_id)

    def _handle_trades(self, data: list) -> None:
        payload = data[1]
        if payload == "te":
            self._emit(parse_trade(data[2]))
        elif isinstance(payload, list):
            # Snapshot arrives newest first
            for entry in reversed(payload):
                self._emit(parse_trade(entry))
        # "tu" repeats an already delivered "te"

    def _handle_book(self, payload: list) -> None:
        if payload and isinstance(payload[0], list):
            for entry in payload:
                self._emit(parse_book_entry(entry))
        else:
            self._emit(parse_book_entry(payload))

    def _handle_account(self, term: str, payload: list | None) -> None:
        for event in parse_account(term, payload):
            self._emit(event)

    async def run(self) -> None:
        """
        Main run loop. Connects, subscribes and processes messages until stopped.

        Raises FeedError (or aiohttp errors) if the connection fails.
        """
        self._running = True

        async with aiohttp.ClientSession() as session:
            logger.info("Connecting to %s", WS_URL)
            try:
                ws = await session.ws_connect(WS_URL, heartbeat=30.0)
            except aiohttp.ClientError as e:
                raise FeedError(f"Error connecting to WebSocket: {e}") from e

            async with ws:
                if self.config.authenticated:
                    await ws.send_str(orjson.dumps(auth_message(
                        self.config.api_key, self.config.api_secret)).decode())
                for message in self.subscribe_messages():
                    await ws.send_str(orjson.dumps(message).decode())

                async for msg in ws:
                    if not self._running:
                        break

                    if msg.type == aiohttp.WSMsgType.TEXT:
                        self.handle_message(msg.data)
                    elif msg.type == aiohttp.WSMsgType.ERROR:
                        raise FeedError(f"WebSocket error: {ws.exception()}")

        logger.info("Feed stopped after %d messages", self._message_count)

    def stop(self) -> None:
        """Signal the client to stop."""
        self._running = False
