"""
Dashboard configuration.

Loaded once at startup from a JSON file; static for the process lifetime.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration file missing, unparsable or invalid."""


@dataclass(frozen=True)
class DashboardConfig:
    """Settings for the feed and the panel layout."""

    # =========================================================
    # Exchange
    # =========================================================

    # Leave empty to run without the account channel (no positions/orders)
    api_key: str = ""
    api_secret: str = ""

    pair: str = "tBTCUSD"

    # Bitfinex book precision: P0 (most precise) .. P4
    order_book_precision: str = "P0"

    # =========================================================
    # Layout
    # =========================================================

    # Book levels shown per side (also the number of recent trades)
    order_book_len: int = 25

    # Visible rows in the positions / orders tables
    positions_len: int = 3
    orders_len: int = 5

    # Number of history buckets (one chart column each); panels widen to fit it
    history_width: int = 87

    # Height of the trade flow chart; 0 hides the panel
    history_height: int = 10

    # Seconds per history bucket
    history_record_period: float = 10.0

    # =========================================================
    # Highlighting
    # =========================================================

    # Trades larger than this (absolute) are drawn bold
    highlight_trades_over: float = 1.0

    # Book levels larger than this (absolute) are drawn bold
    highlight_order_book_over: float = 10.0

    # =========================================================
    # Logging
    # =========================================================

    log_file: str = "market_terminal.log"
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        for name in ("order_book_len", "positions_len", "orders_len", "history_width"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if self.history_height < 0:
            raise ConfigError(f"history_height must not be negative, got {self.history_height}")
        if self.history_record_period <= 0:
            raise ConfigError(
                f"history_record_period must be positive, got {self.history_record_period}"
            )

    @property
    def authenticated(self) -> bool:
        return bool(self.api_key and self.api_secret)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DashboardConfig:
        """Build a config from parsed JSON, checking keys and value types."""
        if not isinstance(data, dict):
            raise ConfigError(f"config must be a JSON object, got {type(data).__name__}")

        fields = {f.name: f for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - set(fields))
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for name, value in data.items():
            expected = type(fields[name].default)
            if expected is float and isinstance(value, int) and not isinstance(value, bool):
                value = float(value)
            if type(value) is not expected:
                raise ConfigError(
                    f"{name} must be {expected.__name__}, got {type(value).__name__}"
                )
            values[name] = value

        return cls(**values)


def load_config(path: str | Path) -> DashboardConfig:
    """
    Read and validate a JSON config file.

    Raises ConfigError on any problem; callers treat that as fatal.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise ConfigError(f"Unable to read config file {path}: {e}") from e

    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ConfigError(f"Unable to parse config {path}: {e}") from e

    config = DashboardConfig.from_dict(data)
    logger.info("Loaded config from %s (pair=%s)", path, config.pair)
    return config
