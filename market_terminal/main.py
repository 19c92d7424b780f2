#!/usr/bin/env python3
"""
Market Terminal - live ticker, order book, trades and account view for one Bitfinex pair.

Usage:
    python -m market_terminal.main config.json

    Or via the installed script:
    market-terminal config.json

Controls:
    q - Quit
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import ConfigError, DashboardConfig, load_config

logger = logging.getLogger("market_terminal")


def setup_logging(config: DashboardConfig) -> None:
    """File-only logging so the TUI is not disturbed."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s',
        handlers=[
            logging.FileHandler(config.log_file),
        ]
    )


async def main(config: DashboardConfig) -> int:
    """Main entry point - runs data feed and UI concurrently. Returns the exit code."""

    # Import here to avoid slow startup for --help
    from .dashboard import Dashboard
    from .datafeed.bitfinex_client import BitfinexClient
    from .ui.dashboard_view import DashboardApp

    event_queue: asyncio.Queue = asyncio.Queue()
    client = BitfinexClient(config, event_queue)
    dashboard = Dashboard(config)
    app = DashboardApp(dashboard, event_queue)

    async def run_feed() -> None:
        try:
            await client.run()
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.exception("Feed error")
            app.exit(return_code=1, message=f"Feed error: {e}")

    feed_task = asyncio.create_task(run_feed())

    try:
        # Run UI (blocks until quit or feed failure)
        await app.run_async()
    finally:
        # Cleanup
        client.stop()
        feed_task.cancel()
        try:
            await feed_task
        except asyncio.CancelledError:
            pass

    return app.return_code or 0


def cli() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Market Terminal - real-time market dashboard for a Bitfinex trading pair",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    market-terminal config.json
    python -m market_terminal.main ~/.config/market-terminal.json
        """
    )

    parser.add_argument(
        "config",
        nargs="?",
        default="config.json",
        help="Path to the JSON config file (default: config.json)"
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    logger.info("Starting Market Terminal for %s", config.pair)

    # Run
    try:
        sys.exit(asyncio.run(main(config)))
    except KeyboardInterrupt:
        print("\nShutdown requested.")
        sys.exit(0)


if __name__ == "__main__":
    cli()
