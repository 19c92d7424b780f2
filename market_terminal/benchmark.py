#!/usr/bin/env python3
"""
Micro-benchmark for Market Terminal hot paths.

Tests:
1. Order book delta throughput (full re-sort per delta)
2. Cumulative depth generation speed
3. Position valuation against the book
4. History bar rendering speed

Usage:
    python -m market_terminal.benchmark
"""

from __future__ import annotations

import random
import time
from statistics import mean, stdev

from .datafeed.orderbook import OrderBook
from .engine.history import HistoryBuffer
from .engine.valuation import value_position
from .types import BookDeltaEvent, Position, Side


def generate_mock_deltas(base_price: float = 600.0, count: int = 10000, spread_ticks: int = 50) -> list[BookDeltaEvent]:
    """Generate book deltas around a base price (20% are removals)."""
    tick_size = 0.01
    deltas = []

    for _ in range(count):
        offset = random.randint(1, spread_ticks)
        if random.random() > 0.5:
            price, amount = base_price - offset * tick_size, random.uniform(0.1, 100)
        else:
            price, amount = base_price + offset * tick_size, -random.uniform(0.1, 100)
        level_count = random.randint(1, 10) if random.random() > 0.2 else 0
        deltas.append(BookDeltaEvent(round(price, 2), level_count, amount))

    return deltas


def populated_book(levels: int = 50) -> OrderBook:
    ob = OrderBook("tBTCUSD", depth=25)
    for event in generate_mock_deltas(count=levels * 4, spread_ticks=levels):
        if event.count:
            ob.apply_event(event)
    return ob


def report(name: str, times: list[float]) -> None:
    avg_time = mean(times) * 1000
    std_time = stdev(times) * 1000
    print(f"  Iterations: {len(times)}")
    print(f"  Avg time: {avg_time:.4f}ms")
    print(f"  Std dev: {std_time:.4f}ms")
    print(f"  Rate: {1000/avg_time:,.0f} {name}/sec")


def benchmark_orderbook_deltas(iterations: int = 10000) -> None:
    """Benchmark order book delta throughput."""
    print("\n=== Order Book Delta Benchmark ===")

    ob = OrderBook("tBTCUSD")
    deltas = generate_mock_deltas(count=iterations)

    start = time.perf_counter()
    for event in deltas:
        ob.apply_event(event)
    elapsed = time.perf_counter() - start

    rate = iterations / elapsed
    print(f"  Deltas applied: {iterations:,}")
    print(f"  Time: {elapsed*1000:.1f}ms")
    print(f"  Rate: {rate:,.0f} deltas/sec")
    print(f"  Per delta: {elapsed/iterations*1_000_000:.1f}µs")


def benchmark_cumulative_depth(iterations: int = 1000) -> None:
    """Benchmark cumulative depth generation."""
    print("\n=== Cumulative Depth Benchmark ===")

    ob = populated_book()
    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        ob.cumulative_depth(Side.BID)
        ob.cumulative_depth(Side.ASK)
        times.append(time.perf_counter() - start)

    report("calls", times)


def benchmark_valuation(iterations: int = 1000) -> None:
    """Benchmark position valuation (what every book delta triggers)."""
    print("\n=== Position Valuation Benchmark ===")

    ob = populated_book()
    position = Position("tBTCUSD", "ACTIVE", 250.0, 599.5)
    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        value_position(position, ob.sorted_view(ob.unwind_side(position.size)))
        times.append(time.perf_counter() - start)

    report("valuations", times)


def benchmark_history_render(iterations: int = 1000) -> None:
    """Benchmark history bar normalisation."""
    print("\n=== History Render Benchmark ===")

    history = HistoryBuffer(width=87, period_sec=10.0, height=10)
    now = time.time()
    for i in range(87):
        for _ in range(20):
            history.record_trade(random.uniform(-5, 5))
        history.advance_if_due(now=now + (i + 1) * 11.0)

    times = []
    for _ in range(iterations):
        start = time.perf_counter()
        history.render_bars()
        times.append(time.perf_counter() - start)

    report("renders", times)


def main() -> None:
    """Run all benchmarks."""
    print("=" * 60)
    print("Market Terminal Performance Benchmark")
    print("=" * 60)

    benchmark_orderbook_deltas()
    benchmark_cumulative_depth()
    benchmark_valuation()
    benchmark_history_render()

    print("\n" + "=" * 60)
    print("Benchmark complete.")
    print("=" * 60)


if __name__ == "__main__":
    main()
