#!/usr/bin/env python3
"""
Arbor Performance Benchmarks

Rich-formatted throughput report for the state container. Each benchmark
scales its workload until a single run takes longer than the time limit and
reports the operations per second of that run.

Usage:
    python scripts/benchmark.py            # Run all benchmarks
    python scripts/benchmark.py --config   # Show current benchmark configuration
    python scripts/benchmark.py --quiet    # Only show the final table

Configuration:
    Adjust the constants at the top of the file to change benchmark parameters.
"""

import argparse
import sys
import time
from typing import Any, Callable, Dict

# Add the project root to the Python path
sys.path.insert(0, ".")

from reactivex.testing import TestScheduler
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from arbor import ReactiveState

# Configuration constants - adjust these to change benchmark behavior
TIME_LIMIT_SECONDS = 1.0  # Maximum time allowed per run
STARTING_N = 10  # Starting number of operations
SCALE_FACTOR = 1.5  # How much to multiply N by each iteration


def _wide_tree(n: int) -> Dict[str, Any]:
    return {"items": {f"item{i}": {"value": i} for i in range(n)}, "counter": 0}


class ArborBenchmark:
    """Rich-formatted display for Arbor performance benchmarking."""

    def __init__(self, quiet: bool = False):
        self.console = Console()
        self.quiet = quiet
        self.results: Dict[str, Dict[str, Any]] = {}

    def run_benchmarks(self):
        start_time = time.time()
        self._display_header()

        self._run("dispatch", "Set-in Dispatches", self._dispatch_operation)
        self._run("select", "Selected Updates", self._select_operation)
        self._run("fanout", "Selection Fan-out", self._fanout_operation)
        self._run("list", "List Pushes", self._list_operation)

        self._display_final_results(start_time)

    # ------------------------------------------------------------------
    # Operations: each returns the number of operations it performed
    # ------------------------------------------------------------------

    def _dispatch_operation(self, n: int) -> int:
        with ReactiveState(_wide_tree(100), scheduler=TestScheduler()) as state:
            for i in range(n):
                state.set_in("counter", i)
        return n

    def _select_operation(self, n: int) -> int:
        with ReactiveState(_wide_tree(100), scheduler=TestScheduler()) as state:
            seen = []
            state.select("counter").subscribe(on_next=seen.append)
            for i in range(n):
                state.set_in("counter", i + 1)
        return len(seen) - 1

    def _fanout_operation(self, n: int) -> int:
        """One write observed by n selections, most of them unaffected."""
        with ReactiveState(_wide_tree(n), scheduler=TestScheduler()) as state:
            for i in range(n):
                state.select(["items", f"item{i}", "value"]).subscribe(on_next=lambda _: None)
            state.set_in("items.item0.value", -1)
        return n

    def _list_operation(self, n: int) -> int:
        with ReactiveState({"todos": []}, scheduler=TestScheduler()) as state:
            for i in range(n):
                state.list_push("todos", [{"id": i}])
        return n

    # ------------------------------------------------------------------
    # Runner and display
    # ------------------------------------------------------------------

    def _run(self, key: str, name: str, operation: Callable[[int], int]):
        if not self.quiet:
            self.console.print(f"[yellow]Running {name} benchmark...[/yellow]")
        result = self._run_adaptive_benchmark(operation)
        self.results[key] = {"name": name, **result}
        if not self.quiet:
            self.console.print(
                f"[green]✓[/green] {name}: {result['operations_per_second']:,.0f} ops/sec "
                f"({result['max_n']} items)"
            )

    def _run_adaptive_benchmark(self, operation: Callable[[int], int]) -> Dict[str, Any]:
        """Scale the workload until a run reaches the time limit."""
        n = STARTING_N
        while True:
            start_time = time.perf_counter()
            performed = operation(n)
            operation_time = time.perf_counter() - start_time

            result = {
                "max_n": n,
                "operation_time": operation_time,
                "operations_per_second": performed / max(operation_time, 1e-9),
            }
            if operation_time >= TIME_LIMIT_SECONDS:
                return result
            n = int(n * SCALE_FACTOR)

    def _display_header(self):
        header = Panel(
            Align.center("Arbor State Container Benchmarks"),
            title="Arbor Benchmarks",
            border_style="blue",
        )
        self.console.print(header)
        self.console.print()

    def _display_final_results(self, start_time: float):
        elapsed = time.time() - start_time

        table = Table(title="Final Benchmark Results")
        table.add_column("Benchmark", style="cyan", no_wrap=True)
        table.add_column("Max Workload", style="magenta")
        table.add_column("Performance", style="green", justify="right")
        table.add_column("Latency", style="yellow", justify="right")

        for result in self.results.values():
            ops_k = result["operations_per_second"] / 1000
            latency_us = 1e6 / max(result["operations_per_second"], 1e-9)
            table.add_row(
                result["name"],
                f"{result['max_n']:,}",
                f"{ops_k:.1f}K ops/sec",
                f"{latency_us:.1f}μs",
            )

        self.console.print()
        self.console.print(table)
        self.console.print()
        self.console.print(f"[dim]Benchmark completed in {elapsed:.2f} seconds[/dim]")


def print_config():
    """Print the current benchmark configuration."""
    print("Arbor Benchmark Configuration:")
    print(f"  TIME_LIMIT_SECONDS: {TIME_LIMIT_SECONDS}")
    print(f"  STARTING_N: {STARTING_N}")
    print(f"  SCALE_FACTOR: {SCALE_FACTOR}")


def main():
    """Main entry point for the benchmark script."""
    parser = argparse.ArgumentParser(description="Arbor Performance Benchmarks")
    parser.add_argument(
        "--config", action="store_true", help="Show current benchmark configuration"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output, show only final results",
    )
    args = parser.parse_args()

    if args.config:
        print_config()
        return

    if not args.quiet:
        print_config()
        print()

    ArborBenchmark(quiet=args.quiet).run_benchmarks()


if __name__ == "__main__":
    main()
