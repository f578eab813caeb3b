#!/usr/bin/env python3
"""
Performance comparison benchmarks for summation algorithms.

This script measures the per-value cost of streaming additions and the
cost of reading the result, for the exact accumulator and its baselines.
"""

import time
import numpy as np
import mpmath
from typing import Callable, Dict
import sys
sys.path.append('..')

from exactsum import ExactAccumulator, KahanAccumulator


class NaiveAccumulator:
    """Plain running total."""

    def __init__(self):
        self.total = 0.0

    def add(self, value: float):
        self.total += value

    def value(self) -> float:
        return self.total


class BigAccumulator:
    """Single mpmath running total."""

    def __init__(self):
        self.total = mpmath.mpf(0)

    def add(self, value: float):
        self.total += value

    def value(self) -> float:
        return float(self.total)


class PerformanceBenchmark:
    """
    Streaming throughput benchmark.
    """

    def __init__(self):
        self.accumulators: Dict[str, Callable] = {
            'naive': NaiveAccumulator,
            'kahan': KahanAccumulator,
            'big': BigAccumulator,
            'exact': ExactAccumulator,
        }

    def benchmark_stream(self, factory: Callable, data: np.ndarray) -> Dict:
        """
        Time add() over a stream and a single value() read.

        Args:
            factory: Accumulator constructor
            data: Values to add

        Returns:
            Dictionary with timings
        """
        acc = factory()
        values = data.tolist()

        start = time.perf_counter()
        acc.add(17.0)
        for value in values:
            acc.add(value)
        acc.add(-17.0)
        add_time = time.perf_counter() - start

        start = time.perf_counter()
        result = acc.value()
        read_time = time.perf_counter() - start

        return {
            'ns_per_add': add_time / (len(values) + 2) * 1e9,
            'read_ms': read_time * 1000,
            'result': result,
        }

    def benchmark_batch(self, data: np.ndarray) -> float:
        """Time ExactAccumulator.add_many; returns ns per value."""
        acc = ExactAccumulator()
        start = time.perf_counter()
        acc.add_many(data)
        return (time.perf_counter() - start) / len(data) * 1e9

    def run(self, sizes=(10000, 100000)):
        """Run the benchmark for each size and print a table."""
        for size in sizes:
            data = np.full(size, -1e-10)
            print(f"\nStream of {size} values (17, {size} x -1e-10, -17):")
            print(f"{'Accumulator':<12} {'ns/add':<12} {'read (ms)':<12} {'result':<25}")
            print("-" * 60)

            for name, factory in self.accumulators.items():
                stats = self.benchmark_stream(factory, data)
                print(f"{name:<12} {stats['ns_per_add']:<12.1f} {stats['read_ms']:<12.3f} "
                      f"{stats['result']!r:<25}")

            print(f"{'exact batch':<12} {self.benchmark_batch(data):<12.1f}")


def main():
    """Run the performance benchmark suite."""
    print("EXACT SUMMATION LIBRARY - PERFORMANCE BENCHMARK")
    print("=" * 60)

    PerformanceBenchmark().run()

    print("\n" + "="*60)
    print("Performance benchmark completed!")
    print("="*60)


if __name__ == "__main__":
    main()
