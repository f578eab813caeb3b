#!/usr/bin/env python3
"""
Accuracy comparison benchmarks for summation algorithms.

This script measures how far the naive, NumPy and Kahan baselines drift
from the correctly rounded sum, next to the exact accumulator, across
challenging test cases.
"""

import math
import time
import numpy as np
import pandas as pd
from typing import Dict, Tuple
import sys
sys.path.append('..')

from exactsum import exact_sum, kahan_sum, naive_sum

EPS = 1e-80 * 9.87654321


class AccuracyBenchmark:
    """
    Accuracy benchmark suite for summation algorithms.
    """

    def __init__(self):
        self.algorithms = {
            'naive': naive_sum,
            'numpy': lambda x: float(np.sum(x)),
            'kahan': kahan_sum,
            'exact': exact_sum,
        }

        self.results = []

    def generate_test_case(self, case_type: str, size: int) -> Tuple[np.ndarray, float]:
        """
        Generate test cases with their correctly rounded sums.

        Args:
            case_type: Type of test case
            size: Array size

        Returns:
            Tuple of (test_array, exact_result)
        """
        rng = np.random.default_rng(42)  # Reproducible results

        if case_type == 'tiny_then_cancellation':
            # A tiny value followed by large values that cancel exactly
            large = np.full(size, 1000.0)
            data = np.concatenate([[EPS], large, [-1000.0 * size]])

        elif case_type == 'drift':
            # 17, many tiny values, -17
            data = np.concatenate([[17.0], np.full(size, EPS), [-17.0]])

        elif case_type == 'mixed_magnitude':
            exponents = rng.uniform(-300, 300, size)
            signs = rng.choice([-1.0, 1.0], size)
            data = signs * 10.0 ** exponents

        elif case_type == 'pairwise_cancellation':
            large = rng.normal(0, 1e16, size // 2)
            small = rng.normal(0, 1, size - size // 2)
            data = np.concatenate([large, small, -large])
            rng.shuffle(data)

        elif case_type == 'random_normal':
            data = rng.normal(0, 1, size)

        else:
            raise ValueError(f"Unknown test case type: {case_type}")

        return data, math.fsum(data)

    def run_single_benchmark(self, test_name: str, data: np.ndarray, exact: float) -> Dict:
        """
        Run benchmark on a single test case.

        Args:
            test_name: Name of the test case
            data: Test data
            exact: Correctly rounded result

        Returns:
            Dictionary with benchmark results
        """
        results = {
            'test_name': test_name,
            'size': len(data),
            'exact_result': exact,
        }

        for alg_name, algorithm in self.algorithms.items():
            start_time = time.perf_counter()
            result = algorithm(data)
            elapsed_time = time.perf_counter() - start_time

            absolute_error = abs(result - exact)
            if exact != 0:
                relative_error = absolute_error / abs(exact)
            else:
                relative_error = absolute_error

            results[f'{alg_name}_result'] = result
            results[f'{alg_name}_time'] = elapsed_time
            results[f'{alg_name}_abs_error'] = absolute_error
            results[f'{alg_name}_rel_error'] = relative_error

        return results

    def run_comprehensive_benchmark(self) -> pd.DataFrame:
        """
        Run the benchmark across all test cases and sizes.

        Returns:
            DataFrame with all benchmark results
        """
        test_cases = [
            'tiny_then_cancellation',
            'drift',
            'mixed_magnitude',
            'pairwise_cancellation',
            'random_normal',
        ]
        sizes = [100, 1000, 10000]

        total_tests = len(test_cases) * len(sizes)
        test_count = 0

        for case_type in test_cases:
            for size in sizes:
                test_count += 1
                test_name = f"{case_type}_{size}"
                print(f"[{test_count}/{total_tests}] Running {test_name}...")

                data, exact = self.generate_test_case(case_type, size)
                result = self.run_single_benchmark(test_name, data, exact)
                result['case_type'] = case_type
                self.results.append(result)

        return pd.DataFrame(self.results)

    def analyze_results(self, df: pd.DataFrame) -> None:
        """
        Display benchmark results.

        Args:
            df: DataFrame with benchmark results
        """
        print("\n" + "="*80)
        print("ACCURACY BENCHMARK ANALYSIS")
        print("="*80)

        print("\nRELATIVE ERROR BY ALGORITHM:")
        print("-" * 60)
        print(f"{'Algorithm':<12} {'Mean Rel Error':<15} {'Max Rel Error':<15} {'Exact Hits':<10}")
        print("-" * 60)

        for alg in self.algorithms:
            col = f'{alg}_rel_error'
            hits = int((df[f'{alg}_abs_error'] == 0).sum())
            print(f"{alg:<12} {df[col].mean():<15.2e} {df[col].max():<15.2e} {hits}/{len(df)}")

        print("\nMEDIAN RELATIVE ERROR BY TEST CASE:")
        print("-" * 40)
        for case_type in df['case_type'].unique():
            case_df = df[df['case_type'] == case_type]
            print(f"\n{case_type}:")
            for alg in self.algorithms:
                print(f"  {alg}: {case_df[f'{alg}_rel_error'].median():.2e}")


def main():
    """Run the accuracy benchmark suite."""
    print("EXACT SUMMATION LIBRARY - ACCURACY BENCHMARK")
    print("=" * 60)

    benchmark = AccuracyBenchmark()
    results_df = benchmark.run_comprehensive_benchmark()

    results_df.to_csv('accuracy_benchmark_results.csv', index=False)
    print(f"\nResults saved to accuracy_benchmark_results.csv")

    benchmark.analyze_results(results_df)


if __name__ == "__main__":
    main()
