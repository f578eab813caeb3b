#!/usr/bin/env python3
"""
Basic usage examples for the Exact Summation Library.

This script demonstrates exact, order-independent summation and compares
it with naive and Kahan summation.
"""

import math
import numpy as np
import torch

# Import the exact summation library
import sys
sys.path.append('..')

from exactsum import (
    ExactAccumulator,
    exact_sum,
    exact_sum_mp,
    exact_mean,
    kahan_sum,
    naive_sum
)


def demonstrate_cancellation():
    """Show a tiny value surviving catastrophic cancellation."""
    print("=" * 60)
    print("DEMONSTRATION: Catastrophic Cancellation")
    print("=" * 60)

    eps = 1e-80 * 9.87654321
    data = [eps, 1000.0, 1000.0, 1000.0, 1000.0, 1000.0, -5000.0]

    print(f"Test data: [eps, 1000 x 5, -5000] with eps = {eps:.8e}")
    print()
    print(f"Naive sum:  {naive_sum(data):.8e}")
    print(f"Kahan sum:  {kahan_sum(data):.8e}")
    print(f"Exact sum:  {exact_sum(data):.8e}")
    print()


def demonstrate_order_independence():
    """Show that the result does not depend on the order of the inputs."""
    print("=" * 60)
    print("DEMONSTRATION: Order Independence")
    print("=" * 60)

    rng = np.random.default_rng(0)
    data = rng.choice([-1.0, 1.0], 1000) * 10.0 ** rng.uniform(-20, 20, 1000)

    naive_results = set()
    exact_results = set()
    for _ in range(5):
        rng.shuffle(data)
        naive_results.add(naive_sum(data))
        exact_results.add(exact_sum(data))

    print(f"Distinct naive results over 5 shuffles: {len(naive_results)}")
    print(f"Distinct exact results over 5 shuffles: {len(exact_results)}")
    print(f"Exact result equals math.fsum:          {exact_results == {math.fsum(data)}}")
    print()


def demonstrate_streaming():
    """Feed values one at a time and read the result at any point."""
    print("=" * 60)
    print("DEMONSTRATION: Streaming Accumulation")
    print("=" * 60)

    acc = ExactAccumulator()
    acc.add(17.0)
    for _ in range(100000):
        acc.add(1e-10)
    print(f"After 17 + 100000 x 1e-10:  {acc.value()!r}")
    acc.add(-17.0)
    print(f"After subtracting 17:       {acc.value()!r}")

    total, is_nan = acc.exact_value()
    print(f"Unrounded value:            {total}")

    acc.add(math.inf)
    print(f"After adding +inf:          {acc.value()}")
    acc.add(-math.inf)
    print(f"After adding -inf:          {acc.value()}")
    print()


def demonstrate_tensors():
    """Sum NumPy arrays and PyTorch tensors directly."""
    print("=" * 60)
    print("DEMONSTRATION: Arrays and Tensors")
    print("=" * 60)

    tensor = torch.tensor([1e8, 1.0, -1e8], dtype=torch.float32)
    print(f"torch.sum (float32):  {torch.sum(tensor).item()}")
    print(f"exact_sum:            {exact_sum(tensor)}")

    values = np.array([1e20, 3.0, -1e20, 1.0])
    print(f"np.mean:              {np.mean(values)}")
    print(f"exact_mean:           {exact_mean(values)}")

    total, _ = exact_sum_mp([1.0, 2.0 ** -80])
    print(f"exact_sum_mp:         {total}")
    print()


def main():
    demonstrate_cancellation()
    demonstrate_order_independence()
    demonstrate_streaming()
    demonstrate_tensors()


if __name__ == "__main__":
    main()
