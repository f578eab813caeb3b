"""
Exact Summation Library

An order-independent summation library for IEEE-754 doubles. Values are
accumulated exactly in per-exponent integer bins and the exact total is
rounded to double precision only when the result is requested.

This library provides:
- ExactAccumulator: O(1) exact add, correctly rounded value()
- Arbitrary-precision results through mpmath
- Correct infinity/NaN semantics (+inf + -inf is NaN)
- NumPy and PyTorch batch input
- Naive and Kahan summation baselines
"""

from .core import ExactAccumulator, KahanAccumulator, FloatCategory, decode, decode_bits, kahan_add
from .reduction import BinAdder, MultiPrecisionKahan, to_double
from .algorithms import (
    exact_sum,
    exact_sum_mp,
    exact_mean,
    kahan_sum,
    naive_sum
)

__version__ = "1.0.0"
__author__ = "Exact Summation Contributors"

__all__ = [
    "ExactAccumulator",
    "KahanAccumulator",
    "FloatCategory",
    "decode",
    "decode_bits",
    "kahan_add",
    "BinAdder",
    "MultiPrecisionKahan",
    "to_double",
    "exact_sum",
    "exact_sum_mp",
    "exact_mean",
    "kahan_sum",
    "naive_sum"
]
