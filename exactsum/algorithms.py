"""
High-level summation algorithms.

This module provides one-call wrappers around ExactAccumulator for lists,
NumPy arrays and PyTorch tensors, together with the naive and Kahan
baselines it is usually compared against.
"""

import math
from typing import Iterable, Optional, Tuple, Union

import mpmath
import numpy as np
import torch

from .core import ExactAccumulator, as_float64_array, kahan_add
from .reduction import to_double

Values = Union[Iterable[float], torch.Tensor, np.ndarray]


def exact_sum(values: Values, precision: Optional[int] = None) -> float:
    """
    Compute the correctly rounded sum of all values.

    The result does not depend on the order of the values.

    Args:
        values: Sequence of values to sum
        precision: Working precision of the reduction in bits

    Returns:
        Exact sum rounded to the nearest double, or NaN
    """
    acc = ExactAccumulator(precision)
    acc.add_many(values)
    return acc.value()


def exact_sum_mp(values: Values, precision: Optional[int] = None) -> Tuple[Optional[mpmath.mpf], bool]:
    """
    Compute the unrounded sum of all values.

    Args:
        values: Sequence of values to sum
        precision: Working precision of the reduction in bits

    Returns:
        Tuple of (sum, is_nan); sum is None when is_nan is True
    """
    acc = ExactAccumulator(precision)
    acc.add_many(values)
    return acc.exact_value()


def exact_mean(values: Values) -> float:
    """
    Compute the mean from the exact sum.

    Args:
        values: Sequence of values

    Returns:
        Mean rounded to the nearest double (0.0 for empty input)
    """
    data = as_float64_array(values)
    if data.size == 0:
        return 0.0

    acc = ExactAccumulator()
    acc.add_many(data)
    total, is_nan = acc.exact_value()
    if is_nan:
        return math.nan
    return to_double(total / data.size)


def kahan_sum(values: Values) -> float:
    """
    Compute sum using Kahan compensated summation.

    Args:
        values: Sequence of values to sum

    Returns:
        Compensated sum with reduced floating-point error
    """
    values = as_float64_array(values)

    if len(values) == 0:
        return 0.0

    sum_val = float(values[0])
    c = 0.0

    for i in range(1, len(values)):
        sum_val, c = kahan_add(sum_val, float(values[i]), c)

    return sum_val


def naive_sum(values: Values) -> float:
    """
    Compute sum by plain left-to-right double addition.

    Args:
        values: Sequence of values to sum

    Returns:
        Running total, including all accumulated rounding error
    """
    total = 0.0
    for value in as_float64_array(values):
        total += float(value)
    return total
