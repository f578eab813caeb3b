#!/usr/bin/env python3
"""
Unit tests for exact summation algorithms.

Tests the high-level algorithms in the exactsum.algorithms module.
"""

import math
import pytest
import numpy as np
import torch
import mpmath

from exactsum.algorithms import (
    exact_sum,
    exact_sum_mp,
    exact_mean,
    kahan_sum,
    naive_sum
)
from tests.conftest import EPS, assert_relative_error


class TestExactSum:
    """Test cases for exact_sum function."""

    def test_basic_functionality(self, simple_data):
        assert exact_sum(simple_data) == 15.0

    def test_different_input_types(self):
        """Lists, arrays and tensors of any float dtype are accepted."""
        inputs = [
            [0.1, 0.2, 0.3],
            np.array([0.1, 0.2, 0.3]),
            torch.tensor([0.1, 0.2, 0.3], dtype=torch.float64),
        ]
        expected = math.fsum([0.1, 0.2, 0.3])
        for values in inputs:
            assert exact_sum(values) == expected

    def test_float32_tensor(self):
        values = torch.tensor([1e8, 1.0, -1e8], dtype=torch.float32)
        assert exact_sum(values) == 1.0

    def test_empty_input(self):
        assert exact_sum([]) == 0.0

    def test_single_element(self):
        assert exact_sum([42.5]) == 42.5

    def test_matches_correctly_rounded_reference(self, ill_conditioned_data, accuracy_checker):
        result = exact_sum(ill_conditioned_data)
        assert result == accuracy_checker.reference_sum(ill_conditioned_data)

    def test_permutations(self, mixed_magnitude_data):
        expected = exact_sum(mixed_magnitude_data)
        rng = np.random.default_rng(5)
        for _ in range(3):
            assert exact_sum(rng.permutation(mixed_magnitude_data)) == expected

    def test_beats_baselines_on_cancellation(self, cancellation_data):
        exact_error = abs(exact_sum(cancellation_data) - EPS)
        assert exact_error * 1000 <= EPS
        assert abs(naive_sum(cancellation_data) - EPS) > exact_error
        assert abs(kahan_sum(cancellation_data) - EPS) > exact_error

    def test_special_values(self):
        assert exact_sum([1.0, math.inf]) == math.inf
        assert math.isnan(exact_sum(np.array([math.inf, -math.inf])))

    def test_precision_below_exact_rejected(self, cancellation_data):
        with pytest.raises(ValueError):
            exact_sum(cancellation_data, precision=64)

    def test_wider_precision(self, cancellation_data):
        assert exact_sum(cancellation_data, precision=4096) == exact_sum(cancellation_data)


class TestExactSumMp:
    """Test cases for exact_sum_mp function."""

    def test_unrounded_result(self):
        total, is_nan = exact_sum_mp([1.0, 2.0 ** -80])
        assert not is_nan
        with mpmath.workprec(100):
            expected = 1 + mpmath.ldexp(1, -80)
        assert total == expected
        assert float(total) == 1.0

    def test_nan(self):
        total, is_nan = exact_sum_mp([1.0, math.nan])
        assert is_nan
        assert total is None


class TestExactMean:
    """Test cases for exact_mean function."""

    def test_exact_mean(self, simple_data):
        assert exact_mean(simple_data) == 3.0

    def test_empty(self):
        assert exact_mean([]) == 0.0

    def test_cancellation(self):
        values = [1e20, 3.0, -1e20, 1.0]
        assert exact_mean(values) == 1.0

    def test_large_dataset(self):
        np.random.seed(42)
        values = np.random.normal(1e6, 1.0, 100000)
        expected = math.fsum(values) / len(values)
        assert_relative_error(exact_mean(values), expected, 1e-15)

    def test_nan(self):
        assert math.isnan(exact_mean([1.0, math.nan]))


class TestKahanSum:
    """Test cases for the kahan_sum baseline."""

    def test_basic_functionality(self, simple_data):
        assert abs(kahan_sum(simple_data) - 15.0) < 1e-15

    def test_precision_improvement(self):
        values = [1.0] + [1e-16] * 1000
        expected = math.fsum(values)
        assert abs(kahan_sum(values) - expected) < abs(naive_sum(values) - expected)

    def test_different_input_types(self):
        assert kahan_sum([1.0, 2.0, 3.0]) == 6.0
        assert kahan_sum(np.array([1.0, 2.0, 3.0])) == 6.0
        assert kahan_sum(torch.tensor([1.0, 2.0, 3.0])) == 6.0

    def test_empty_input(self):
        assert kahan_sum([]) == 0.0


class TestNaiveSum:
    """Test cases for the naive_sum baseline."""

    def test_basic_functionality(self, simple_data):
        assert naive_sum(simple_data) == 15.0

    def test_order_dependence(self):
        """Plain addition is not associative."""
        values = [1e16, 1.0, 1.0, -1e16]
        assert naive_sum(values) != naive_sum(sorted(values, key=abs))
        assert exact_sum(values) == exact_sum(sorted(values, key=abs)) == 2.0


@pytest.mark.integration
def test_integration_accumulator_and_algorithms_agree(mixed_magnitude_data):
    """The streaming accumulator and the batch function give one answer."""
    from exactsum import ExactAccumulator

    acc = ExactAccumulator()
    for value in mixed_magnitude_data:
        acc.add(float(value))
    assert acc.value() == exact_sum(mixed_magnitude_data)


if __name__ == "__main__":
    pytest.main([__file__])
