#!/usr/bin/env python3
"""
Pytest configuration and fixtures for exact summation tests.

This file contains shared test fixtures, the naive and brute-force
arbitrary-precision comparison oracles, and utilities used across the
test suite.
"""

import math
import pytest
import numpy as np
import torch
import mpmath
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Tiny value far below the resolution of 1000.0
EPS = 1e-80 * 9.87654321
N = 100000
SMALLEST_SUBNORMAL = math.ulp(0.0)


@pytest.fixture(scope="session")
def random_seed():
    """Set random seed for reproducible tests."""
    seed = 42
    np.random.seed(seed)
    torch.manual_seed(seed)
    return seed


@pytest.fixture
def simple_data():
    """Simple test data for basic functionality tests."""
    return [1.0, 2.0, 3.0, 4.0, 5.0]


@pytest.fixture
def cancellation_data():
    """A tiny value followed by large values that cancel exactly."""
    return [EPS, 1000.0, 1000.0, 1000.0, 1000.0, 1000.0, -5000.0]


@pytest.fixture
def mixed_magnitude_data():
    """Doubles spanning many orders of magnitude with both signs."""
    rng = np.random.default_rng(42)
    n = 2000
    exponents = rng.uniform(-300, 300, n)
    signs = rng.choice([-1.0, 1.0], n)
    return signs * 10.0 ** exponents


@pytest.fixture
def ill_conditioned_data():
    """Large values that cancel pairwise around a small remainder."""
    rng = np.random.default_rng(7)
    large = rng.normal(0, 1e16, 500)
    small = rng.normal(0, 1, 500)
    data = np.concatenate([large, -large, small])
    rng.shuffle(data)
    return data


@pytest.fixture
def subnormal_data():
    """Mixture of subnormal values and small normal values."""
    rng = np.random.default_rng(3)
    subnormals = rng.integers(1, 1 << 52, 200).astype(np.float64) * SMALLEST_SUBNORMAL
    normals = rng.uniform(-1e-300, 1e-300, 200)
    return np.concatenate([subnormals, -subnormals[:50], normals])


class NaiveAccumulator:
    """Plain running total; the worst-case baseline."""

    def __init__(self):
        self.total = 0.0

    def add(self, value: float):
        self.total += value

    def value(self) -> float:
        return self.total


class BigAccumulator:
    """
    Single arbitrary-precision running total without binning.

    At 53 bits it rounds every step, so a tiny term is lost against larger
    ones that later cancel.
    """

    def __init__(self, precision: int = 53):
        self.ctx = mpmath.MPContext()
        self.ctx.prec = precision
        self.total = self.ctx.mpf(0)

    def add(self, value: float):
        self.total = self.total + self.ctx.mpf(value)

    def value(self) -> float:
        return float(self.total)


@pytest.fixture
def naive_accumulator():
    """Fresh naive accumulator."""
    return NaiveAccumulator()


@pytest.fixture
def big_accumulator():
    """Fresh 53-bit arbitrary-precision accumulator."""
    return BigAccumulator()


class AccuracyChecker:
    """Utility class for checking numerical accuracy."""

    @staticmethod
    def reference_sum(values) -> float:
        """Correctly rounded sum of finite doubles."""
        return math.fsum(float(v) for v in np.asarray(values, dtype=np.float64).ravel())

    @staticmethod
    def relative_error(computed: float, reference: float) -> float:
        """Calculate relative error."""
        if reference == 0:
            return abs(computed)
        return abs(computed - reference) / abs(reference)

    @staticmethod
    def same_double(a: float, b: float) -> bool:
        """Bit-level equality, treating every NaN as equal."""
        if math.isnan(a) or math.isnan(b):
            return math.isnan(a) and math.isnan(b)
        return a == b and math.copysign(1.0, a) == math.copysign(1.0, b)


@pytest.fixture
def accuracy_checker():
    """Fixture providing accuracy checking utilities."""
    return AccuracyChecker()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "benchmark: marks performance benchmark tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        # Mark tests that take long time as slow
        if "large" in item.name or "stress" in item.name or "benchmark" in item.name:
            item.add_marker(pytest.mark.slow)

        # Mark integration tests
        if "integration" in item.name or "end_to_end" in item.name:
            item.add_marker(pytest.mark.integration)


def assert_relative_error(computed, reference, max_relative_error):
    """Assert that relative error is within bounds."""
    if reference == 0:
        assert abs(computed) <= max_relative_error
    else:
        relative_error = abs(computed - reference) / abs(reference)
        assert relative_error <= max_relative_error, (
            f"Relative error {relative_error} exceeds threshold {max_relative_error}\n"
            f"Computed: {computed}, Reference: {reference}"
        )
