"""
Test suite for Exact Summation Library.

This package contains tests for all components of the exact summation
library: the bit decoder, the binned accumulator, the multi-precision
reduction and the high-level algorithms.

Test Structure:
- test_core.py: Tests for the decoder, ExactAccumulator and Kahan baseline
- test_reduction.py: Tests for BinAdder, MultiPrecisionKahan and rounding
- test_algorithms.py: Tests for high-level algorithms
- conftest.py: Shared fixtures, oracles and configuration

Usage:
    # Run all tests
    pytest

    # Run specific test file
    pytest tests/test_core.py

    # Run tests with coverage
    pytest --cov=exactsum

    # Run only fast tests
    pytest -m "not slow"
"""

__version__ = "1.0.0"
